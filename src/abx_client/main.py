"""ABX Client entry point - fetch, reconcile and save exchange packets."""

import asyncio
import logging
import os
import sys
from typing import Optional

from .config.settings import ClientSettings, load_settings
from .exceptions import ABXClientError
from .pipeline import FeedPipeline, RunReport
from .utils.logging import log_error_with_context, setup_logging


logger = logging.getLogger(__name__)


class ABXClientService:
    """Loads configuration and runs a single feed collection."""

    def __init__(self, config_file: Optional[str] = None, settings: Optional[ClientSettings] = None):
        self.config = settings or load_settings(config_file)

        address = f"{self.config.server.host}:{self.config.server.port}"
        setup_logging(self.config.logging, self.config.service_name, server=address)
        logger.info(f"ABX Client initialized for {address}")

        self.pipeline = FeedPipeline.from_settings(self.config)

    async def start(self) -> RunReport:
        """Run the pipeline once and log the outcome."""
        logger.info("Starting ABX feed collection")
        report = await self.pipeline.run()

        if report.complete:
            logger.info(f"Collection complete: {len(report.records)} packets saved")
        else:
            logger.warning(
                f"Collection finished with {len(report.unrecovered)} unrecovered "
                f"sequences: {report.unrecovered}"
            )
        return report


async def main() -> int:
    """Main entry point."""
    config_file = os.getenv("CONFIG_FILE")

    try:
        service = ABXClientService(config_file)
        await service.start()
    except ABXClientError as e:
        log_error_with_context(logger, e, "fetch_and_save")
        return 1
    except Exception as e:
        logger.error(f"Client failed: {e}", exc_info=True)
        return 1

    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
