"""JSON file writer for the final dataset."""

import json
import logging
import os
import tempfile
from typing import Sequence

from ..codec import Record
from ..config.settings import OutputConfig
from .base import RecordSink

logger = logging.getLogger(__name__)


def _default_file_mode() -> int:
    """Mode a plain open() would create: 0666 minus the process umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


class JSONFileWriter(RecordSink):
    """
    Writes records as a JSON array of {symbol, side, quantity, price, sequence}.

    The file is written to a temporary sibling and renamed into place, so a
    failed write never leaves a truncated output file behind.
    """

    def __init__(self, config: OutputConfig):
        self.path = config.path
        self.indent = config.indent

    def write(self, records: Sequence[Record]) -> None:
        payload = [record.to_dict() for record in records]

        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=self.indent)
            os.chmod(tmp_path, _default_file_mode())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        logger.info(f"Data saved to {self.path}")

    def describe(self) -> str:
        return self.path
