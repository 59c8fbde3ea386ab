"""Orchestrates streaming, gap recovery and assembly for one run."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .assembler import Assembler
from .clients.channel import ChannelFactory
from .codec import Record
from .config.settings import ClientSettings
from .gap_reconciler import GapReconciler
from .state import FeedState
from .stream_collector import StreamCollector
from .utils.logging import log_performance
from .writers.base import RecordSink
from .writers.json_writer import JSONFileWriter

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    """Summary of a completed run."""
    records: List[Record]
    max_sequence_seen: int
    missing: List[int] = field(default_factory=list)
    recovered: List[int] = field(default_factory=list)
    unrecovered: List[int] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def complete(self) -> bool:
        return not self.unrecovered

    def to_dict(self) -> Dict[str, Any]:
        return {
            'records': len(self.records),
            'max_sequence_seen': self.max_sequence_seen,
            'missing': len(self.missing),
            'recovered': len(self.recovered),
            'unrecovered': list(self.unrecovered),
            'complete': self.complete,
            'duration_ms': round(self.duration_ms, 2),
        }


class FeedPipeline:
    """
    Runs Stream Collector -> Gap Reconciler -> Assembler against one server.

    Any error raised before assembly aborts the run and nothing is written to
    the sink.
    """

    def __init__(
        self,
        channels: ChannelFactory,
        sink: RecordSink,
        max_concurrency: int = 1,
    ):
        self.channels = channels
        self.collector = StreamCollector(channels)
        self.reconciler = GapReconciler(channels, max_concurrency=max_concurrency)
        self.assembler = Assembler(sink)

        self.last_report: Optional[RunReport] = None
        self.stats = {
            'runs_started': 0,
            'runs_completed': 0,
            'runs_failed': 0,
            'last_run_time': None,
        }

    @classmethod
    def from_settings(cls, settings: ClientSettings, sink: Optional[RecordSink] = None) -> "FeedPipeline":
        channels = ChannelFactory(settings.server, settings.retry)
        return cls(
            channels=channels,
            sink=sink or JSONFileWriter(settings.output),
            max_concurrency=settings.recovery.max_concurrency,
        )

    async def run(self) -> RunReport:
        """
        Execute one full collection run.

        Raises:
            NoDataReceived: If the primary stream was empty
            MalformedPacket: If a primary stream frame failed to decode
            ChannelError: On any transport failure
        """
        self.stats['runs_started'] += 1
        start_time = time.monotonic()
        feed = FeedState()

        try:
            await self.collector.collect(feed)
            reconciliation = await self.reconciler.reconcile(feed)
            ordered = self.assembler.emit(feed.records)
        except Exception:
            self.stats['runs_failed'] += 1
            raise

        duration_ms = (time.monotonic() - start_time) * 1000
        report = RunReport(
            records=ordered,
            max_sequence_seen=feed.max_sequence_seen,
            missing=reconciliation.missing,
            recovered=reconciliation.recovered,
            unrecovered=reconciliation.unrecovered,
            duration_ms=duration_ms,
        )

        self.last_report = report
        self.stats['runs_completed'] += 1
        self.stats['last_run_time'] = datetime.now(timezone.utc).isoformat()

        log_performance(
            logger, "feed_run", duration_ms,
            records=len(report.records),
            unrecovered=len(report.unrecovered),
        )
        return report

    def get_stats(self) -> Dict[str, Any]:
        """Get pipeline statistics across all phases."""
        return {
            **self.stats,
            'collector': self.collector.get_stats(),
            'reconciler': self.reconciler.get_stats(),
            'channels': self.channels.get_stats(),
            'last_report': self.last_report.to_dict() if self.last_report else None,
        }
