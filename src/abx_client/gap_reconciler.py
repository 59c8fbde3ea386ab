"""Gap detection and per-sequence recovery."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .clients.channel import ChannelFactory
from .codec import CallType, Record, decode_record, encode_request
from .exceptions import MalformedPacket, NoDataReceived
from .state import FeedState
from .utils.logging import log_error_with_context

logger = logging.getLogger(__name__)

# Resend requests carry the target sequence in a single byte.
MAX_ADDRESSABLE_SEQUENCE = 0xFF


def compute_missing_sequences(seen: Iterable[int], max_sequence_seen: int) -> List[int]:
    """
    Sequences in [1, max_sequence_seen) that were never received, ascending.

    The last streamed sequence itself is excluded: it was received by definition.
    """
    seen = set(seen)
    return [seq for seq in range(1, max_sequence_seen) if seq not in seen]


@dataclass
class ReconciliationResult:
    """Outcome of one reconciliation pass."""
    missing: List[int] = field(default_factory=list)
    recovered: List[int] = field(default_factory=list)
    unrecovered: List[int] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.unrecovered


class GapReconciler:
    """
    Re-requests every missing sequence on its own connection.

    Each missing sequence gets exactly one attempt. An empty or undecodable
    response leaves it unrecovered without failing the run; transport errors
    propagate.
    """

    def __init__(self, channels: ChannelFactory, max_concurrency: int = 1):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self.channels = channels
        self.max_concurrency = max_concurrency

        self.stats = {
            'gaps_detected': 0,
            'recovery_connections': 0,
            'records_recovered': 0,
            'unrecovered': 0,
            'decode_errors': 0,
        }

    async def reconcile(self, feed: FeedState) -> ReconciliationResult:
        """
        Detect gaps in `feed` and fold recovered records back into it.

        Raises:
            NoDataReceived: If the feed has no max_sequence_seen to reconcile against
            ChannelError: On transport failure during any recovery request
        """
        if feed.max_sequence_seen is None:
            raise NoDataReceived("Nothing to reconcile: no packets were streamed")

        result = ReconciliationResult(
            missing=compute_missing_sequences(feed.seen, feed.max_sequence_seen)
        )
        self.stats['gaps_detected'] += len(result.missing)
        logger.info(f"Missing sequences detected: {len(result.missing)}")

        if not result.missing:
            return result

        if result.missing[-1] > MAX_ADDRESSABLE_SEQUENCE:
            logger.warning(
                f"Missing sequences above {MAX_ADDRESSABLE_SEQUENCE} will be requested by their "
                f"low byte only; the server may return a different packet"
            )

        if self.max_concurrency == 1:
            for sequence in result.missing:
                record = await self._recover_one(sequence)
                self._fold(feed, sequence, record, result)
        else:
            records = await self._recover_concurrently(result.missing)
            for sequence, record in zip(result.missing, records):
                self._fold(feed, sequence, record, result)

        self.stats['records_recovered'] += len(result.recovered)
        self.stats['unrecovered'] += len(result.unrecovered)

        if result.unrecovered:
            logger.warning(
                f"{len(result.unrecovered)} sequences could not be recovered: {result.unrecovered}"
            )
        else:
            logger.info(f"Recovered all {len(result.recovered)} missing sequences")

        return result

    async def _recover_concurrently(self, sequences: List[int]) -> List[Optional[Record]]:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(sequence: int) -> Optional[Record]:
            async with semaphore:
                return await self._recover_one(sequence)

        tasks = [asyncio.create_task(bounded(seq)) for seq in sequences]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _recover_one(self, sequence: int) -> Optional[Record]:
        """Single resend attempt for `sequence`. Returns None if nothing usable came back."""
        channel = await self.channels.open()
        self.stats['recovery_connections'] += 1

        async with channel:
            await channel.send(encode_request(CallType.RESEND_PACKET, sequence))
            logger.info(
                f"Sent request: CallType = {CallType.RESEND_PACKET.value}, "
                f"Sequence = {sequence & MAX_ADDRESSABLE_SEQUENCE}"
            )
            data = await channel.receive()

        if not data:
            logger.warning(f"No packet returned for sequence {sequence}")
            return None

        try:
            return decode_record(data)
        except MalformedPacket as e:
            self.stats['decode_errors'] += 1
            log_error_with_context(logger, e, "recover_sequence", sequence=sequence)
            return None

    def _fold(
        self,
        feed: FeedState,
        target: int,
        record: Optional[Record],
        result: ReconciliationResult,
    ) -> None:
        if record is None:
            result.unrecovered.append(target)
            return

        if record.sequence in feed.seen:
            logger.debug(f"Sequence {record.sequence} already present, not adding again")
        else:
            feed.add(record)

        if record.sequence == target:
            result.recovered.append(target)
        else:
            logger.warning(
                f"Requested sequence {target} but server returned {record.sequence}"
            )
            result.unrecovered.append(target)

    def get_stats(self) -> Dict[str, Any]:
        return dict(self.stats)
