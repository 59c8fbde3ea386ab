"""Final ordering of collected records."""

import logging
from typing import List, Sequence

from .codec import Record
from .writers.base import RecordSink

logger = logging.getLogger(__name__)


def assemble(records: Sequence[Record]) -> List[Record]:
    """Sort by sequence ascending; sorted() is stable so duplicates keep arrival order."""
    return sorted(records, key=lambda record: record.sequence)


class Assembler:
    """Orders the accumulated records and hands them to the sink in one batch."""

    def __init__(self, sink: RecordSink):
        self.sink = sink

    def emit(self, records: Sequence[Record]) -> List[Record]:
        ordered = assemble(records)
        self.sink.write(ordered)
        logger.info(f"Emitted {len(ordered)} packets to {self.sink.describe()}")
        return ordered
