"""Accumulation state shared by the streaming and recovery phases."""

from dataclasses import dataclass, field
from typing import List, Optional, Set

from .codec import Record


@dataclass
class FeedState:
    """
    Records collected so far and the sequence numbers they cover.

    Owned by the pipeline and handed to each phase explicitly. `records` keeps
    arrival order; `max_sequence_seen` is the sequence of the last record the
    primary stream delivered, which bounds gap detection.
    """
    records: List[Record] = field(default_factory=list)
    seen: Set[int] = field(default_factory=set)
    max_sequence_seen: Optional[int] = None

    def add(self, record: Record) -> None:
        self.records.append(record)
        self.seen.add(record.sequence)

    def __len__(self) -> int:
        return len(self.records)
