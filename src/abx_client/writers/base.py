"""Output sink contract."""

from abc import ABC, abstractmethod
from typing import List, Sequence

from ..codec import Record


class RecordSink(ABC):
    """Receives the final ordered dataset as a single batch."""

    @abstractmethod
    def write(self, records: Sequence[Record]) -> None:
        """Persist the ordered records."""

    def describe(self) -> str:
        return type(self).__name__


class MemorySink(RecordSink):
    """Keeps written batches in memory."""

    def __init__(self):
        self.batches: List[List[Record]] = []

    def write(self, records: Sequence[Record]) -> None:
        self.batches.append(list(records))

    @property
    def records(self) -> List[Record]:
        return [record for batch in self.batches for record in batch]

    def describe(self) -> str:
        return "memory"
