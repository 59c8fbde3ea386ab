"""Output sinks for the assembled dataset."""

from .base import MemorySink, RecordSink
from .json_writer import JSONFileWriter

__all__ = ["JSONFileWriter", "MemorySink", "RecordSink"]
