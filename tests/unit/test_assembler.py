"""Tests for final ordering and sink emission."""

import json
import os
import stat
import sys

import pytest

from abx_client.assembler import Assembler, assemble
from abx_client.codec import decode_record
from abx_client.config.settings import OutputConfig
from abx_client.writers import JSONFileWriter, MemorySink


class TestAssemble:
    """Ordering rules."""

    def test_sorts_by_sequence(self, frame):
        records = [decode_record(frame(sequence=s)) for s in (5, 1, 3, 2, 4)]

        assert [r.sequence for r in assemble(records)] == [1, 2, 3, 4, 5]

    def test_duplicates_keep_first_seen_order(self, frame):
        first = decode_record(frame(quantity=1, sequence=2))
        second = decode_record(frame(quantity=2, sequence=2))
        other = decode_record(frame(sequence=1))

        ordered = assemble([first, other, second])

        assert ordered == [other, first, second]

    def test_does_not_mutate_input(self, frame):
        records = [decode_record(frame(sequence=s)) for s in (2, 1)]
        assemble(records)
        assert [r.sequence for r in records] == [2, 1]


class TestAssembler:
    """Single-batch emission."""

    def test_emits_one_sorted_batch(self, frame):
        sink = MemorySink()
        records = [decode_record(frame(sequence=s)) for s in (3, 1, 2)]

        ordered = Assembler(sink).emit(records)

        assert len(sink.batches) == 1
        assert [r.sequence for r in sink.records] == [1, 2, 3]
        assert ordered == sink.records


class TestJSONFileWriter:
    """JSON output file."""

    def test_writes_json_array(self, tmp_path, frame):
        path = tmp_path / "out" / "output.json"
        writer = JSONFileWriter(OutputConfig(path=str(path)))

        writer.write([
            decode_record(frame("ABCD", "B", 50, 100, 1)),
            decode_record(frame("ABCD", "S", 30, 98, 2)),
        ])

        data = json.loads(path.read_text())
        assert data == [
            {"symbol": "ABCD", "side": "B", "quantity": 50, "price": 100, "sequence": 1},
            {"symbol": "ABCD", "side": "S", "quantity": 30, "price": 98, "sequence": 2},
        ]

    def test_uses_configured_indent(self, tmp_path, frame):
        path = tmp_path / "output.json"
        JSONFileWriter(OutputConfig(path=str(path), indent=4)).write([decode_record(frame())])

        assert '\n        "symbol"' in path.read_text()

    def test_no_temp_files_left(self, tmp_path, frame):
        path = tmp_path / "output.json"
        JSONFileWriter(OutputConfig(path=str(path))).write([decode_record(frame())])

        assert [p.name for p in tmp_path.iterdir()] == ["output.json"]

    def test_empty_batch(self, tmp_path):
        path = tmp_path / "output.json"
        JSONFileWriter(OutputConfig(path=str(path))).write([])

        assert json.loads(path.read_text()) == []

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    def test_file_mode_follows_umask(self, tmp_path, frame):
        path = tmp_path / "output.json"
        previous = os.umask(0o022)
        try:
            JSONFileWriter(OutputConfig(path=str(path))).write([decode_record(frame())])
        finally:
            os.umask(previous)

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o644
