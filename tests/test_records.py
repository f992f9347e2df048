"""Tests for fixed-size record iteration over chunked data."""

from __future__ import annotations

import pytest

from vitalink.core.errors import MalformedObjectError
from vitalink.parsers.elf_image import DataChunk
from vitalink.parsers.records import iter_records


def split(data: bytes, sizes: list[int]) -> list[DataChunk]:
    chunks, offset = [], 0
    for size in sizes:
        chunks.append(DataChunk(offset, data[offset:offset + size]))
        offset += size
    if offset < len(data):
        chunks.append(DataChunk(offset, data[offset:]))
    return chunks


DATA = bytes(range(64))


@pytest.mark.parametrize("sizes", [[], [32], [5], [3, 7, 11], [1] * 63, [17, 17, 17]])
def test_chunking_does_not_change_records(sizes):
    records = list(iter_records(split(DATA, sizes), len(DATA), 16))
    assert records == [(i * 16, DATA[i * 16:(i + 1) * 16]) for i in range(4)]


def test_record_spanning_chunks_is_decoded_once():
    chunks = [DataChunk(0, DATA[:24]), DataChunk(24, DATA[24:])]
    offsets = [offset for offset, _ in iter_records(chunks, 64, 16)]
    assert offsets == [0, 16, 32, 48]


def test_trailing_fragment_ignored():
    records = list(iter_records([DataChunk(0, DATA[:40])], 40, 16))
    assert [offset for offset, _ in records] == [0, 16]


def test_stops_at_declared_size():
    records = list(iter_records([DataChunk(0, DATA)], 32, 16))
    assert len(records) == 2


def test_gap_between_chunks():
    chunks = [DataChunk(0, DATA[:16]), DataChunk(32, DATA[32:])]
    with pytest.raises(MalformedObjectError, match="does not follow"):
        list(iter_records(chunks, 64, 16))


def test_short_data():
    with pytest.raises(MalformedObjectError, match="ends after"):
        list(iter_records([DataChunk(0, DATA[:32])], 64, 16))
