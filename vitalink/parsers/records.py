"""
Fixed-size record iteration over chunked section data.

Both the stub loader and the symbol table loader decode arrays of
fixed-size records from a section whose payload may arrive in several
pieces of arbitrary length.  :func:`iter_records` hides the chunking: a
record that straddles two chunks is stitched together from the tail of
the first and the head of the second, so every record index is decoded
exactly once and none is skipped.
"""

from __future__ import annotations

from typing import Iterable, Iterator

from vitalink.core.errors import MalformedObjectError
from vitalink.parsers.elf_image import DataChunk


def iter_records(
    chunks: Iterable[DataChunk],
    total_size: int,
    entry_size: int,
) -> Iterator[tuple[int, bytes]]:
    """Yield ``(section_offset, record_bytes)`` for each whole record.

    Chunks are consumed in order until *total_size* bytes have been seen.
    A trailing fragment shorter than *entry_size* at the end of the
    section is ignored.

    Args:
        chunks: Section payload pieces in ascending offset order.
        total_size: Declared section size (``sh_size``).
        entry_size: Size of one record in bytes.

    Raises:
        MalformedObjectError: A chunk does not start where the previous
            one ended, or the chunks end before *total_size* bytes.
    """
    if entry_size <= 0:
        raise ValueError(f"entry_size must be positive, got {entry_size}")

    consumed = 0
    tail = b""
    for chunk in chunks:
        if consumed >= total_size:
            break
        if chunk.offset != consumed:
            raise MalformedObjectError(
                f"section data chunk at offset 0x{chunk.offset:x} does not "
                f"follow previous data ending at 0x{consumed:x}"
            )

        data = chunk.data[: total_size - consumed]
        buf = tail + data
        # Offset of buf[0]; lower than chunk.offset while finishing the
        # record left over from the previous chunk.
        base = chunk.offset - len(tail)
        whole = len(buf) - len(buf) % entry_size
        for local in range(0, whole, entry_size):
            yield base + local, buf[local:local + entry_size]

        tail = buf[whole:]
        consumed += len(data)

    if consumed < total_size:
        raise MalformedObjectError(
            f"section data ends after 0x{consumed:x} of 0x{total_size:x} bytes"
        )
