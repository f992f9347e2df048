"""
Stub Section Loader
====================

Decodes the ``.vitalink.fstubs`` and ``.vitalink.vstubs`` sections.  Each
section is a packed array of 16-byte entries::

    +0  library NID   (u32, little-endian)
    +4  module NID    (u32, little-endian)
    +8  target NID    (u32, little-endian)
    +12 reserved

The stub's address is the section base address plus the entry's offset
in the section.  NID values are not checked here; the import resolver
decides whether they mean anything.
"""

from __future__ import annotations

import struct
from typing import Iterable

from vitalink.core.models import Stub, StubKind
from vitalink.parsers.elf_image import DataChunk, SectionHeader
from vitalink.parsers.records import iter_records

FUNCTION_STUB_SECTION: str = ".vitalink.fstubs"
VARIABLE_STUB_SECTION: str = ".vitalink.vstubs"

STUB_SECTION_NAMES: dict[StubKind, str] = {
    StubKind.FUNCTION: FUNCTION_STUB_SECTION,
    StubKind.VARIABLE: VARIABLE_STUB_SECTION,
}

STUB_ENTRY_SIZE: int = 16

_STUB_ENTRY = struct.Struct("<IIII")


def stub_count(section: SectionHeader) -> int:
    return section.sh_size // STUB_ENTRY_SIZE


def load_stubs(
    section: SectionHeader,
    chunks: Iterable[DataChunk],
    kind: StubKind,
) -> list[Stub]:
    """Decode every stub entry of *section*.

    Args:
        section: Header of the stub section.
        chunks: The section payload, in one or more pieces.
        kind: Whether this is the function or the variable stub section.

    Returns:
        ``sh_size // 16`` stubs in ascending address order.
    """
    stubs: list[Stub] = []
    for offset, entry in iter_records(chunks, section.sh_size, STUB_ENTRY_SIZE):
        library_nid, module_nid, target_nid, _reserved = _STUB_ENTRY.unpack(entry)
        stubs.append(Stub(
            kind=kind,
            address=(section.sh_addr + offset) & 0xFFFFFFFF,
            library_nid=library_nid,
            module_nid=module_nid,
            target_nid=target_nid,
        ))
    return stubs
