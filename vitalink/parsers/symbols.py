"""
Symbol Table Loader
====================

Decodes the binary's ``SHT_SYMTAB`` section into a list indexed by
symbol-table position.  Local symbols (below ``sh_info``) are left as
empty placeholders.  Entry size comes from the section header's
``sh_entsize``; names are looked up in the string table named by
``sh_link``.

References:
    - TIS Committee. (1995). ELF Specification, Book I, "Symbol Table".
"""

from __future__ import annotations

import struct
from typing import Callable, Iterable, Sequence

from vitalink.core.errors import MalformedObjectError
from vitalink.core.models import Symbol, SymbolBinding, SymbolKind
from vitalink.parsers.elf_image import SHN_XINDEX, DataChunk, SectionHeader
from vitalink.parsers.records import iter_records

# Symbol binding
STB_LOCAL: int = 0
STB_GLOBAL: int = 1
STB_WEAK: int = 2

# Symbol types
STT_NOTYPE: int = 0
STT_OBJECT: int = 1
STT_FUNC: int = 2

_KIND_BY_TYPE: dict[int, SymbolKind] = {
    STT_OBJECT: SymbolKind.OBJECT,
    STT_FUNC: SymbolKind.FUNCTION,
}

_BINDING_BY_BIND: dict[int, SymbolBinding] = {
    STB_LOCAL: SymbolBinding.LOCAL,
    STB_GLOBAL: SymbolBinding.GLOBAL,
    STB_WEAK: SymbolBinding.WEAK,
}

# Elf32_Sym: st_name, st_value, st_size, st_info, st_other, st_shndx
_ELF32_SYM = struct.Struct("<IIIBBH")
ELF32_SYM_SIZE: int = _ELF32_SYM.size

# SHT_SYMTAB_SHNDX entry: one Elf32_Word per symbol
_SHNDX_ENTRY = struct.Struct("<I")


def classify_kind(st_info: int) -> SymbolKind:
    return _KIND_BY_TYPE.get(st_info & 0xF, SymbolKind.OTHER)


def classify_binding(st_info: int) -> SymbolBinding:
    return _BINDING_BY_BIND.get(st_info >> 4, SymbolBinding.OTHER)


def symbol_count(section: SectionHeader) -> int:
    """Number of entries in a symbol table section.

    Raises:
        MalformedObjectError: ``sh_entsize`` cannot hold an Elf32_Sym.
    """
    if section.sh_entsize < ELF32_SYM_SIZE:
        raise MalformedObjectError(
            f"symbol table entry size {section.sh_entsize} is smaller "
            f"than an Elf32_Sym ({ELF32_SYM_SIZE})"
        )
    return section.sh_size // section.sh_entsize


def load_symbols(
    section: SectionHeader,
    chunks: Iterable[DataChunk],
    names: Callable[[int], str],
) -> list[Symbol]:
    """Decode a symbol table.

    Local symbols (indices below ``sh_info``) are not decoded: they stay
    as empty placeholders, so a damaged local entry cannot fail the load.

    Args:
        section: Header of the ``SHT_SYMTAB`` section.
        chunks: The section payload, in one or more pieces.
        names: Maps a string-table offset to a name, usually
            ``functools.partial(image.string_at, section.sh_link)``.

    Returns:
        One :class:`Symbol` per entry; index 0 is the null symbol.

    Raises:
        MalformedObjectError: A record or its name cannot be decoded.
    """
    entry_size = section.sh_entsize
    table = [Symbol(index=i) for i in range(symbol_count(section))]
    first_global = max(section.sh_info, 1)

    for offset, record in iter_records(chunks, section.sh_size, entry_size):
        index = offset // entry_size
        if index < first_global:
            continue
        try:
            st_name, st_value, _st_size, st_info, _st_other, st_shndx = (
                _ELF32_SYM.unpack_from(record)
            )
        except struct.error as exc:
            raise MalformedObjectError(
                f"cannot decode symbol {index}: {exc}"
            ) from exc

        table[index] = Symbol(
            index=index,
            name=names(st_name),
            value=st_value,
            kind=classify_kind(st_info),
            binding=classify_binding(st_info),
            section_index=st_shndx,
            raw_type=st_info & 0xF,
            raw_binding=st_info >> 4,
        )

    return table


def apply_extended_indexes(
    symbols: Sequence[Symbol],
    chunks: Iterable[DataChunk],
    section: SectionHeader,
) -> int:
    """Replace ``SHN_XINDEX`` section indexes from an ``SHT_SYMTAB_SHNDX`` table.

    The table holds one u32 per symbol; entry ``i`` is the real section
    index of symbol ``i`` when its ``st_shndx`` is ``SHN_XINDEX``.

    Returns:
        Number of symbols updated.
    """
    updated = 0
    for offset, record in iter_records(chunks, section.sh_size, _SHNDX_ENTRY.size):
        index = offset // _SHNDX_ENTRY.size
        if index >= len(symbols):
            break
        sym = symbols[index]
        if sym.section_index == SHN_XINDEX:
            (sym.section_index,) = _SHNDX_ENTRY.unpack(record)
            updated += 1
    return updated
