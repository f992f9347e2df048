"""
ELF32 ARM Image Reader
=======================

Struct-based reader for the parts of a 32-bit little-endian ARM ELF file
that stub extraction needs: the file header, the section header table,
section names, string tables and raw section payloads.

The reader owns an open file handle for its whole lifetime and reads
lazily from it; :meth:`ElfImage.close` releases the handle.  Section
payloads are handed out as a sequence of :class:`DataChunk` values, the
same way ``libelf`` exposes ``Elf_Data`` descriptors, so consumers never
assume one contiguous buffer.

References:
    - TIS Committee. (1995). Tool Interface Standard (TIS) Executable and
      Linkable Format (ELF) Specification, Version 1.2.
    - ARM. (2022). ELF for the Arm Architecture (AAELF32).
"""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from vitalink.core.errors import (
    FileOpenError,
    MalformedObjectError,
    NotAnObjectFileError,
    WrongEndiannessError,
    WrongMachineError,
    WrongWordSizeError,
)


# ---------------------------------------------------------------------------
# ELF Constants
# ---------------------------------------------------------------------------

ELF_MAGIC: bytes = b"\x7fELF"
EI_NIDENT: int = 16

ELFCLASS32: int = 1
ELFCLASS64: int = 2

ELFDATA2LSB: int = 1  # Little-endian
ELFDATA2MSB: int = 2  # Big-endian

EM_ARM: int = 40

# Section header types
SHT_NULL: int = 0
SHT_PROGBITS: int = 1
SHT_SYMTAB: int = 2
SHT_STRTAB: int = 3
SHT_NOBITS: int = 8
SHT_SYMTAB_SHNDX: int = 18

_SHT_NAMES: dict[int, str] = {
    SHT_NULL: "NULL",
    SHT_PROGBITS: "PROGBITS",
    SHT_SYMTAB: "SYMTAB",
    SHT_STRTAB: "STRTAB",
    SHT_NOBITS: "NOBITS",
    SHT_SYMTAB_SHNDX: "SYMTAB_SHNDX",
}

# Special section indices
SHN_UNDEF: int = 0
SHN_XINDEX: int = 0xFFFF

# Elf32_Ehdr after e_ident, Elf32_Shdr
_EHDR32 = struct.Struct("<HHIIIIIHHHHHH")
_SHDR32 = struct.Struct("<IIIIIIIIII")
EHDR32_SIZE: int = EI_NIDENT + _EHDR32.size
SHDR32_SIZE: int = _SHDR32.size


# ---------------------------------------------------------------------------
# Parsed structures
# ---------------------------------------------------------------------------

class ElfHeader:
    """Parsed Elf32_Ehdr fields."""
    __slots__ = (
        "ei_class", "ei_data", "e_type", "e_machine", "e_version",
        "e_entry", "e_phoff", "e_shoff", "e_flags", "e_ehsize",
        "e_phentsize", "e_phnum", "e_shentsize", "e_shnum", "e_shstrndx",
    )

    def __init__(self) -> None:
        self.ei_class: int = 0
        self.ei_data: int = 0
        self.e_type: int = 0
        self.e_machine: int = 0
        self.e_version: int = 0
        self.e_entry: int = 0
        self.e_phoff: int = 0
        self.e_shoff: int = 0
        self.e_flags: int = 0
        self.e_ehsize: int = 0
        self.e_phentsize: int = 0
        self.e_phnum: int = 0
        self.e_shentsize: int = 0
        self.e_shnum: int = 0
        self.e_shstrndx: int = 0


class SectionHeader:
    """Parsed Elf32_Shdr entry plus its table index and resolved name."""
    __slots__ = (
        "index", "sh_name", "sh_type", "sh_flags", "sh_addr",
        "sh_offset", "sh_size", "sh_link", "sh_info",
        "sh_addralign", "sh_entsize", "name",
    )

    def __init__(self, index: int = 0) -> None:
        self.index: int = index
        self.sh_name: int = 0
        self.sh_type: int = 0
        self.sh_flags: int = 0
        self.sh_addr: int = 0
        self.sh_offset: int = 0
        self.sh_size: int = 0
        self.sh_link: int = 0
        self.sh_info: int = 0
        self.sh_addralign: int = 0
        self.sh_entsize: int = 0
        self.name: str = ""

    @property
    def type_name(self) -> str:
        return _SHT_NAMES.get(self.sh_type, f"0x{self.sh_type:x}")

    def __repr__(self) -> str:
        return (
            f"SectionHeader(index={self.index}, name={self.name!r}, "
            f"type={self.type_name}, addr=0x{self.sh_addr:08x}, "
            f"size={self.sh_size})"
        )


@dataclass(frozen=True, slots=True)
class DataChunk:
    """A piece of section payload.

    Attributes:
        offset: Offset of ``data`` from the start of the section.
        data: The bytes of this piece.
    """
    offset: int
    data: bytes


# ---------------------------------------------------------------------------
# ELF Image
# ---------------------------------------------------------------------------

class ElfImage:
    """An open, validated ELF32 little-endian ARM file.

    Usage::

        image = ElfImage.open("eboot.elf")
        try:
            for section in image.iter_sections():
                print(section.name, section.type_name)
        finally:
            image.close()
    """

    def __init__(
        self,
        fh: BinaryIO,
        path: str,
        *,
        chunk_size: int = 0,
    ) -> None:
        """Wrap an already-open binary file handle.

        Args:
            fh: Binary file handle positioned anywhere; it becomes owned
                by the image.
            path: Path used in error messages.
            chunk_size: Split section payloads into chunks of this many
                bytes; ``0`` yields each payload as a single chunk.
        """
        self._fh: Optional[BinaryIO] = fh
        self._path = path
        self._chunk_size = chunk_size
        self._file_size: int = os.fstat(fh.fileno()).st_size
        self._header: ElfHeader = ElfHeader()
        self._sections: list[SectionHeader] = []
        self._string_tables: dict[int, bytes] = {}

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        chunk_size: int = 0,
        max_file_size: int = 0,
    ) -> ElfImage:
        """Open *path*, validate its header and read its section table.

        The file handle is closed again if validation fails.

        Raises:
            FileOpenError: The file cannot be opened or is too large.
            NotAnObjectFileError, WrongWordSizeError, WrongEndiannessError,
            WrongMachineError, MalformedObjectError: Validation failures.
        """
        path_str = str(path)
        try:
            fh = open(path_str, "rb")
        except OSError as exc:
            raise FileOpenError(
                f"open failed: {exc.strerror or exc}", path=path_str
            ) from exc

        image = cls(fh, path_str, chunk_size=chunk_size)
        try:
            if max_file_size and image.file_size > max_file_size:
                raise FileOpenError(
                    f"file too large: {image.file_size:,} bytes "
                    f"(max: {max_file_size:,} bytes)",
                    path=path_str,
                )
            image._parse_elf_header()
            image._parse_section_headers()
            image._resolve_section_names()
        except BaseException:
            image.close()
            raise
        return image

    # ------------------------------------------------------------------ #
    #  Public interface
    # ------------------------------------------------------------------ #

    @property
    def path(self) -> str:
        return self._path

    @property
    def file_size(self) -> int:
        return self._file_size

    @property
    def header(self) -> ElfHeader:
        return self._header

    @property
    def sections(self) -> list[SectionHeader]:
        """All section headers, including the null section at index 0."""
        return list(self._sections)

    @property
    def closed(self) -> bool:
        return self._fh is None

    def close(self) -> None:
        """Release the file handle and cached tables.  Idempotent."""
        if self._fh is not None:
            self._fh.close()
            self._fh = None
        self._string_tables.clear()

    def iter_sections(self) -> Iterator[SectionHeader]:
        """Yield section headers in file order, skipping the null section."""
        yield from self._sections[1:]

    def section(self, index: int) -> SectionHeader:
        if index <= SHN_UNDEF or index >= len(self._sections):
            raise MalformedObjectError(
                f"section index {index} out of range", path=self._path
            )
        return self._sections[index]

    def iter_data(self, section: SectionHeader) -> Iterator[DataChunk]:
        """Yield the payload of *section* as :class:`DataChunk` pieces."""
        if section.sh_type == SHT_NOBITS or section.sh_size == 0:
            return
        data = self.read(section.sh_offset, section.sh_size)
        step = self._chunk_size or len(data)
        for start in range(0, len(data), step):
            yield DataChunk(offset=start, data=data[start:start + step])

    def string_at(self, section_index: int, offset: int) -> str:
        """Return the NUL-terminated string at *offset* in a string table.

        Raises:
            MalformedObjectError: The section is not a string table or the
                offset lies outside it.
        """
        table = self._string_tables.get(section_index)
        if table is None:
            section = self.section(section_index)
            if section.sh_type != SHT_STRTAB:
                raise MalformedObjectError(
                    f"section {section_index} is not a string table",
                    path=self._path,
                )
            table = self.read(section.sh_offset, section.sh_size)
            self._string_tables[section_index] = table

        if offset < 0 or offset >= len(table):
            raise MalformedObjectError(
                f"string offset {offset} outside string table "
                f"{section_index} ({len(table)} bytes)",
                path=self._path,
            )
        end = table.find(b"\x00", offset)
        if end == -1:
            end = len(table)
        return table[offset:end].decode("utf-8", errors="replace")

    def read(self, offset: int, size: int) -> bytes:
        """Read exactly *size* bytes at *offset*.

        Raises:
            MalformedObjectError: The range runs past the end of the file.
        """
        if self._fh is None:
            raise ValueError("read from a closed ElfImage")
        if offset < 0 or size < 0 or offset + size > self._file_size:
            raise MalformedObjectError(
                f"range 0x{offset:x}+0x{size:x} exceeds file size "
                f"0x{self._file_size:x}",
                path=self._path,
            )
        self._fh.seek(offset)
        data = self._fh.read(size)
        if len(data) != size:
            raise MalformedObjectError(
                f"short read at 0x{offset:x}", path=self._path
            )
        return data

    # ------------------------------------------------------------------ #
    #  ELF header parsing
    # ------------------------------------------------------------------ #

    def _parse_elf_header(self) -> None:
        """Parse and validate the identification bytes and Elf32_Ehdr."""
        if self._file_size < EI_NIDENT:
            raise NotAnObjectFileError("not an ELF file", path=self._path)
        ident = self.read(0, EI_NIDENT)
        if ident[:4] != ELF_MAGIC:
            raise NotAnObjectFileError("not an ELF file", path=self._path)

        h = self._header
        h.ei_class = ident[4]
        h.ei_data = ident[5]

        if h.ei_class != ELFCLASS32:
            raise WrongWordSizeError(
                f"not a 32-bit binary (EI_CLASS={h.ei_class})", path=self._path
            )
        if h.ei_data != ELFDATA2LSB:
            raise WrongEndiannessError(
                f"not a little-endian binary (EI_DATA={h.ei_data})",
                path=self._path,
            )
        if self._file_size < EHDR32_SIZE:
            raise MalformedObjectError("truncated ELF header", path=self._path)

        (
            h.e_type, h.e_machine, h.e_version, h.e_entry,
            h.e_phoff, h.e_shoff, h.e_flags, h.e_ehsize,
            h.e_phentsize, h.e_phnum, h.e_shentsize, h.e_shnum,
            h.e_shstrndx,
        ) = _EHDR32.unpack(self.read(EI_NIDENT, _EHDR32.size))

        if h.e_machine != EM_ARM:
            raise WrongMachineError(
                f"not an ARM binary (e_machine={h.e_machine})", path=self._path
            )

    # ------------------------------------------------------------------ #
    #  Section header parsing
    # ------------------------------------------------------------------ #

    def _read_section_header(self, index: int) -> SectionHeader:
        h = self._header
        sh = SectionHeader(index)
        (
            sh.sh_name, sh.sh_type, sh.sh_flags, sh.sh_addr,
            sh.sh_offset, sh.sh_size, sh.sh_link, sh.sh_info,
            sh.sh_addralign, sh.sh_entsize,
        ) = _SHDR32.unpack(
            self.read(h.e_shoff + index * h.e_shentsize, SHDR32_SIZE)
        )
        return sh

    def _parse_section_headers(self) -> None:
        """Read the section header table, honouring extended numbering."""
        h = self._header
        if h.e_shoff == 0:
            return
        if h.e_shentsize < SHDR32_SIZE:
            raise MalformedObjectError(
                f"section header entry size {h.e_shentsize} too small",
                path=self._path,
            )

        null_section = self._read_section_header(0)
        # e_shnum == 0 means the real count lives in section 0's sh_size
        count = h.e_shnum or null_section.sh_size
        self._sections = [null_section]
        self._sections.extend(
            self._read_section_header(i) for i in range(1, count)
        )

    def _resolve_section_names(self) -> None:
        """Resolve section names via the section header string table."""
        if len(self._sections) <= 1:
            return
        shstrndx = self._header.e_shstrndx
        if shstrndx == SHN_XINDEX:
            shstrndx = self._sections[0].sh_link
        for sh in self._sections[1:]:
            sh.name = self.string_at(shstrndx, sh.sh_name)
