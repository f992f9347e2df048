"""Shared fixtures: a small ELF32 writer for synthetic Vita binaries."""

from __future__ import annotations

import logging
import struct
from pathlib import Path
from typing import Optional

import pytest

from shared.logger import VitaLogger

from vitalink.imports.database import NidDatabase

SHT_PROGBITS = 1
SHT_SYMTAB = 2
SHT_STRTAB = 3
SHT_SYMTAB_SHNDX = 18

STT_NOTYPE = 0
STT_OBJECT = 1
STT_FUNC = 2
STT_SECTION = 3

STB_LOCAL = 0
STB_GLOBAL = 1
STB_WEAK = 2

FSTUBS_ADDR = 0x81000100
VSTUBS_ADDR = 0x81000200
TEXT_ADDR = 0x81000000

LIB_KERNEL = 0xCAE9ACE6
MOD_KERNEL = 0xCAE9ACE6
LIB_IO = 0xF2FF276E
MOD_IO = 0xF2FF276E
NID_EXIT_PROCESS = 0x7595D9AA
NID_OPEN = 0x6C60AC61
NID_CLOSE = 0xC70B8886
NID_STACK_GUARD = 0x93B8AA67
NID_ERRNO = 0x2A6E9F6C


class _Section:
    def __init__(self, name, sh_type, data, addr, link, info, entsize, flags):
        self.name = name
        self.sh_type = sh_type
        self.data = data
        self.addr = addr
        self.link = link
        self.info = info
        self.entsize = entsize
        self.flags = flags


class ElfBuilder:
    """Writes minimal ELF32 files with arbitrary sections."""

    def __init__(self, *, ei_class: int = 1, ei_data: int = 1, machine: int = 40) -> None:
        self.ei_class = ei_class
        self.ei_data = ei_data
        self.machine = machine
        self._sections: list[_Section] = []

    def add_section(
        self,
        name: str,
        sh_type: int,
        data: bytes = b"",
        *,
        addr: int = 0,
        link: int = 0,
        info: int = 0,
        entsize: int = 0,
        flags: int = 0,
    ) -> int:
        self._sections.append(
            _Section(name, sh_type, data, addr, link, info, entsize, flags)
        )
        return len(self._sections)

    def add_stubs(
        self,
        name: str,
        addr: int,
        entries: list[tuple[int, int, int]],
        *,
        reserved: int = 0,
    ) -> int:
        data = b"".join(
            struct.pack("<IIII", lib, mod, target, reserved)
            for lib, mod, target in entries
        )
        return self.add_section(name, SHT_PROGBITS, data, addr=addr, flags=0x6)

    def add_symtab(
        self,
        symbols: list[tuple[str, int, int, int, int]],
        *,
        entsize: int = 16,
        name: str = ".symtab",
    ) -> int:
        """Add a string table and a symbol table.

        ``symbols`` holds ``(name, value, st_type, st_bind, shndx)``
        tuples; the null symbol is prepended automatically.  An int
        *name* is written as a raw ``st_name`` offset.  Locals must come
        first for ``sh_info`` to be right.
        """
        strtab = b"\x00"
        records = [b"\x00" * entsize]
        num_locals = 1
        for sym_name, value, st_type, st_bind, shndx in symbols:
            if isinstance(sym_name, int):
                name_off = sym_name
            else:
                name_off = len(strtab)
                strtab += sym_name.encode() + b"\x00"
            record = struct.pack(
                "<IIIBBH", name_off, value, 4, (st_bind << 4) | st_type, 0, shndx
            )
            records.append(record.ljust(entsize, b"\x00"))
            if st_bind == STB_LOCAL:
                num_locals += 1
        strtab_index = self.add_section(".strtab" if name == ".symtab" else name + "str", SHT_STRTAB, strtab)
        return self.add_section(
            name, SHT_SYMTAB, b"".join(records),
            link=strtab_index, info=num_locals, entsize=entsize,
        )

    def build(self) -> bytes:
        sections = list(self._sections)
        sections.append(_Section(".shstrtab", SHT_STRTAB, b"", 0, 0, 0, 0, 0))

        shstrtab = b"\x00"
        name_offsets = []
        for sec in sections:
            name_offsets.append(len(shstrtab))
            shstrtab += sec.name.encode() + b"\x00"
        sections[-1].data = shstrtab

        blob = bytearray(b"\x00" * 52)
        offsets = []
        for sec in sections:
            while len(blob) % 4:
                blob.append(0)
            offsets.append(len(blob))
            blob += sec.data
        while len(blob) % 4:
            blob.append(0)

        shoff = len(blob)
        shnum = len(sections) + 1
        blob += b"\x00" * 40
        for sec, name_off, offset in zip(sections, name_offsets, offsets):
            blob += struct.pack(
                "<IIIIIIIIII",
                name_off, sec.sh_type, sec.flags, sec.addr, offset,
                len(sec.data), sec.link, sec.info, 4, sec.entsize,
            )

        ident = b"\x7fELF" + bytes([self.ei_class, self.ei_data, 1, 0]) + b"\x00" * 8
        header = ident + struct.pack(
            "<HHIIIIIHHHHHH",
            2, self.machine, 1, TEXT_ADDR, 0, shoff, 0x05000000,
            52, 0, 0, 40, shnum, shnum - 1,
        )
        blob[:52] = header
        return bytes(blob)

    def write(self, path: Path) -> Path:
        path.write_bytes(self.build())
        return path


def vita_builder() -> ElfBuilder:
    """A well-formed binary: 3 function stubs, 2 variable stubs.

    Section indexes: 1 .text, 2 .vitalink.fstubs, 3 .vitalink.vstubs,
    4 .strtab, 5 .symtab, 6 .shstrtab.
    """
    builder = ElfBuilder()
    builder.add_section(".text", SHT_PROGBITS, b"\x00" * 32, addr=TEXT_ADDR, flags=0x6)
    builder.add_stubs(".vitalink.fstubs", FSTUBS_ADDR, [
        (LIB_KERNEL, MOD_KERNEL, NID_EXIT_PROCESS),
        (LIB_IO, MOD_IO, NID_OPEN),
        (LIB_IO, MOD_IO, NID_CLOSE),
    ])
    builder.add_stubs(".vitalink.vstubs", VSTUBS_ADDR, [
        (LIB_KERNEL, MOD_KERNEL, NID_STACK_GUARD),
        (LIB_KERNEL, MOD_KERNEL, NID_ERRNO),
    ])
    builder.add_symtab([
        ("crt0.o", 0, 4, STB_LOCAL, 0xFFF1),
        ("local_helper", TEXT_ADDR + 8, STT_FUNC, STB_LOCAL, 1),
        ("main", TEXT_ADDR, STT_FUNC, STB_GLOBAL, 1),
        ("sceKernelExitProcess", FSTUBS_ADDR, STT_FUNC, STB_GLOBAL, 2),
        ("sceIoOpen", FSTUBS_ADDR + 16, STT_FUNC, STB_GLOBAL, 2),
        ("__stack_chk_guard", VSTUBS_ADDR, STT_OBJECT, STB_GLOBAL, 3),
        ("weak_alias", FSTUBS_ADDR + 32, STT_FUNC, STB_WEAK, 2),
    ])
    return builder


def vita_database() -> NidDatabase:
    """A database that resolves every stub of :func:`vita_builder`."""
    return NidDatabase.from_dict({
        "SceLibKernel": {
            "nid": LIB_KERNEL,
            "modules": {
                "SceLibKernel": {
                    "nid": MOD_KERNEL,
                    "functions": {"sceKernelExitProcess": NID_EXIT_PROCESS},
                    "variables": {
                        "__stack_chk_guard": NID_STACK_GUARD,
                        "errno": hex(NID_ERRNO),
                    },
                },
            },
        },
        "SceIofilemgr": {
            "nid": LIB_IO,
            "modules": {
                "SceIofilemgr": {
                    "nid": MOD_IO,
                    "functions": {
                        "sceIoOpen": NID_OPEN,
                        "sceIoClose": NID_CLOSE,
                    },
                },
            },
        },
    })


class RecordingHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def messages(self, level: Optional[int] = None) -> list[str]:
        return [
            r.getMessage() for r in self.records
            if level is None or r.levelno == level
        ]


@pytest.fixture
def vita_elf(tmp_path: Path) -> Path:
    return vita_builder().write(tmp_path / "eboot.elf")


@pytest.fixture
def database() -> NidDatabase:
    return vita_database()


@pytest.fixture
def quiet_logger() -> tuple[VitaLogger, RecordingHandler]:
    logger = VitaLogger("test", log_level="DEBUG", console_output=False)
    handler = RecordingHandler()
    logger.underlying.addHandler(handler)
    return logger, handler
