"""Binary parsers: ELF image reader, stub section and symbol table loaders."""

from vitalink.parsers.elf_image import DataChunk, ElfImage, SectionHeader
from vitalink.parsers.stubs import load_stubs
from vitalink.parsers.symbols import load_symbols

__all__ = ["DataChunk", "ElfImage", "SectionHeader", "load_stubs", "load_symbols"]
