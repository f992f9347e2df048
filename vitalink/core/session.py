"""
Session Assembler
==================

Opens a Vita executable, validates it, and builds a :class:`Session`
holding its function stubs, variable stubs and symbol table.

Pipeline:
    1. Open the file and validate class / data encoding / machine
    2. Walk the section headers in file order
    3. Decode ``.vitalink.fstubs`` / ``.vitalink.vstubs`` (PROGBITS) and
       the one ``SHT_SYMTAB`` section as they are found
    4. Require at least one stub section and the symbol table
    5. Resolve extended section indexes from ``SHT_SYMTAB_SHNDX``
    6. Correlate global symbols with the stubs of each stub section

Either every step succeeds and the caller owns the returned session, or
everything acquired so far is released and a :class:`LoadError` is
raised.
"""

from __future__ import annotations

import functools
from contextlib import ExitStack
from pathlib import Path
from typing import Iterator, Optional

from shared.config import VitalinkConfig
from shared.logger import VitaLogger, from_config

from vitalink.analyzers.correlator import correlate
from vitalink.core.errors import (
    DuplicateStubSectionError,
    LoadError,
    MissingSymbolTableError,
    MultipleSymbolTablesError,
    NoStubSectionsError,
    SessionReleasedError,
)
from vitalink.core.models import Stub, StubKind, Symbol
from vitalink.parsers.elf_image import (
    SHN_UNDEF,
    SHT_PROGBITS,
    SHT_SYMTAB,
    SHT_SYMTAB_SHNDX,
    ElfImage,
    SectionHeader,
)
from vitalink.parsers.stubs import STUB_SECTION_NAMES, load_stubs
from vitalink.parsers.symbols import apply_extended_indexes, load_symbols


class Session:
    """A loaded binary and everything decoded from it.

    Created by :func:`load`.  The session owns the open file; call
    :meth:`release` (or use it as a context manager) when done.  After
    release every accessor raises :class:`SessionReleasedError`.
    """

    def __init__(self, image: ElfImage) -> None:
        self._image: Optional[ElfImage] = image
        self._path = image.path
        self._stubs: dict[StubKind, list[Stub]] = {
            StubKind.FUNCTION: [],
            StubKind.VARIABLE: [],
        }
        # SHN_UNDEF marks "no section of this kind"
        self._stub_sections: dict[StubKind, int] = {
            StubKind.FUNCTION: SHN_UNDEF,
            StubKind.VARIABLE: SHN_UNDEF,
        }
        self._symtab: Optional[list[Symbol]] = None
        self._symtab_index = SHN_UNDEF

    # ------------------------------------------------------------------ #
    #  Lifecycle
    # ------------------------------------------------------------------ #

    @property
    def released(self) -> bool:
        return self._image is None

    def release(self) -> None:
        """Close the file and drop all decoded data.

        Calling it again on a released session does nothing.
        """
        if self._image is None:
            return
        self._image.close()
        self._image = None
        self._stubs = {kind: [] for kind in StubKind}
        self._symtab = None

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()

    def _check(self) -> None:
        if self._image is None:
            raise SessionReleasedError(f"session for {self._path} was released")

    # ------------------------------------------------------------------ #
    #  Accessors
    # ------------------------------------------------------------------ #

    @property
    def path(self) -> str:
        return self._path

    @property
    def image(self) -> ElfImage:
        self._check()
        assert self._image is not None
        return self._image

    @property
    def fstubs(self) -> list[Stub]:
        """Function stubs in ascending address order."""
        return self.stubs(StubKind.FUNCTION)

    @property
    def vstubs(self) -> list[Stub]:
        """Variable stubs in ascending address order."""
        return self.stubs(StubKind.VARIABLE)

    @property
    def fstubs_index(self) -> int:
        """Section index of ``.vitalink.fstubs``, or 0 when absent."""
        return self._stub_sections[StubKind.FUNCTION]

    @property
    def vstubs_index(self) -> int:
        """Section index of ``.vitalink.vstubs``, or 0 when absent."""
        return self._stub_sections[StubKind.VARIABLE]

    @property
    def symtab(self) -> list[Symbol]:
        """The symbol table indexed by symbol number."""
        self._check()
        return self._symtab if self._symtab is not None else []

    def stubs(self, kind: StubKind) -> list[Stub]:
        self._check()
        return self._stubs[kind]

    def stub_section_index(self, kind: StubKind) -> int:
        return self._stub_sections[kind]

    def iter_stubs(self) -> Iterator[Stub]:
        """Yield function stubs, then variable stubs."""
        for kind in StubKind:
            yield from self.stubs(kind)

    def __repr__(self) -> str:
        if self.released:
            return f"Session({self._path!r}, released)"
        return (
            f"Session({self._path!r}, fstubs={len(self.fstubs)}, "
            f"vstubs={len(self.vstubs)}, symbols={len(self.symtab)})"
        )

    # ------------------------------------------------------------------ #
    #  Assembly steps
    # ------------------------------------------------------------------ #

    def _stub_kind_for(self, section: SectionHeader) -> Optional[StubKind]:
        if section.sh_type != SHT_PROGBITS:
            return None
        for kind, name in STUB_SECTION_NAMES.items():
            if section.name == name:
                return kind
        return None

    def _load_stub_section(
        self, section: SectionHeader, kind: StubKind, logger: VitaLogger
    ) -> None:
        if self._stub_sections[kind] != SHN_UNDEF:
            raise DuplicateStubSectionError(
                f"Multiple {STUB_SECTION_NAMES[kind]} sections in binary"
            )
        self._stub_sections[kind] = section.index
        self._stubs[kind] = load_stubs(section, self.image.iter_data(section), kind)
        logger.debug(
            "Loaded %d %s stubs from section %d (%s) at 0x%08x",
            len(self._stubs[kind]), kind.value, section.index,
            section.name, section.sh_addr,
        )

    def _load_symbol_table(self, section: SectionHeader, logger: VitaLogger) -> None:
        if self._symtab is not None:
            raise MultipleSymbolTablesError(
                "ELF file appears to have multiple symbol tables"
            )
        self._symtab_index = section.index
        image = self.image
        self._symtab = load_symbols(
            section,
            image.iter_data(section),
            functools.partial(image.string_at, section.sh_link),
        )
        logger.debug(
            "Loaded %d symbols from section %d (%s)",
            len(self._symtab), section.index, section.name,
        )

    def _apply_extended_indexes(
        self, sections: list[SectionHeader], logger: VitaLogger
    ) -> None:
        assert self._symtab is not None
        for section in sections:
            if section.sh_link != self._symtab_index:
                continue
            updated = apply_extended_indexes(
                self._symtab, self.image.iter_data(section), section
            )
            logger.debug(
                "Resolved %d extended section indexes from section %d (%s)",
                updated, section.index, section.name,
            )

    def _assemble(self, logger: VitaLogger) -> None:
        shndx_sections: list[SectionHeader] = []
        for section in self.image.iter_sections():
            kind = self._stub_kind_for(section)
            if kind is not None:
                self._load_stub_section(section, kind, logger)
            if section.sh_type == SHT_SYMTAB:
                self._load_symbol_table(section, logger)
            elif section.sh_type == SHT_SYMTAB_SHNDX:
                shndx_sections.append(section)

        if all(index == SHN_UNDEF for index in self._stub_sections.values()):
            raise NoStubSectionsError(
                "No .vitalink stub sections in binary, probably not a Vita binary"
            )
        if self._symtab is None:
            raise MissingSymbolTableError(
                "No symbol table in binary, perhaps stripped out"
            )
        self._apply_extended_indexes(shndx_sections, logger)

        for kind in StubKind:
            index = self._stub_sections[kind]
            if index == SHN_UNDEF:
                continue
            attached = correlate(
                self._symtab, self._stubs[kind], index, kind.symbol_kind
            )
            logger.debug(
                "Correlated %d of %d %s stubs with symbols",
                attached, len(self._stubs[kind]), kind.value,
            )


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def load(
    path: str | Path,
    *,
    config: VitalinkConfig | None = None,
    logger: VitaLogger | None = None,
) -> Session:
    """Open and fully decode one binary.

    Args:
        path: Path to the ELF file.
        config: Settings; defaults are used if not provided.
        logger: Logger instance.  A new one is created if not provided.

    Returns:
        A :class:`Session` owned by the caller.

    Raises:
        LoadError: The binary is unsupported or inconsistent.  No session
            or open file survives the failure.
    """
    config = config or VitalinkConfig()
    logger = logger or from_config("session", config)
    path_str = str(path)

    try:
        image = ElfImage.open(
            path_str,
            chunk_size=config.link.chunk_size,
            max_file_size=config.link.max_file_size,
        )
        session = Session(image)
        with ExitStack() as cleanup:
            cleanup.callback(session.release)
            with logger.operation("load"), logger.timed(f"load {path_str}"):
                session._assemble(logger)
            cleanup.pop_all()
    except LoadError as exc:
        if exc.path is None:
            exc.path = path_str
        logger.debug("Load of %s failed [%s]: %s", path_str, exc.tag, exc.message)
        raise

    logger.debug("Loaded %r", session)
    return session


def release(session: Session) -> None:
    """Release *session*; see :meth:`Session.release`."""
    session.release()
