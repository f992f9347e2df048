"""
Vitalink Data Models
=====================

Pydantic models for the records extracted from a Vita executable: the
symbol table entries and the import stubs found in the
``.vitalink.fstubs`` / ``.vitalink.vstubs`` sections.

A :class:`Stub` is created by the stub section loader, receives its
``symbol`` back-reference from the correlator and its ``library`` /
``module`` / ``target`` references from the import resolver.

References:
    - TIS Committee. (1995). Executable and Linkable Format (ELF) Specification.
    - ARM. (2022). ELF for the Arm Architecture (AAELF32).
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class SymbolKind(str, enum.Enum):
    """Symbol type, reduced to what stub correlation cares about."""
    FUNCTION = "function"
    OBJECT = "object"
    OTHER = "other"


class SymbolBinding(str, enum.Enum):
    """Symbol binding."""
    GLOBAL = "global"
    LOCAL = "local"
    WEAK = "weak"
    OTHER = "other"


class StubKind(str, enum.Enum):
    """Which stub section a stub came from.

    Function stubs are named by ``FUNC`` symbols and resolve to database
    functions; variable stubs are named by ``OBJECT`` symbols and resolve
    to database variables.
    """
    FUNCTION = "function"
    VARIABLE = "variable"

    @property
    def symbol_kind(self) -> SymbolKind:
        """The symbol kind expected for globals defined in this stub section."""
        if self is StubKind.FUNCTION:
            return SymbolKind.FUNCTION
        return SymbolKind.OBJECT


# ---------------------------------------------------------------------------
# Symbol table
# ---------------------------------------------------------------------------

class Symbol(BaseModel):
    """One entry of the binary's symbol table.

    Attributes:
        index: Position in the symbol table.
        name: Symbol name from the linked string table.
        value: Symbol value (an address for defined symbols).
        kind: Classified symbol type.
        binding: Classified symbol binding.
        section_index: Index of the section defining the symbol.
        raw_type: Numeric ``STT_*`` value.
        raw_binding: Numeric ``STB_*`` value.
    """
    index: int = 0
    name: str = ""
    value: int = 0
    kind: SymbolKind = SymbolKind.OTHER
    binding: SymbolBinding = SymbolBinding.LOCAL
    section_index: int = 0
    raw_type: int = 0
    raw_binding: int = 0


# ---------------------------------------------------------------------------
# Import stubs
# ---------------------------------------------------------------------------

UNREFERENCED_STUB: str = "(unreferenced stub)"


class Stub(BaseModel):
    """A 16-byte import stub record.

    The three NIDs identify the library, the module inside it and the
    function or variable inside the module.  The reserved fourth word of
    the on-disk record is not kept.

    ``library``, ``module`` and ``target`` hold whatever the import
    database returned and are either all set or all ``None``.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: StubKind
    address: int = 0
    library_nid: int = 0
    module_nid: int = 0
    target_nid: int = 0
    symbol: Optional[Symbol] = None
    library: Optional[Any] = None
    module: Optional[Any] = None
    target: Optional[Any] = None

    @property
    def display_name(self) -> str:
        """The correlated symbol name, or a placeholder for anonymous stubs."""
        if self.symbol is not None:
            return self.symbol.name
        return UNREFERENCED_STUB

    @property
    def resolved(self) -> bool:
        return (
            self.library is not None
            and self.module is not None
            and self.target is not None
        )

    def clear_resolution(self) -> None:
        """Drop any references attached by a previous resolution run."""
        self.library = None
        self.module = None
        self.target = None

    def summary(self) -> dict[str, Any]:
        """Return a JSON-friendly view of the stub."""
        return {
            "kind": self.kind.value,
            "address": self.address,
            "library_nid": self.library_nid,
            "module_nid": self.module_nid,
            "target_nid": self.target_nid,
            "symbol": self.symbol.name if self.symbol is not None else None,
            "library": getattr(self.library, "name", None),
            "module": getattr(self.module, "name", None),
            "target": getattr(self.target, "name", None),
        }
