"""
Stub-Symbol Correlator
=======================

Links the global symbols defined inside a stub section to the stub
record at the same address.  The link gives each stub the name it was
declared with, which the import resolver uses in its diagnostics.

Every global ``FUNC`` / ``OBJECT`` symbol defined in the stub section
must name exactly one stub:

* a symbol of the wrong kind for the section is an error,
* a symbol whose value matches no stub address is a dangling reference,
* two symbols naming the same stub are duplicates.

Stubs without a symbol are allowed.
"""

from __future__ import annotations

from typing import Sequence

from vitalink.core.errors import (
    DanglingStubSymbolError,
    DuplicateStubSymbolError,
    SymbolTypeMismatchError,
)
from vitalink.core.models import Stub, Symbol, SymbolBinding, SymbolKind

_STUB_SYMBOL_KINDS: frozenset[SymbolKind] = frozenset(
    {SymbolKind.FUNCTION, SymbolKind.OBJECT}
)


def correlate(
    symbols: Sequence[Symbol],
    stubs: Sequence[Stub],
    section_index: int,
    expected_kind: SymbolKind,
) -> int:
    """Attach symbols from *section_index* to the matching *stubs*.

    Args:
        symbols: The full symbol table, in table order.
        stubs: Stubs decoded from the section at *section_index*.
        section_index: Index of the stub section.
        expected_kind: ``FUNCTION`` for the function stub section,
            ``OBJECT`` for the variable stub section.

    Returns:
        Number of symbols attached.

    Raises:
        SymbolTypeMismatchError, DanglingStubSymbolError,
        DuplicateStubSymbolError: See module docstring.
    """
    attached = 0
    for sym in symbols:
        if sym.binding is not SymbolBinding.GLOBAL:
            continue
        if sym.kind not in _STUB_SYMBOL_KINDS:
            continue
        if sym.section_index != section_index:
            continue

        if sym.kind is not expected_kind:
            raise SymbolTypeMismatchError(
                f"Global symbol {sym.name} in section {section_index} "
                f"expected to have type {expected_kind.value}; "
                f"instead has type {sym.kind.value}"
            )

        stub = next((s for s in stubs if s.address == sym.value), None)
        if stub is None:
            raise DanglingStubSymbolError(
                f"Global symbol {sym.name} in section {section_index} "
                f"not pointing to a valid stub (0x{sym.value:08x})"
            )
        if stub.symbol is not None:
            raise DuplicateStubSymbolError(
                f"Stub at 0x{sym.value:08x} in section {section_index} "
                f"has duplicate symbols: {stub.symbol.name}, {sym.name}"
            )

        stub.symbol = sym
        attached += 1

    return attached
