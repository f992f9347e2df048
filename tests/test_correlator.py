"""Tests for stub-symbol correlation."""

from __future__ import annotations

import pytest

from vitalink.analyzers.correlator import correlate
from vitalink.core.errors import (
    CorrelationError,
    DanglingStubSymbolError,
    DuplicateStubSymbolError,
    SymbolTypeMismatchError,
)
from vitalink.core.models import (
    Stub,
    StubKind,
    Symbol,
    SymbolBinding,
    SymbolKind,
)

BASE = 0x81000100
SECTION = 4


def stubs(count: int = 4, kind: StubKind = StubKind.FUNCTION) -> list[Stub]:
    return [Stub(kind=kind, address=BASE + 16 * i) for i in range(count)]


def sym(
    name: str,
    value: int,
    *,
    kind: SymbolKind = SymbolKind.FUNCTION,
    binding: SymbolBinding = SymbolBinding.GLOBAL,
    section: int = SECTION,
    index: int = 1,
) -> Symbol:
    return Symbol(
        index=index, name=name, value=value, kind=kind,
        binding=binding, section_index=section,
    )


def test_attaches_symbol_to_matching_stub_only():
    table = stubs()
    target = sym("sceIoOpen", BASE + 32)
    attached = correlate([Symbol(), target], table, SECTION, SymbolKind.FUNCTION)

    assert attached == 1
    assert table[2].symbol is target
    assert all(s.symbol is None for i, s in enumerate(table) if i != 2)
    assert table[2].display_name == "sceIoOpen"
    assert table[0].display_name == "(unreferenced stub)"


def test_variable_section_expects_objects():
    table = stubs(2, StubKind.VARIABLE)
    guard = sym("__stack_chk_guard", BASE, kind=SymbolKind.OBJECT)
    correlate([guard], table, SECTION, SymbolKind.OBJECT)
    assert table[0].symbol is guard


@pytest.mark.parametrize(
    "ignored",
    [
        sym("local", BASE, binding=SymbolBinding.LOCAL),
        sym("weak", BASE, binding=SymbolBinding.WEAK),
        sym("notype", BASE, kind=SymbolKind.OTHER),
        sym("elsewhere", 0x1234, section=SECTION + 1),
        sym("wrong_kind_elsewhere", 0x1234, kind=SymbolKind.OBJECT, section=1),
    ],
)
def test_irrelevant_symbols_are_skipped(ignored):
    table = stubs()
    assert correlate([ignored], table, SECTION, SymbolKind.FUNCTION) == 0
    assert all(s.symbol is None for s in table)


def test_type_mismatch():
    with pytest.raises(SymbolTypeMismatchError) as info:
        correlate(
            [sym("errno", BASE, kind=SymbolKind.OBJECT)],
            stubs(), SECTION, SymbolKind.FUNCTION,
        )
    message = str(info.value)
    assert "errno" in message and f"section {SECTION}" in message
    assert "function" in message and "object" in message


def test_duplicate_symbols_for_one_stub():
    first = sym("sceIoOpen", BASE + 16, index=1)
    second = sym("sceIoOpenAlias", BASE + 16, index=2)
    with pytest.raises(DuplicateStubSymbolError) as info:
        correlate([first, second], stubs(), SECTION, SymbolKind.FUNCTION)
    message = str(info.value)
    assert "sceIoOpen" in message and "sceIoOpenAlias" in message
    assert f"{BASE + 16:08x}" in message


def test_dangling_symbol():
    with pytest.raises(DanglingStubSymbolError) as info:
        correlate(
            [sym("bogus", BASE + 8)], stubs(), SECTION, SymbolKind.FUNCTION,
        )
    assert "bogus" in str(info.value)
    assert isinstance(info.value, CorrelationError)
