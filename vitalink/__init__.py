"""
Vitalink -- Vita Import Stub Extractor
=======================================

Extracts the import stubs of a 32-bit ARM Vita executable, names them
from the symbol table, and resolves their library / module / target NIDs
against an import database.

Usage::

    from vitalink import NidDatabase, load, resolve_imports

    with load("eboot.elf") as session:
        ok = resolve_imports(session, NidDatabase.from_json("db.json"))
        for stub in session.fstubs:
            print(hex(stub.address), stub.display_name, stub.target)
"""

from vitalink.analyzers.resolver import (
    ResolutionReport,
    UnresolvedImport,
    resolve_imports,
    resolve_imports_report,
)
from vitalink.core.errors import LoadError, VitalinkError
from vitalink.core.models import Stub, StubKind, Symbol, SymbolBinding, SymbolKind
from vitalink.core.session import Session, load, release
from vitalink.imports.database import ImportDatabase, NidDatabase

__version__ = "1.0.0"
__all__ = [
    "ImportDatabase",
    "LoadError",
    "NidDatabase",
    "ResolutionReport",
    "Session",
    "Stub",
    "StubKind",
    "Symbol",
    "SymbolBinding",
    "SymbolKind",
    "UnresolvedImport",
    "VitalinkError",
    "load",
    "release",
    "resolve_imports",
    "resolve_imports_report",
]
