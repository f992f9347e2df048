"""
Import Resolver
================

Resolves every stub's library, module and target NIDs against an import
database.  A stub that cannot be resolved produces a warning and is left
unresolved; the pass always visits every stub of both kinds, and the
overall result is true only if all of them resolved.

Resolution may be run more than once on the same session (for example
against different databases); each run starts from a clean slate.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from shared.logger import VitaLogger

from vitalink.core.models import Stub, StubKind
from vitalink.core.session import Session
from vitalink.imports.database import ImportDatabase


class UnresolvedImport(BaseModel):
    """One stub that could not be resolved.

    Attributes:
        kind: Function or variable stub.
        address: Stub address.
        stage: Which lookup failed: ``library``, ``module``, ``function``
            or ``variable``.
        nid: The NID that was not found.
        symbol: Name of the symbol declaring the stub, or the
            unreferenced-stub placeholder.
        message: The diagnostic that was logged.
    """
    kind: StubKind
    address: int
    stage: str
    nid: int
    symbol: str
    message: str


class ResolutionReport(BaseModel):
    """Outcome of one resolution pass."""
    total: int = 0
    resolved: int = 0
    unresolved: list[UnresolvedImport] = Field(default_factory=list)

    @property
    def all_resolved(self) -> bool:
        return not self.unresolved


def _find_target(database: ImportDatabase, stub: Stub, module: Any) -> Optional[Any]:
    if stub.kind is StubKind.FUNCTION:
        return database.find_function(module, stub.target_nid)
    return database.find_variable(module, stub.target_nid)


def resolve_stub(stub: Stub, database: ImportDatabase) -> Optional[UnresolvedImport]:
    """Resolve one stub in place.

    Returns:
        ``None`` on success, otherwise a description of the first failed
        lookup.  On failure the stub keeps no references.
    """
    stub.clear_resolution()
    name = stub.display_name

    library = database.find_library(stub.library_nid)
    if library is None:
        return UnresolvedImport(
            kind=stub.kind, address=stub.address, stage="library",
            nid=stub.library_nid, symbol=name,
            message=(
                f"Unable to find library with NID 0x{stub.library_nid:08X} "
                f"for {stub.kind.value} symbol {name}"
            ),
        )

    module = database.find_module(library, stub.module_nid)
    if module is None:
        return UnresolvedImport(
            kind=stub.kind, address=stub.address, stage="module",
            nid=stub.module_nid, symbol=name,
            message=(
                f"Unable to find module with NID 0x{stub.module_nid:08X} "
                f"for {stub.kind.value} symbol {name}"
            ),
        )

    target = _find_target(database, stub, module)
    if target is None:
        return UnresolvedImport(
            kind=stub.kind, address=stub.address, stage=stub.kind.value,
            nid=stub.target_nid, symbol=name,
            message=(
                f"Unable to find {stub.kind.value} with NID "
                f"0x{stub.target_nid:08X} for symbol {name}"
            ),
        )

    stub.library = library
    stub.module = module
    stub.target = target
    return None


def resolve_stubs(
    stubs: Iterable[Stub],
    database: ImportDatabase,
    logger: VitaLogger,
    report: ResolutionReport | None = None,
) -> bool:
    """Resolve *stubs*, logging a warning for each miss.

    Returns:
        ``True`` if every stub resolved.
    """
    found_all = True
    for stub in stubs:
        miss = resolve_stub(stub, database)
        if report is not None:
            report.total += 1
        if miss is None:
            if report is not None:
                report.resolved += 1
            continue
        found_all = False
        logger.warning(miss.message)
        if report is not None:
            report.unresolved.append(miss)
    return found_all


def resolve_imports_report(
    session: Session,
    database: ImportDatabase,
    logger: VitaLogger | None = None,
) -> ResolutionReport:
    """Resolve every stub of *session* and return a detailed report."""
    logger = logger or VitaLogger("resolver")
    report = ResolutionReport()
    with logger.operation("resolve_imports"):
        for kind in StubKind:
            resolve_stubs(session.stubs(kind), database, logger, report)
        logger.debug(
            "Resolved %d of %d stubs", report.resolved, report.total
        )
    return report


def resolve_imports(
    session: Session,
    database: ImportDatabase,
    logger: VitaLogger | None = None,
) -> bool:
    """Resolve every stub of *session*.

    Returns:
        ``True`` only if every function and variable stub resolved.
    """
    return resolve_imports_report(session, database, logger).all_resolved
