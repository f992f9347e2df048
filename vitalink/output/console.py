"""
Vitalink Console Output
========================

Rich-powered terminal display of a loaded session: a summary panel,
one table per stub section, and the unresolved imports of a resolution
pass.
"""

from __future__ import annotations

from typing import Any, Optional

from rich.markup import escape
from rich.panel import Panel

from shared.console import VitaConsole

from vitalink.analyzers.resolver import ResolutionReport
from vitalink.core.models import Stub, StubKind
from vitalink.core.session import Session
from vitalink.parsers.stubs import STUB_SECTION_NAMES


def _name_of(entity: Any) -> str:
    if entity is None:
        return "[dim]-[/dim]"
    return escape(str(getattr(entity, "name", entity)))


def _stub_row(stub: Stub) -> tuple[str, ...]:
    return (
        f"0x{stub.address:08X}",
        escape(stub.display_name),
        f"0x{stub.library_nid:08X}",
        f"0x{stub.module_nid:08X}",
        f"0x{stub.target_nid:08X}",
        _name_of(stub.library),
        _name_of(stub.module),
        _name_of(stub.target),
    )


class StubConsoleOutput:
    """Renders sessions and resolution reports to a :class:`VitaConsole`."""

    def __init__(self, console: Optional[VitaConsole] = None) -> None:
        self._console = console or VitaConsole()

    def display(self, session: Session) -> None:
        self._display_summary(session)
        for kind in StubKind:
            self._display_stubs(session, kind)

    def _display_summary(self, session: Session) -> None:
        lines = [
            f"[bold]File:[/bold]            {escape(session.path)}",
            f"[bold]Function stubs:[/bold]  {len(session.fstubs)} "
            f"(section {session.fstubs_index or '-'})",
            f"[bold]Variable stubs:[/bold]  {len(session.vstubs)} "
            f"(section {session.vstubs_index or '-'})",
            f"[bold]Symbols:[/bold]         {len(session.symtab)}",
        ]
        self._console.print(Panel(
            "\n".join(lines),
            title="[bold bright_cyan]Vita Import Stubs[/bold bright_cyan]",
            border_style="bright_cyan",
        ))

    def _display_stubs(self, session: Session, kind: StubKind) -> None:
        stubs = session.stubs(kind)
        if session.stub_section_index(kind) == 0:
            return
        self._console.table(
            f"{STUB_SECTION_NAMES[kind]} ({len(stubs)})",
            ["Address", "Symbol", "Library NID", "Module NID", "Target NID",
             "Library", "Module", kind.value.capitalize()],
            [_stub_row(stub) for stub in stubs],
            styles=["bright_cyan", "bold", "dim", "dim", "dim", "", "", ""],
        )

    def display_report(self, report: ResolutionReport) -> None:
        if report.all_resolved:
            self._console.success(
                f"All {report.total} imports resolved"
            )
            return
        self._console.table(
            "Unresolved imports",
            ["Kind", "Address", "Symbol", "Missing", "NID"],
            [
                (
                    miss.kind.value,
                    f"0x{miss.address:08X}",
                    escape(miss.symbol),
                    miss.stage,
                    f"0x{miss.nid:08X}",
                )
                for miss in report.unresolved
            ],
            styles=["", "bright_cyan", "bold", "yellow", "dim"],
        )
        self._console.warning(
            f"{len(report.unresolved)} of {report.total} imports unresolved"
        )
