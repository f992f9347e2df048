"""
Vitalink Console Interface
===========================

Rich console used by the vitalink CLI for human-readable output.  Status
lines share one format (``[mark] LABEL: message``); tables share one
border and header style.

Logging does not go through here; see :mod:`shared.logger`.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from typing import Any, Sequence

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

_VITA_THEME = Theme(
    {
        "vita.ok": "bold green",
        "vita.warn": "bold yellow",
        "vita.fail": "bold red",
        "vita.border": "bright_cyan",
        "vita.header": "bold bright_magenta",
    }
)

# style, mark, label
_STATUS: dict[str, tuple[str, str, str]] = {
    "success": ("vita.ok", "✔", "OK"),
    "warning": ("vita.warn", "⚠", "WARNING"),
    "error": ("vita.fail", "✘", "ERROR"),
}


class VitaConsole:
    """Thin wrapper over :class:`rich.console.Console`.

    ``quiet`` silences everything, which the CLI uses while writing JSON
    to stdout.  ``record`` keeps a copy of the output for
    :meth:`export_text`.
    """

    def __init__(self, *, quiet: bool = False, record: bool = False) -> None:
        self._console = Console(
            theme=_VITA_THEME,
            quiet=quiet,
            record=record,
            highlight=False,
        )

    @property
    def rich(self) -> Console:
        return self._console

    def status(self, kind: str, message: str) -> None:
        """Print one status line; *kind* is ``success``, ``warning`` or ``error``.

        *message* is Rich markup; escape untrusted text first.
        """
        style, mark, label = _STATUS[kind]
        self._console.print(f"[{style}]\\[{mark}] {label}:[/{style}] {message}")

    def success(self, message: str) -> None:
        self.status("success", message)

    def warning(self, message: str) -> None:
        self.status("warning", message)

    def error(self, message: str) -> None:
        self.status("error", message)

    def table(
        self,
        title: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        *,
        styles: Sequence[str] = (),
    ) -> None:
        """Render *rows* under *columns*; ``styles[i]`` applies to column ``i``."""
        tbl = Table(
            title=title,
            border_style="vita.border",
            header_style="vita.header",
            padding=(0, 1),
        )
        for idx, col_name in enumerate(columns):
            tbl.add_column(col_name, style=styles[idx] if idx < len(styles) else "")
        for row in rows:
            tbl.add_row(*(str(cell) for cell in row))
        self._console.print(tbl)

    def print(self, *args: Any, **kwargs: Any) -> None:
        self._console.print(*args, **kwargs)

    def export_text(self) -> str:
        """Recorded output as plain text; needs ``record=True``."""
        return self._console.export_text()
