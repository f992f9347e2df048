"""
Vitalink CLI -- Vita Import Stub Extractor
===========================================

Click-based command-line interface: load a Vita executable, list its
import stubs and, given an import database, resolve them.

Usage::

    # List stubs
    vitalink eboot.elf

    # Resolve against a NID database
    vitalink eboot.elf --db db.json

    # Machine-readable output
    vitalink eboot.elf --db db.json --json

Exit status is 0 on success, 1 when loading fails, the database cannot
be read, or any import is left unresolved.

References:
    - Click documentation: https://click.palletsprojects.com/
"""

from __future__ import annotations

import json
import sys
from typing import Optional

import click
from rich.markup import escape

from shared.config import VitalinkConfig
from shared.console import VitaConsole
from shared.logger import from_config

from vitalink.analyzers.resolver import ResolutionReport, resolve_imports_report
from vitalink.core.errors import ImportDatabaseError, LoadError
from vitalink.core.session import Session, load
from vitalink.imports.database import NidDatabase
from vitalink.output.console import StubConsoleOutput


def _session_json(session: Session, report: Optional[ResolutionReport]) -> dict:
    data: dict = {
        "path": session.path,
        "fstubs_section": session.fstubs_index,
        "vstubs_section": session.vstubs_index,
        "symbols": len(session.symtab),
        "stubs": [stub.summary() for stub in session.iter_stubs()],
    }
    if report is not None:
        data["resolution"] = {
            "all_resolved": report.all_resolved,
            **report.model_dump(mode="json"),
        }
    return data


@click.command("vitalink")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--db", "-d",
    "db_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="NID import database (JSON).  Overrides link.import_db.",
)
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Configuration file (TOML).",
)
@click.option(
    "--chunk-size",
    type=click.IntRange(min=0),
    default=None,
    help="Deliver section data in chunks of this many bytes.",
)
@click.option(
    "--json", "json_output",
    is_flag=True,
    default=False,
    help="Output results as JSON to stdout.",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)
def vitalink_cli(
    path: str,
    db_path: str | None,
    config_path: str | None,
    chunk_size: int | None,
    json_output: bool,
    verbose: bool,
) -> None:
    """Vitalink -- Vita import stub extractor.

    PATH is the Vita ELF executable to inspect.
    """
    console = VitaConsole(quiet=json_output)

    try:
        config = VitalinkConfig.load(config_path)
    except (OSError, ValueError) as exc:
        console.error(escape(f"Invalid configuration: {exc}"))
        sys.exit(1)

    if chunk_size is not None:
        config.link.chunk_size = chunk_size
    if verbose:
        config.global_settings.debug = True
    logger = from_config("cli", config)
    logger.debug("Configuration: %s", config.to_dict())

    database: Optional[NidDatabase] = None
    db_source = db_path or config.link.import_db or None
    if db_source:
        try:
            database = NidDatabase.from_json(db_source)
        except ImportDatabaseError as exc:
            console.error(escape(f"Cannot load import database: {exc}"))
            sys.exit(1)

    try:
        session = load(path, config=config, logger=logger)
    except LoadError as exc:
        console.error(escape(f"[{exc.tag}] {exc}"))
        sys.exit(1)

    with session:
        report: Optional[ResolutionReport] = None
        if database is not None:
            report = resolve_imports_report(session, database, logger)

        if json_output:
            click.echo(json.dumps(_session_json(session, report), indent=2))
        else:
            output = StubConsoleOutput(console)
            output.display(session)
            if report is not None:
                output.display_report(report)

    if report is not None and not report.all_resolved:
        sys.exit(1)


def main() -> None:
    """Entry point for ``python -m vitalink``."""
    vitalink_cli()


if __name__ == "__main__":
    main()
