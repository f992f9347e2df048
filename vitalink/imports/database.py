"""
NID Import Database
====================

The import resolver consults a database through four lookups, described
by :class:`ImportDatabase`.  :class:`NidDatabase` is an in-memory
implementation keyed by NID, loadable from the JSON descriptor used by
the Vita toolchain::

    {
      "SceLibKernel": {
        "nid": 3401283210,
        "modules": {
          "SceLibKernel": {
            "nid": "0xCAE9ACE6",
            "kernel": false,
            "functions": {"sceKernelExitProcess": "0x7595D9AA"},
            "variables": {"__stack_chk_guard": 2451495530}
          }
        }
      }
    }

NIDs may be given as integers or as ``0x``-prefixed hex strings.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol

from pydantic import ValidationError

from vitalink.core.errors import ImportDatabaseError
from vitalink.imports.models import (
    ImportFunction,
    ImportLibrary,
    ImportModule,
    ImportVariable,
)


class ImportDatabase(Protocol):
    """Read-only NID lookups used by the import resolver.

    Every method returns ``None`` when nothing is registered under *nid*.
    """

    def find_library(self, nid: int) -> Optional[Any]: ...

    def find_module(self, library: Any, nid: int) -> Optional[Any]: ...

    def find_function(self, module: Any, nid: int) -> Optional[Any]: ...

    def find_variable(self, module: Any, nid: int) -> Optional[Any]: ...


def parse_nid(value: Any, what: str) -> int:
    """Accept an int or a hex string and return a 32-bit NID."""
    if isinstance(value, bool):
        raise ImportDatabaseError(f"invalid NID for {what}: {value!r}")
    if isinstance(value, str):
        try:
            value = int(value, 0)
        except ValueError:
            raise ImportDatabaseError(
                f"invalid NID for {what}: {value!r}"
            ) from None
    if not isinstance(value, int) or not 0 <= value <= 0xFFFFFFFF:
        raise ImportDatabaseError(f"invalid NID for {what}: {value!r}")
    return value


class NidDatabase:
    """In-memory NID database.

    Usage::

        db = NidDatabase.from_json("db.json")
        lib = db.find_library(0xCAE9ACE6)
    """

    def __init__(self, libraries: Iterable[ImportLibrary] = ()) -> None:
        self._libraries: dict[int, ImportLibrary] = {}
        for library in libraries:
            self.add_library(library)

    # ------------------------------------------------------------------ #
    #  Lookups
    # ------------------------------------------------------------------ #

    def find_library(self, nid: int) -> Optional[ImportLibrary]:
        return self._libraries.get(nid)

    def find_module(self, library: ImportLibrary, nid: int) -> Optional[ImportModule]:
        return library.modules.get(nid)

    def find_function(self, module: ImportModule, nid: int) -> Optional[ImportFunction]:
        return module.functions.get(nid)

    def find_variable(self, module: ImportModule, nid: int) -> Optional[ImportVariable]:
        return module.variables.get(nid)

    # ------------------------------------------------------------------ #
    #  Construction
    # ------------------------------------------------------------------ #

    @property
    def libraries(self) -> list[ImportLibrary]:
        return list(self._libraries.values())

    def add_library(self, library: ImportLibrary) -> None:
        """Register *library*.

        Raises:
            ImportDatabaseError: Another library already uses its NID.
        """
        existing = self._libraries.get(library.nid)
        if existing is not None:
            raise ImportDatabaseError(
                f"libraries {existing.name} and {library.name} share "
                f"NID 0x{library.nid:08X}"
            )
        self._libraries[library.nid] = library

    def __len__(self) -> int:
        return len(self._libraries)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NidDatabase:
        """Build a database from a decoded JSON descriptor."""
        if not isinstance(data, dict):
            raise ImportDatabaseError("import database must be a JSON object")

        db = cls()
        try:
            for lib_name, lib_data in data.items():
                db.add_library(_build_library(lib_name, lib_data))
        except ValidationError as exc:
            raise ImportDatabaseError(str(exc)) from exc
        return db

    @classmethod
    def from_json(cls, path: str | Path) -> NidDatabase:
        """Load a JSON descriptor from *path*.

        Raises:
            ImportDatabaseError: The file cannot be read or is invalid.
        """
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except OSError as exc:
            raise ImportDatabaseError(f"cannot read {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ImportDatabaseError(f"{path}: invalid JSON: {exc}") from exc
        return cls.from_dict(data)


# ---------------------------------------------------------------------------
# Descriptor helpers
# ---------------------------------------------------------------------------

def _require_object(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ImportDatabaseError(f"{what} must be a JSON object")
    return value


def _build_exports(
    entries: Any,
    model: type[ImportFunction] | type[ImportVariable],
    what: str,
) -> dict[int, Any]:
    exports: dict[int, Any] = {}
    for name, raw_nid in _require_object(entries, what).items():
        nid = parse_nid(raw_nid, f"{what} {name}")
        if nid in exports:
            raise ImportDatabaseError(
                f"{what}: {exports[nid].name} and {name} share NID 0x{nid:08X}"
            )
        exports[nid] = model(name=name, nid=nid)
    return exports


def _build_module(name: str, data: Any) -> ImportModule:
    data = _require_object(data, f"module {name}")
    return ImportModule(
        name=name,
        nid=parse_nid(data.get("nid"), f"module {name}"),
        kernel=data.get("kernel", False),
        functions=_build_exports(
            data.get("functions", {}), ImportFunction, f"functions of {name}"
        ),
        variables=_build_exports(
            data.get("variables", {}), ImportVariable, f"variables of {name}"
        ),
    )


def _build_library(name: str, data: Any) -> ImportLibrary:
    data = _require_object(data, f"library {name}")
    modules: dict[int, ImportModule] = {}
    for mod_name, mod_data in _require_object(
        data.get("modules", {}), f"modules of {name}"
    ).items():
        module = _build_module(mod_name, mod_data)
        if module.nid in modules:
            raise ImportDatabaseError(
                f"library {name}: modules {modules[module.nid].name} and "
                f"{mod_name} share NID 0x{module.nid:08X}"
            )
        modules[module.nid] = module
    return ImportLibrary(
        name=name,
        nid=parse_nid(data.get("nid"), f"library {name}"),
        modules=modules,
    )
