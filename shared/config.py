"""
Vitalink Configuration
=======================

Settings live in a TOML file with two tables::

    [global]            # logging
    log_level = "INFO"
    log_file = ""
    log_json = false
    debug = false

    [link]              # stub extraction / import resolution
    chunk_size = 0
    import_db = ""
    max_file_size = 268435456

Keys that are absent take the dataclass defaults below; keys this
version does not know are ignored.

References:
    - TOML v1.0.0 Specification. https://toml.io/en/v1.0.0
"""

from __future__ import annotations

import sys
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, TypeVar

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

# config.toml next to the shared/ and vitalink/ packages
DEFAULT_CONFIG_PATH: Path = Path(__file__).resolve().parent.parent / "config.toml"

_Section = TypeVar("_Section")


@dataclass(slots=True)
class LinkConfig:
    """Stub extraction and import resolution.

    Attributes:
        chunk_size: Size of the pieces section data is handed to the stub
            and symbol loaders in; ``0`` hands over each section whole.
        import_db: NID database used when the CLI gets no ``--db``.
        max_file_size: Inputs larger than this are refused; ``0`` means
            no limit.
    """

    chunk_size: int = 0
    import_db: str = ""
    max_file_size: int = 268_435_456  # 256 MiB

    def validate(self) -> None:
        if self.chunk_size < 0:
            raise ValueError(f"link.chunk_size must be >= 0, got {self.chunk_size}")
        if self.max_file_size < 0:
            raise ValueError(
                f"link.max_file_size must be >= 0, got {self.max_file_size}"
            )


@dataclass(slots=True)
class GlobalConfig:
    """Logging verbosity and destinations."""

    log_level: str = "INFO"
    log_file: str = ""
    log_json: bool = False
    debug: bool = False
    version: str = "1.0.0"


@dataclass(slots=True)
class VitalinkConfig:
    """Both configuration tables.

    >>> VitalinkConfig().link.chunk_size
    0
    """

    global_settings: GlobalConfig = field(default_factory=GlobalConfig)
    link: LinkConfig = field(default_factory=LinkConfig)

    @classmethod
    def load(cls, path: str | Path | None = None) -> VitalinkConfig:
        """Read *path*, or ``DEFAULT_CONFIG_PATH`` when *path* is ``None``.

        A missing default file yields the defaults.

        Raises:
            FileNotFoundError: *path* was given and does not exist.
            ValueError: The file is not valid TOML, or a value has the wrong
                type or is out of range.
        """
        config_path = DEFAULT_CONFIG_PATH if path is None else Path(path)
        if not config_path.is_file():
            if path is None:
                return cls()
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with config_path.open("rb") as fh:
            raw: dict[str, Any] = tomllib.load(fh)

        config = cls(
            global_settings=_section(GlobalConfig, "global", raw.get("global")),
            link=_section(LinkConfig, "link", raw.get("link")),
        )
        config.link.validate()
        return config

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _section(section_type: type[_Section], table: str, data: Any) -> _Section:
    """Build *section_type* from the TOML table *table*.

    Unknown keys are dropped.  Each known key must have the type of its
    default value (an int is not accepted for a bool, nor the reverse).
    """
    if data is None:
        return section_type()
    if not isinstance(data, dict):
        raise ValueError(f"[{table}] must be a table")
    defaults = {f.name: f.default for f in fields(section_type)}  # type: ignore[arg-type]
    values: dict[str, Any] = {}
    for key, value in data.items():
        if key not in defaults:
            continue
        expected = type(defaults[key])
        if not isinstance(value, expected) or isinstance(value, bool) is not (expected is bool):
            raise ValueError(
                f"{table}.{key} must be {expected.__name__}, got {value!r}"
            )
        values[key] = value
    return section_type(**values)
