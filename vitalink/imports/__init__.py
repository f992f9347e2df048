"""NID import database interface, models and in-memory implementation."""

from vitalink.imports.database import ImportDatabase, NidDatabase
from vitalink.imports.models import (
    ImportFunction,
    ImportLibrary,
    ImportModule,
    ImportVariable,
)

__all__ = [
    "ImportDatabase",
    "ImportFunction",
    "ImportLibrary",
    "ImportModule",
    "ImportVariable",
    "NidDatabase",
]
