"""
Vitalink Errors
================

Exception hierarchy for fatal load failures.

Every condition that makes a binary unusable has its own
:class:`LoadError` subclass with a stable ``tag`` string, so callers can
branch on the class and tools can print or serialise the tag.  Import
resolution misses are *not* exceptions; they are reported through the
resolver's return value and log stream.
"""

from __future__ import annotations


class VitalinkError(Exception):
    """Base class for every exception raised by vitalink."""

    tag: str = "vitalink-error"


class LoadError(VitalinkError):
    """A binary could not be loaded.  No session is produced."""

    tag = "load-error"

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


# ---------------------------------------------------------------------------
# File / format validation
# ---------------------------------------------------------------------------

class FileOpenError(LoadError):
    tag = "open-failed"


class NotAnObjectFileError(LoadError):
    tag = "not-an-object-file"


class WrongWordSizeError(LoadError):
    tag = "wrong-word-size"


class WrongEndiannessError(LoadError):
    tag = "wrong-endianness"


class WrongMachineError(LoadError):
    tag = "wrong-machine"


class MalformedObjectError(LoadError):
    """Header, section table, symbol record or string reference is inconsistent."""

    tag = "malformed-object"


# ---------------------------------------------------------------------------
# Section-level invariants
# ---------------------------------------------------------------------------

class DuplicateStubSectionError(LoadError):
    tag = "duplicate-stub-section"


class NoStubSectionsError(LoadError):
    tag = "no-stub-sections"


class MultipleSymbolTablesError(LoadError):
    tag = "multiple-symbol-tables"


class MissingSymbolTableError(LoadError):
    tag = "missing-symbol-table"


# ---------------------------------------------------------------------------
# Stub / symbol correlation
# ---------------------------------------------------------------------------

class CorrelationError(LoadError):
    """A global symbol in a stub section is inconsistent with the stubs."""

    tag = "correlation-error"


class SymbolTypeMismatchError(CorrelationError):
    tag = "symbol-type-mismatch"


class DanglingStubSymbolError(CorrelationError):
    tag = "dangling-stub-symbol"


class DuplicateStubSymbolError(CorrelationError):
    tag = "duplicate-stub-symbol"


# ---------------------------------------------------------------------------
# Session lifecycle / import database
# ---------------------------------------------------------------------------

class SessionReleasedError(VitalinkError):
    """A released session was accessed."""

    tag = "session-released"


class ImportDatabaseError(VitalinkError):
    """An import database descriptor could not be read."""

    tag = "import-database-error"
