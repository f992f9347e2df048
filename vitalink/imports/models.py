"""
Import Database Models
=======================

Pydantic models for the entities of a NID import database: libraries,
the modules they export, and the functions and variables each module
provides.  NIDs are opaque 32-bit keys assigned by the platform vendor.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ImportFunction(BaseModel):
    """A function exported by a module."""
    name: str
    nid: int = Field(ge=0, le=0xFFFFFFFF)


class ImportVariable(BaseModel):
    """A variable exported by a module."""
    name: str
    nid: int = Field(ge=0, le=0xFFFFFFFF)


class ImportModule(BaseModel):
    """A module inside a library.

    Attributes:
        name: Module name.
        nid: Module NID.
        kernel: Whether the module is a kernel export.
        functions: Exported functions keyed by NID.
        variables: Exported variables keyed by NID.
    """
    name: str
    nid: int = Field(ge=0, le=0xFFFFFFFF)
    kernel: bool = False
    functions: dict[int, ImportFunction] = Field(default_factory=dict)
    variables: dict[int, ImportVariable] = Field(default_factory=dict)


class ImportLibrary(BaseModel):
    """A system library and the modules it contains, keyed by NID."""
    name: str
    nid: int = Field(ge=0, le=0xFFFFFFFF)
    modules: dict[int, ImportModule] = Field(default_factory=dict)
