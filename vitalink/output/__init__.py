"""Vitalink output: Rich console rendering."""

from vitalink.output.console import StubConsoleOutput

__all__ = ["StubConsoleOutput"]
