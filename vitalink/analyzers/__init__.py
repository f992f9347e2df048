"""
Vitalink Analyzers
==================

Stub-symbol correlation and NID import resolution.
"""

from vitalink.analyzers.correlator import correlate

__all__ = ["correlate"]
