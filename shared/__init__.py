"""
Vitalink Shared Module
======================

Configuration, structured logging and console helpers used by every
vitalink component.
"""

from shared.config import VitalinkConfig

__all__ = ["VitalinkConfig"]
