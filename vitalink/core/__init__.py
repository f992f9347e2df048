"""Vitalink core: data models, errors and the session assembler."""
