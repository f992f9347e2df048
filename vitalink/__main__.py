"""
Vitalink Module Entry Point
============================

Allows running the CLI via: python -m vitalink
"""

from vitalink.cli import main

if __name__ == "__main__":
    main()
