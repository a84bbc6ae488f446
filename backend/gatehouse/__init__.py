"""Gatehouse: event gate allocation and participation for a virtual-airline platform.

Invariants:
    - Importing the package has no side effects (no engine, no logging setup)
"""

__version__ = "1.0.0"
