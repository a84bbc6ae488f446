"""Database Package: declarative Base shared by models and migrations.

Invariants:
    - Base lives here so models never import infrastructure/
"""
