"""Infrastructure Layer: database session management and logging setup.

Invariants:
    - Infrastructure never imports domain logic beyond core/errors.py
"""
