"""Infrastructure Layer — cipher, external entity stores, and logging setup.

Invariants:
    - Infrastructure never imports from models/ or api/
    - Library failures (cryptography, SQLAlchemy) mapped to core/errors.py types

Design Decisions:
    - Thin wrappers over third-party clients, one concern per module
"""
