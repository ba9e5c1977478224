"""Stateless Records — records that live entirely inside an encrypted, URL-safe token.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Docstring-only __init__.py: explicit imports only, no star exports
"""
