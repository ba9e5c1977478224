"""API Layer — optional FastAPI integration for record errors.

Invariants:
    - Nothing in core/ or models/ imports from api/
"""
