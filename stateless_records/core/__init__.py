"""Core Layer — pure record logic: schema, payload codec, validation, callbacks.

Invariants:
    - No module in core/ imports from infrastructure/, models/ or api/
    - Nothing here performs IO; association lookups go through repository_protocols

Design Decisions:
    - Functional core separated from imperative shell (models/record.py orchestrates)
"""
