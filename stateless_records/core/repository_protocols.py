"""Boundary Protocols — contracts between the record core and external entity stores.

Invariants:
    - Core NEVER imports a concrete store — dependency arrows point inward only
    - lookup_by_primary_key returns None for unknown keys; it does not raise

Design Decisions:
    - Protocol over ABC: structural subtyping, so a target class exposing a
      lookup_by_primary_key classmethod serves as its own store
    - Synchronous: association reads happen inside attribute access, not in an event loop
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class EntityStore(Protocol):
    """Contract for the external store behind a belongs_to association."""
    def lookup_by_primary_key(self, primary_key: Any) -> Any | None: ...
