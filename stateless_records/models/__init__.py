"""Record Models — base class for stateless record types.

Invariants:
    - Every record type subclasses StatelessRecord and owns exactly one Schema

Design Decisions:
    - StatelessRecord re-exported here so record types import from one place
"""

from stateless_records.models.record import StatelessRecord, SaveResult  # noqa: F401
