"""Domain Types — rich types that replace bare primitives across the package.

Invariants:
    - Token is always a str over [A-Za-z0-9_-] (see infrastructure/cipher.py)
    - A record is PERSISTED iff it holds a Token
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: PayloadTag values are written verbatim into the JSON payload
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

Token = NewType("Token", str)


# ─── Enums ───────────────────────────────────────────────────────

class MaterializationState(str, Enum):
    """Record lifecycle states. There is no DELETED state: nothing is stored."""
    NEW = "new"
    PERSISTED = "persisted"


class AttributeKind(str, Enum):
    """How an attribute's logical value maps onto its payload value."""
    PLAIN = "plain"
    SERIALIZED = "serialized"


class PayloadTag(str, Enum):
    """Type tags written next to every value in the encoded payload."""
    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STR = "str"
