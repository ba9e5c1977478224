"""Error Hierarchy — typed, categorized exceptions for every stateless-record failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Token failures (DecodeError) never reach callers of find(); they become RecordNotFound
    - RecordNotFound never says whether a token was malformed, forged or merely stale
    - to_response() produces the REST envelope used by api/error_handlers.py

Design Decisions:
    - Single hierarchy with StatelessRecordError base: one handler catches all
    - TypeMismatchError also subclasses TypeError and SchemaDefinitionError also
      subclasses ValueError, so callers catching the builtin classes keep working
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DECODING = "decoding"
    CONFIGURATION = "configuration"
    SCHEMA = "schema"
    TYPE = "type"
    EXTERNAL = "external"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    record_type: str | None = None
    attribute: str | None = None
    debug_info: dict[str, Any] | None = None


class StatelessRecordError(Exception):
    """Base exception for all stateless-record errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "record_type": self.context.record_type,
                    "attribute": self.context.attribute,
                },
            }
        }


# ─── Token Errors ───────────────────────────────────────────────

class ConfigurationError(StatelessRecordError):
    """No secret configured when a token is encoded or decoded."""
    def __init__(self, message: str | None = None, context: ErrorContext | None = None):
        super().__init__(
            message or (
                "No secret configured. Set STATELESS_RECORDS_SECRET or call "
                "configure(secret=...) before encoding tokens."
            ),
            "CONFIGURATION_ERROR", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )


class DecodeError(StatelessRecordError):
    """Token failed to decrypt, or its payload is not well formed."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "DECODE_ERROR", ErrorCategory.DECODING,
            ErrorSeverity.WARNING, context, 400,
        )


class PayloadEncodeError(StatelessRecordError):
    """An attribute value has no payload representation."""
    def __init__(self, attribute: str, value: object, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.attribute = attribute
        super().__init__(
            f"Attribute '{attribute}' holds unsupported value of type "
            f"{type(value).__name__}; use a serialized attribute for structured values",
            "PAYLOAD_ENCODE_ERROR", ErrorCategory.TYPE,
            ErrorSeverity.ERROR, ctx, 500,
        )
        self.attribute = attribute


# ─── Record Errors ──────────────────────────────────────────────

class RecordNotFound(StatelessRecordError):
    """Token unknown, malformed, or its record no longer valid."""
    def __init__(self, record_type: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.record_type = record_type
        super().__init__(
            f"{record_type} not found",
            "RECORD_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.INFO, ctx, 404,
        )


class RecordInvalidError(StatelessRecordError):
    """save_strict() called on a record that fails validation."""
    def __init__(
        self, record_type: str, errors: dict[str, list[str]],
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.record_type = record_type
        details = "; ".join(
            f"{name} {message}" for name, messages in errors.items() for message in messages
        )
        super().__init__(
            f"Validation failed for {record_type}: {details}",
            "RECORD_INVALID", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, ctx, 422,
        )
        self.errors = errors

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"]["details"] = [
            {"field": name, "message": message}
            for name, messages in self.errors.items()
            for message in messages
        ]
        return response


class TypeMismatchError(StatelessRecordError, TypeError):
    """Association assigned an object of the wrong type."""
    def __init__(
        self, association: str, expected: type, actual: object,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.attribute = association
        super().__init__(
            f"Association '{association}' expects {expected.__name__}, "
            f"got {type(actual).__name__}",
            "TYPE_MISMATCH", ErrorCategory.TYPE,
            ErrorSeverity.ERROR, ctx, 400,
        )
        self.expected = expected


class EntityStoreError(StatelessRecordError):
    """External entity store failed (distinct from 'no such entity')."""
    def __init__(self, entity_type: str, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.record_type = entity_type
        super().__init__(
            f"Entity store {operation} failed for {entity_type}",
            "ENTITY_STORE_ERROR", ErrorCategory.EXTERNAL,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.operation = operation


class SchemaDefinitionError(StatelessRecordError, ValueError):
    """Record type declared incorrectly (raised at type-definition time)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "SCHEMA_DEFINITION_ERROR", ErrorCategory.SCHEMA,
            ErrorSeverity.CRITICAL, context, 500,
        )
