"""Stateless Record — base class whose instances live entirely inside their token.

Invariants:
    - PERSISTED iff the record holds a token; the token is the sealed encoding of
      exactly the attribute mapping at the moment save() encoded it
    - save(): validate → (valid) encode → encrypt → assign token → after_save hooks once
    - save() on an invalid record leaves state and token untouched and runs no hooks
    - find(): decrypt → decode → rebuild as PERSISTED → validate; any failure on
      this path raises RecordNotFound and never runs hooks
    - Equality is type + attributes; the token is identity, compared via same_identity()
    - Mass-assignment only ever writes accessible names (Schema.filter_assignable)

Design Decisions:
    - Accessors go through __getattr__/__setattr__ consulting the Schema's descriptor
      table; no per-attribute methods are generated
    - Internal state set with object.__setattr__ so declared names never collide
      with bookkeeping fields
    - Cipher injectable per record class; default_cipher() used when none is bound
    - Records are mutable, so they define __eq__ and are unhashable
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping, TypeVar

from stateless_records.config import default_cipher
from stateless_records.core.callbacks import run_after_save
from stateless_records.core.domain_types import (
    AttributeKind, MaterializationState, Token,
)
from stateless_records.core.errors import (
    DecodeError, ErrorContext, RecordInvalidError, RecordNotFound,
    SchemaDefinitionError, TypeMismatchError,
)
from stateless_records.core.payload_codec import (
    decode_payload, dump_document, encode_payload, load_document,
)
from stateless_records.core.schema import AssociationDefinition, Schema
from stateless_records.core.validation import ValidationErrors, is_blank, run_validations
from stateless_records.infrastructure.cipher import Cipher

logger = logging.getLogger(__name__)

R = TypeVar("R", bound="StatelessRecord")


@dataclass(frozen=True)
class SaveResult:
    """Outcome of save(): success carries the token, failure carries the errors."""
    success: bool
    token: Token | None = None
    errors: dict[str, list[str]] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.success


class StatelessRecord:
    """Base class for record types. Subclasses set `schema` (and optionally `cipher`)."""

    schema: ClassVar[Schema] = Schema()
    cipher: ClassVar[Cipher | None] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        schema = cls.schema
        if not isinstance(schema, Schema):
            raise SchemaDefinitionError(
                f"{cls.__name__}.schema must be a Schema, got {type(schema).__name__}",
            )
        clashes = sorted(name for name in schema.declared_names() if hasattr(cls, name))
        if clashes:
            raise SchemaDefinitionError(
                f"{cls.__name__} declares names that shadow methods: {', '.join(clashes)}",
                ErrorContext(record_type=cls.__name__),
            )
        missing = [h for h in schema.after_save_hooks if not callable(getattr(cls, h, None))]
        if missing:
            raise SchemaDefinitionError(
                f"{cls.__name__} has no method for after_save hooks: {', '.join(missing)}",
                ErrorContext(record_type=cls.__name__),
            )

    def __init__(self, attributes: Mapping[str, Any] | None = None):
        self._reset(type(self).schema.attribute_defaults(), token=None)
        if attributes:
            self.assign_attributes(attributes)

    def _reset(self, stored: dict[str, Any], token: Token | None) -> None:
        schema = type(self).schema
        object.__setattr__(self, "_attributes", copy.deepcopy(stored))
        object.__setattr__(self, "_virtuals", copy.deepcopy(schema.virtual_defaults()))
        object.__setattr__(self, "_token", token)
        object.__setattr__(self, "_errors", ValidationErrors())

    # ─── Class-level introspection ───────────────────────────────

    @classmethod
    def attribute_names(cls) -> frozenset[str]:
        return cls.schema.attribute_names()

    @classmethod
    def accessible_attribute_names(cls) -> frozenset[str]:
        return cls.schema.accessible_attribute_names()

    # ─── Identity & state ────────────────────────────────────────

    @property
    def id(self) -> Token | None:
        return self._token

    token = id

    def to_param(self) -> Token | None:
        return self._token

    @property
    def state(self) -> MaterializationState:
        return MaterializationState.PERSISTED if self._token else MaterializationState.NEW

    @property
    def is_new_record(self) -> bool:
        return self.state is MaterializationState.NEW

    @property
    def is_persisted(self) -> bool:
        return self.state is MaterializationState.PERSISTED

    @property
    def attributes(self) -> dict[str, Any]:
        """Stored attribute values (serialized attributes in their stored form)."""
        return copy.deepcopy(self._attributes)

    @property
    def errors(self) -> ValidationErrors:
        return self._errors

    def same_identity(self, other: "StatelessRecord") -> bool:
        return self._token is not None and self._token == other._token

    # ─── Attribute access ────────────────────────────────────────

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails
        if name.startswith("_"):
            raise AttributeError(name)
        if name in type(self).schema.declared_names():
            return self.value_of(name)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in type(self).schema.declared_names():
            self.write_value(name, value)
        else:
            object.__setattr__(self, name, value)

    def value_of(self, name: str) -> Any:
        """Logical value of an attribute, association or virtual attribute."""
        schema = type(self).schema
        attribute = schema.attribute(name)
        if attribute is not None:
            stored = self._attributes.get(name)
            if attribute.kind is AttributeKind.SERIALIZED:
                return load_document(stored)
            return stored
        association = schema.association(name)
        if association is not None:
            return self._read_association(association)
        if schema.virtual(name) is not None:
            return self._virtuals.get(name)
        raise KeyError(name)

    def write_value(self, name: str, value: Any) -> None:
        schema = type(self).schema
        attribute = schema.attribute(name)
        if attribute is not None:
            if attribute.kind is AttributeKind.SERIALIZED:
                value = dump_document(name, value)
            self._attributes[name] = value
            return
        association = schema.association(name)
        if association is not None:
            self._write_association(association, value)
            return
        if schema.virtual(name) is not None:
            self._virtuals[name] = value
            return
        raise KeyError(name)

    def is_present(self, name: str) -> bool:
        return not is_blank(self.value_of(name))

    def assign_attributes(self, params: Mapping[str, Any]) -> None:
        """Mass-assign from untrusted input; protected and unknown keys are ignored."""
        for name, value in type(self).schema.filter_assignable(params).items():
            self.write_value(name, value)

    # ─── Associations ────────────────────────────────────────────

    def _read_association(self, association: AssociationDefinition) -> Any | None:
        key = self._attributes.get(association.foreign_key)
        if key is None:
            return None
        entity = association.store.lookup_by_primary_key(key)
        if entity is None:
            logger.debug(
                f"No {association.target_type.__name__} for {association.foreign_key}",
                extra={"record_type": type(self).__name__, "attribute": association.name},
            )
        return entity

    def _write_association(self, association: AssociationDefinition, entity: Any) -> None:
        if entity is None:
            self._attributes[association.foreign_key] = None
            return
        if not isinstance(entity, association.target_type):
            raise TypeMismatchError(
                association.name, association.target_type, entity,
                ErrorContext(record_type=type(self).__name__),
            )
        self._attributes[association.foreign_key] = getattr(entity, association.primary_key)

    # ─── Lifecycle ───────────────────────────────────────────────

    def valid(self) -> bool:
        errors = run_validations(self, type(self).schema.rules)
        object.__setattr__(self, "_errors", errors)
        return errors.is_empty()

    def save(self) -> SaveResult:
        record_type = type(self).__name__
        if not self.valid():
            logger.debug(
                f"{record_type} not saved: invalid {sorted(self._errors)}",
                extra={"record_type": record_type},
            )
            return SaveResult(success=False, errors=self._errors.as_dict())

        token = self._cipher().encrypt(encode_payload(self._attributes))
        object.__setattr__(self, "_token", token)
        logger.info(f"{record_type} saved", extra={"record_type": record_type})
        run_after_save(self, type(self).schema.after_save_hooks)
        return SaveResult(success=True, token=token)

    def save_strict(self) -> Token:
        """save() that raises RecordInvalidError instead of returning a failure."""
        result = self.save()
        if not result:
            raise RecordInvalidError(type(self).__name__, result.errors)
        return result.token

    @classmethod
    def find(cls: type[R], token: str) -> R:
        """Rebuild the record sealed in token, or raise RecordNotFound."""
        try:
            stored = cls._open(token)
        except DecodeError as e:
            logger.debug(
                f"{cls.__name__} lookup failed",
                extra={"record_type": cls.__name__, "error_code": e.code},
            )
            raise RecordNotFound(cls.__name__) from None

        record = cls.__new__(cls)
        record._reset(stored, token=Token(token))
        if not record.valid():
            logger.debug(
                f"{cls.__name__} lookup rejected: no longer valid",
                extra={"record_type": cls.__name__, "error_code": "RECORD_INVALID"},
            )
            raise RecordNotFound(cls.__name__)
        return record

    @classmethod
    def _open(cls, token: str) -> dict[str, Any]:
        """Decrypt and decode a token into stored values for this schema."""
        decoded = decode_payload(cls._cipher().decrypt(token))
        stored = cls.schema.attribute_defaults()
        for name in cls.schema.attribute_names():
            if name in decoded:
                stored[name] = decoded[name]
        for name in cls.schema.serialized_attribute_names():
            load_document(stored[name])
        return stored

    @classmethod
    def _cipher(cls) -> Cipher:
        return cls.cipher or default_cipher()

    # ─── Value semantics ─────────────────────────────────────────

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StatelessRecord):
            return NotImplemented
        return type(self) is type(other) and self._attributes == other._attributes

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        state = self.state.value
        return f"<{type(self).__name__} {state} {self._attributes!r}>"
