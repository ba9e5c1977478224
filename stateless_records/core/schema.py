"""Attribute Schema — per-type descriptor table of attributes, associations, rules and hooks.

Invariants:
    - A Schema is immutable once built; a record type owns exactly one
    - Names are unique across attributes, foreign keys, associations and virtuals
    - Subtype schemas extend their parent append-only (SchemaBuilder(parent=...))
    - attribute_names() includes association foreign keys and excludes virtuals
    - Association names are never mass-assignable; foreign keys only when made
      accessible explicitly via make_accessible()
    - filter_assignable() drops unknown and protected keys silently (no raise)

Design Decisions:
    - Explicit descriptors consulted at runtime instead of generated accessors
    - Builder collects declarations, build() freezes them into tuples
    - Primary-key discovery: __primary_key__ class attribute first, then SQLAlchemy
      mapper inspection (single-column keys only)
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from sqlalchemy import inspect as sa_inspect

from stateless_records.core.domain_types import AttributeKind
from stateless_records.core.errors import SchemaDefinitionError
from stateless_records.core.payload_codec import dump_document
from stateless_records.core.repository_protocols import EntityStore
from stateless_records.core.validation import Rule

logger = logging.getLogger(__name__)


# ─── Definitions ─────────────────────────────────────────────────

@dataclass(frozen=True)
class AttributeDefinition:
    """A payload attribute. SERIALIZED attributes store a YAML document string."""
    name: str
    accessible: bool = False
    default: Any = None
    kind: AttributeKind = AttributeKind.PLAIN


@dataclass(frozen=True)
class AssociationDefinition:
    """belongs_to-style reference to an externally stored entity."""
    name: str
    target_type: type
    primary_key: str
    store: EntityStore
    accessible: bool = False

    @property
    def foreign_key(self) -> str:
        return f"{self.name}_id"


@dataclass(frozen=True)
class VirtualAttributeDefinition:
    """Instance-only attribute: never encoded into the token."""
    name: str
    accessible: bool = False
    default: Any = None


@dataclass(frozen=True)
class Schema:
    """Frozen descriptor table for one record type."""
    attributes: tuple[AttributeDefinition, ...] = ()
    associations: tuple[AssociationDefinition, ...] = ()
    virtuals: tuple[VirtualAttributeDefinition, ...] = ()
    rules: tuple[Rule, ...] = ()
    after_save_hooks: tuple[str, ...] = ()
    _index: dict[str, Any] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        index: dict[str, Any] = {}
        for definition in (*self.attributes, *self.associations, *self.virtuals):
            index[definition.name] = definition
        self._index.update(index)

    # ─── Introspection ───────────────────────────────────────────

    def attribute_names(self) -> frozenset[str]:
        return frozenset(a.name for a in self.attributes)

    def accessible_attribute_names(self) -> frozenset[str]:
        names = {a.name for a in self.attributes if a.accessible}
        names.update(v.name for v in self.virtuals if v.accessible)
        return frozenset(names)

    def declared_names(self) -> frozenset[str]:
        """Every name a record of this type answers to."""
        return frozenset(self._index)

    def attribute(self, name: str) -> AttributeDefinition | None:
        found = self._index.get(name)
        return found if isinstance(found, AttributeDefinition) else None

    def association(self, name: str) -> AssociationDefinition | None:
        found = self._index.get(name)
        return found if isinstance(found, AssociationDefinition) else None

    def virtual(self, name: str) -> VirtualAttributeDefinition | None:
        found = self._index.get(name)
        return found if isinstance(found, VirtualAttributeDefinition) else None

    def serialized_attribute_names(self) -> frozenset[str]:
        return frozenset(
            a.name for a in self.attributes if a.kind is AttributeKind.SERIALIZED
        )

    # ─── Runtime helpers ─────────────────────────────────────────

    def attribute_defaults(self) -> dict[str, Any]:
        return {a.name: a.default for a in self.attributes}

    def virtual_defaults(self) -> dict[str, Any]:
        return {v.name: v.default for v in self.virtuals}

    def filter_assignable(self, params: Mapping[Any, Any]) -> dict[str, Any]:
        """Keep only keys eligible for mass-assignment; drop the rest silently."""
        accessible = self.accessible_attribute_names()
        kept = {k: v for k, v in params.items() if k in accessible}
        dropped = [str(k) for k in params if k not in accessible]
        if dropped:
            logger.debug(f"Mass-assignment ignored protected keys: {sorted(dropped)}")
        return kept


# ─── Builder ─────────────────────────────────────────────────────

class SchemaBuilder:
    """Collects declarations for one record type, then freezes them with build()."""

    def __init__(self, parent: Schema | None = None):
        parent = parent or Schema()
        self._attributes: list[AttributeDefinition] = list(parent.attributes)
        self._associations: list[AssociationDefinition] = list(parent.associations)
        self._virtuals: list[VirtualAttributeDefinition] = list(parent.virtuals)
        self._rules: list[Rule] = list(parent.rules)
        self._hooks: list[str] = list(parent.after_save_hooks)

    def declare_attribute(
        self, *names: str, accessible: bool = False, default: Any = None,
    ) -> "SchemaBuilder":
        for name in names:
            self._claim(name)
            self._attributes.append(
                AttributeDefinition(name, accessible=accessible, default=default),
            )
        return self

    def declare_serialized(
        self, *names: str, accessible: bool = False, default: Any = None,
    ) -> "SchemaBuilder":
        """Declare attributes holding structured values, stored as YAML documents."""
        for name in names:
            self._claim(name)
            self._attributes.append(AttributeDefinition(
                name, accessible=accessible, default=dump_document(name, default),
                kind=AttributeKind.SERIALIZED,
            ))
        return self

    def declare_virtual(
        self, *names: str, accessible: bool = False, default: Any = None,
    ) -> "SchemaBuilder":
        for name in names:
            self._claim(name)
            self._virtuals.append(
                VirtualAttributeDefinition(name, accessible=accessible, default=default),
            )
        return self

    def declare_association(
        self,
        name: str,
        target_type: type,
        store: EntityStore | None = None,
        accessible: bool = False,
    ) -> "SchemaBuilder":
        """Declare a belongs_to association and its backing <name>_id attribute."""
        if not isinstance(target_type, type):
            raise SchemaDefinitionError(
                f"Association '{name}' target must be a class, got {target_type!r}",
            )
        primary_key = _primary_key_of(target_type)
        if primary_key is None:
            raise SchemaDefinitionError(
                f"Association '{name}' target {target_type.__name__} has no primary key "
                f"(declare __primary_key__ or map it with SQLAlchemy)",
            )
        if store is None and isinstance(target_type, EntityStore):
            store = target_type
        if store is None:
            raise SchemaDefinitionError(
                f"Association '{name}' needs an entity store: pass store= or give "
                f"{target_type.__name__} a lookup_by_primary_key classmethod",
            )
        definition = AssociationDefinition(
            name, target_type, primary_key, store, accessible=accessible,
        )
        self._claim(name)
        self._claim(definition.foreign_key)
        self._attributes.append(AttributeDefinition(definition.foreign_key))
        self._associations.append(definition)
        return self

    def make_accessible(self, *names: str) -> "SchemaBuilder":
        """Mark already-declared attributes or virtuals as mass-assignable."""
        for name in names:
            if any(a.name == name for a in self._associations):
                raise SchemaDefinitionError(
                    f"Association '{name}' can never be mass-assigned",
                )
            if not self._mark_accessible(name):
                raise SchemaDefinitionError(
                    f"Cannot make undeclared attribute '{name}' accessible",
                )
        return self

    def validates(self, *rules: Rule) -> "SchemaBuilder":
        self._rules.extend(rules)
        return self

    def after_save(self, *hook_names: str) -> "SchemaBuilder":
        for hook_name in hook_names:
            if not isinstance(hook_name, str) or not hook_name.isidentifier():
                raise SchemaDefinitionError(f"Invalid after_save hook name: {hook_name!r}")
            self._hooks.append(hook_name)
        return self

    def build(self) -> Schema:
        declared = {
            *(a.name for a in self._attributes),
            *(a.name for a in self._associations),
            *(v.name for v in self._virtuals),
        }
        for rule in self._rules:
            for name in (rule.attribute, rule.if_present):
                if name is not None and name not in declared:
                    raise SchemaDefinitionError(f"Rule refers to undeclared name '{name}'")
        return Schema(
            attributes=tuple(self._attributes),
            associations=tuple(self._associations),
            virtuals=tuple(self._virtuals),
            rules=tuple(self._rules),
            after_save_hooks=tuple(self._hooks),
        )

    def _claim(self, name: str) -> None:
        if not isinstance(name, str) or not name.isidentifier() or name.startswith("_"):
            raise SchemaDefinitionError(f"Invalid attribute name: {name!r}")
        taken = {
            *(a.name for a in self._attributes),
            *(a.name for a in self._associations),
            *(v.name for v in self._virtuals),
        }
        if name in taken:
            raise SchemaDefinitionError(f"Attribute '{name}' is already declared")

    def _mark_accessible(self, name: str) -> bool:
        for i, attribute in enumerate(self._attributes):
            if attribute.name == name:
                self._attributes[i] = replace(attribute, accessible=True)
                return True
        for i, virtual in enumerate(self._virtuals):
            if virtual.name == name:
                self._virtuals[i] = replace(virtual, accessible=True)
                return True
        return False


def _primary_key_of(target_type: type) -> str | None:
    """Name of the target's primary-key attribute, or None if it has none."""
    explicit = getattr(target_type, "__primary_key__", None)
    if isinstance(explicit, str) and explicit:
        return explicit
    mapper = sa_inspect(target_type, raiseerr=False)
    if mapper is None or not hasattr(mapper, "primary_key"):
        return None
    if len(mapper.primary_key) != 1:
        return None
    return mapper.get_property_by_column(mapper.primary_key[0]).key
