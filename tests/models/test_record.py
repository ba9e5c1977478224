"""Stateless Record — verifies lifecycle, mass-assignment, validation gating and lookup.

Tests cover:
    - New records have no token; save() issues one and marks them persisted
    - Mass-assignment honours accessible attributes and virtuals only
    - Invalid records never persist; save_strict raises RecordInvalidError
    - find() round-trips attributes and identity
    - find() raises RecordNotFound for unknown, foreign-key, non-canonical and
      no-longer-valid tokens
    - after_save hooks must name methods when the type is defined
    - Equality is type + attributes, not token
"""

import re

import pytest

from stateless_records.config import configure
from stateless_records.core.domain_types import MaterializationState
from stateless_records.core.errors import (
    ConfigurationError, PayloadEncodeError, RecordInvalidError, RecordNotFound,
    SchemaDefinitionError,
)
from stateless_records.core.schema import SchemaBuilder
from stateless_records.core.validation import (
    format_of, length_of, numericality_of, presence_of, satisfies,
)
from stateless_records.infrastructure.cipher import Cipher
from stateless_records.models import SaveResult, StatelessRecord


class DerivedRecord(StatelessRecord):
    schema = (
        SchemaBuilder()
        .declare_attribute("foo", "bar")
        .declare_attribute("baz", accessible=True)
        .make_accessible("bar")
        .declare_virtual("x")
        .declare_virtual("y", accessible=True)
        .build()
    )


class OtherRecord(DerivedRecord):
    pass


class Registration(StatelessRecord):
    schema = (
        SchemaBuilder()
        .declare_attribute("name", "email", "password", "age", accessible=True)
        .validates(
            presence_of("name"),
            format_of("email", r"^[\w\.=-]+@[\w\.-]+\.[a-zA-Z]{2,4}$"),
            length_of("password", minimum=8),
            numericality_of("age"),
        )
        .after_save("send_registration_email")
        .build()
    )

    def send_registration_email(self):
        self.sent = getattr(self, "sent", 0) + 1


VALID = {"name": "John Doe", "email": "user@example.com", "password": "password", "age": "10"}
INVALID = {"email": "user @ example . com", "password": "short", "age": "ten"}


# ─── New records ─────────────────────────────────────────────────

def test_new_record_has_no_id():
    record = StatelessRecord()
    assert record.id is None
    assert record.is_new_record
    assert record.state is MaterializationState.NEW


def test_empty_record_is_saveable():
    record = StatelessRecord()
    assert record.save()
    assert record.id
    assert record.is_persisted


def test_token_is_url_safe_and_equals_param():
    record = Registration(VALID)
    record.save()
    assert re.match(r"^[A-Za-z0-9_-]+$", record.id)
    assert record.to_param() == record.id == record.token


# ─── Mass-assignment ─────────────────────────────────────────────

def test_does_not_mass_assign_protected_attributes():
    assert DerivedRecord({"foo": "foo"}).foo is None


def test_mass_assigns_attributes_made_accessible():
    assert DerivedRecord({"bar": "bar"}).bar == "bar"


def test_mass_assigns_attributes_declared_accessible():
    assert DerivedRecord({"baz": "baz"}).baz == "baz"


def test_does_not_mass_assign_protected_virtuals():
    assert DerivedRecord({"x": "x"}).x is None


def test_mass_assigns_accessible_virtuals():
    assert DerivedRecord({"y": "y"}).y == "y"


def test_mass_assignment_ignores_unknown_keys():
    record = DerivedRecord({"baz": "baz", "is_admin": True})
    assert record.attributes == {"foo": None, "bar": None, "baz": "baz"}
    assert not hasattr(record, "is_admin")


def test_protected_attribute_stays_at_default_when_mixed_with_accessible():
    record = DerivedRecord({"baz": "x", "foo": "y"})
    assert record.baz == "x"
    assert record.foo is None


def test_direct_assignment_ignores_accessibility():
    record = DerivedRecord()
    record.foo = "foo"
    assert record.foo == "foo"


def test_class_knows_attribute_names():
    assert DerivedRecord.attribute_names() == {"foo", "bar", "baz"}
    assert DerivedRecord.accessible_attribute_names() == {"bar", "baz", "y"}


def test_virtuals_are_not_encoded():
    record = DerivedRecord({"baz": "baz", "y": "y"})
    record.save()
    found = DerivedRecord.find(record.id)
    assert found.baz == "baz"
    assert found.y is None


# ─── Equality ────────────────────────────────────────────────────

def test_equality_is_based_on_type_and_attributes():
    record = DerivedRecord({"bar": "bar", "baz": "baz"})
    same = DerivedRecord({"bar": "bar", "baz": "baz"})
    different = DerivedRecord({"bar": "BAR", "baz": "baz"})
    subclass = OtherRecord({"bar": "bar", "baz": "baz"})
    assert record == same
    assert record != different
    assert record != subclass


def test_equality_ignores_token_but_identity_does_not():
    saved = DerivedRecord({"baz": "baz"})
    saved.save()
    unsaved = DerivedRecord({"baz": "baz"})
    assert saved == unsaved
    assert not saved.same_identity(unsaved)
    assert saved.same_identity(DerivedRecord.find(saved.id))


def test_records_are_unhashable():
    with pytest.raises(TypeError):
        hash(DerivedRecord())


# ─── Validation gating ───────────────────────────────────────────

def test_invalid_record_does_not_save():
    registration = Registration(INVALID)
    result = registration.save()
    assert not result
    assert isinstance(result, SaveResult)
    assert result.token is None
    assert registration.id is None
    assert registration.is_new_record


def test_invalid_record_collects_every_error():
    registration = Registration(INVALID)
    registration.save()
    assert set(registration.errors) == {"name", "email", "password", "age"}
    assert registration.save().errors == registration.errors.as_dict()


def test_invalid_record_runs_no_callbacks():
    registration = Registration(INVALID)
    registration.save()
    assert not hasattr(registration, "sent")


def test_save_strict_raises_record_invalid():
    with pytest.raises(RecordInvalidError) as exc_info:
        Registration(INVALID).save_strict()
    assert "name" in exc_info.value.errors


def test_save_strict_returns_token_when_valid():
    registration = Registration(VALID)
    assert registration.save_strict() == registration.id


def test_valid_record_saves_and_runs_callback_once():
    registration = Registration(VALID)
    result = registration.save()
    assert result
    assert result.token == registration.id
    assert result.errors == {}
    assert registration.sent == 1


# ─── find ────────────────────────────────────────────────────────

def test_found_record_matches_saved_record():
    registration = Registration(VALID)
    registration.save()
    found = Registration.find(registration.id)
    assert found.id == registration.id
    assert found.attributes == registration.attributes
    assert found.is_persisted
    assert found.valid()


def test_find_never_runs_callbacks():
    registration = Registration(VALID)
    registration.save()
    found = Registration.find(registration.id)
    assert not hasattr(found, "sent")


def test_find_unknown_token_raises_not_found():
    with pytest.raises(RecordNotFound):
        Registration.find("blah")


def test_find_token_of_other_secret_raises_not_found():
    token = Cipher("another secret").encrypt(b"[]")
    with pytest.raises(RecordNotFound):
        StatelessRecord.find(token)


def test_changing_secret_invalidates_previous_tokens():
    registration = Registration(VALID)
    registration.save()
    configure(secret="rotated")
    with pytest.raises(RecordNotFound):
        Registration.find(registration.id)


def test_record_made_invalid_after_saving_is_not_found(monkeypatch):
    registration = Registration(VALID)
    registration.save()
    registration.password = "short"
    monkeypatch.setattr(Registration, "valid", lambda self: True)
    registration.save()
    monkeypatch.undo()
    assert registration.id
    with pytest.raises(RecordNotFound):
        Registration.find(registration.id)


def test_find_drops_names_outside_schema_and_fills_defaults():
    cipher = Cipher("secret")
    token = cipher.encrypt(b'[["bar","str","b"],["rogue","int",1]]')
    found = DerivedRecord.find(token)
    assert found.attributes == {"foo": None, "bar": "b", "baz": None}


def test_new_token_issued_after_change():
    record = DerivedRecord({"baz": "one"})
    record.save()
    first = record.id
    record.baz = "two"
    record.save()
    assert record.id != first
    assert DerivedRecord.find(first).baz == "one"
    assert DerivedRecord.find(record.id).baz == "two"


def test_same_attributes_give_same_token():
    first = DerivedRecord({"baz": "baz"})
    second = DerivedRecord({"baz": "baz"})
    first.save()
    second.save()
    assert first.id == second.id


def test_token_with_altered_unused_bits_is_not_found():
    record = DerivedRecord({"baz": "hi"})
    record.save()
    alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
    last = record.id[-1]
    variant = record.id[:-1] + alphabet[alphabet.index(last) ^ 1]
    with pytest.raises(RecordNotFound):
        DerivedRecord.find(variant)


def test_lone_surrogates_survive_the_round_trip():
    record = DerivedRecord({"baz": "x\udcff"})
    assert record.save()
    assert DerivedRecord.find(record.id).baz == "x\udcff"


# ─── Configuration & encoding failures ───────────────────────────

def test_save_without_secret_raises_configuration_error():
    configure(secret=None)
    with pytest.raises(ConfigurationError):
        DerivedRecord().save()


def test_find_without_secret_raises_configuration_error():
    configure(secret=None)
    with pytest.raises(ConfigurationError):
        DerivedRecord.find("blah")


def test_bound_cipher_overrides_process_secret():
    class Sealed(StatelessRecord):
        schema = SchemaBuilder().declare_attribute("code", accessible=True).build()
        cipher = Cipher("class secret")

    record = Sealed({"code": "abc"})
    record.save()
    with pytest.raises(RecordNotFound):
        DerivedRecord.find(record.id)
    configure(secret=None)
    assert Sealed.find(record.id).code == "abc"


def test_unsupported_value_raises_payload_encode_error():
    record = DerivedRecord()
    record.foo = ["not", "a", "primitive"]
    with pytest.raises(PayloadEncodeError):
        record.save()
    assert record.is_new_record


# ─── Schema binding ──────────────────────────────────────────────

def test_declared_name_shadowing_a_method_is_rejected():
    with pytest.raises(SchemaDefinitionError):
        class Broken(StatelessRecord):
            schema = SchemaBuilder().declare_attribute("save").build()


def test_schema_must_be_a_schema():
    with pytest.raises(SchemaDefinitionError):
        class Broken(StatelessRecord):
            schema = {"foo": None}


def test_after_save_hook_without_method_is_rejected():
    with pytest.raises(SchemaDefinitionError):
        class Broken(StatelessRecord):
            schema = SchemaBuilder().declare_attribute("name").after_save("notify").build()


def test_after_save_hook_naming_an_attribute_is_rejected():
    with pytest.raises(SchemaDefinitionError):
        class Broken(StatelessRecord):
            schema = SchemaBuilder().declare_attribute("name").after_save("name").build()


def test_custom_rule_can_consult_other_attributes():
    class Confirmation(StatelessRecord):
        schema = (
            SchemaBuilder()
            .declare_attribute("password", accessible=True)
            .declare_virtual("password_confirmation", accessible=True)
            .validates(satisfies(
                "password",
                lambda value, record: value == record.value_of("password_confirmation"),
                "doesn't match confirmation",
            ))
            .build()
        )

    assert not Confirmation({"password": "a", "password_confirmation": "b"}).save()
    assert Confirmation({"password": "a", "password_confirmation": "a"}).save()
