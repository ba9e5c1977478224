"""Validation Runner — evaluates an ordered rule list against a record, collecting every failure.

Invariants:
    - Every rule runs; a failing rule never stops the ones after it
    - Conditions (if_present, condition) are evaluated before the rule and SKIP it when unmet
    - ValidationErrors is empty iff the record is valid
    - Rules read values only through the RecordLike protocol (value_of / is_present)

Design Decisions:
    - Rules are data (frozen dataclass + check callable), registered on the Schema
    - A check returns a message or None: one rule can report different failures
      (too short vs. too long) without splitting into several rules
    - Built-in rules mirror the common presence/format/length/numericality set;
      anything else goes through satisfies()
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Protocol


class RecordLike(Protocol):
    """What rules may ask of a record."""
    def value_of(self, name: str) -> Any: ...
    def is_present(self, name: str) -> bool: ...


Check = Callable[[Any, RecordLike], "str | None"]


@dataclass(frozen=True)
class Rule:
    """One validation rule bound to an attribute name."""
    attribute: str
    check: Check
    if_present: str | None = None
    condition: Callable[[RecordLike], bool] | None = None

    def applies_to(self, record: RecordLike) -> bool:
        if self.if_present is not None and not record.is_present(self.if_present):
            return False
        if self.condition is not None and not self.condition(record):
            return False
        return True


class ValidationErrors:
    """Attribute name → ordered list of messages."""

    def __init__(self) -> None:
        self._messages: dict[str, list[str]] = {}

    def add(self, attribute: str, message: str) -> None:
        self._messages.setdefault(attribute, []).append(message)

    def clear(self) -> None:
        self._messages.clear()

    def is_empty(self) -> bool:
        return not self._messages

    def __getitem__(self, attribute: str) -> list[str]:
        return list(self._messages.get(attribute, []))

    def __contains__(self, attribute: object) -> bool:
        return attribute in self._messages

    def __iter__(self) -> Iterator[str]:
        return iter(self._messages)

    def __len__(self) -> int:
        return sum(len(messages) for messages in self._messages.values())

    def full_messages(self) -> list[str]:
        return [
            f"{attribute.replace('_', ' ').capitalize()} {message}"
            for attribute, messages in self._messages.items()
            for message in messages
        ]

    def as_dict(self) -> dict[str, list[str]]:
        return {attribute: list(messages) for attribute, messages in self._messages.items()}

    def __repr__(self) -> str:
        return f"ValidationErrors({self._messages!r})"


def run_validations(record: RecordLike, rules: tuple[Rule, ...] | list[Rule]) -> ValidationErrors:
    """Run every applicable rule and return the accumulated errors."""
    errors = ValidationErrors()
    for rule in rules:
        if not rule.applies_to(record):
            continue
        message = rule.check(record.value_of(rule.attribute), record)
        if message is not None:
            errors.add(rule.attribute, message)
    return errors


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


# ─── Rule Library ────────────────────────────────────────────────

_NUMBER = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*$")
_INTEGER = re.compile(r"^\s*[+-]?\d+\s*$")


def presence_of(attribute: str, message: str = "can't be blank", **conditions: Any) -> Rule:
    def check(value: Any, record: RecordLike) -> str | None:
        return message if is_blank(value) else None
    return Rule(attribute, check, **conditions)


def format_of(
    attribute: str,
    pattern: str | re.Pattern,
    message: str = "is invalid",
    allow_blank: bool = False,
    **conditions: Any,
) -> Rule:
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern

    def check(value: Any, record: RecordLike) -> str | None:
        if is_blank(value):
            return None if allow_blank else message
        return None if regex.search(str(value)) else message
    return Rule(attribute, check, **conditions)


def length_of(
    attribute: str,
    minimum: int | None = None,
    maximum: int | None = None,
    allow_blank: bool = False,
    **conditions: Any,
) -> Rule:
    if minimum is None and maximum is None:
        raise ValueError("length_of needs minimum or maximum")

    def check(value: Any, record: RecordLike) -> str | None:
        if allow_blank and is_blank(value):
            return None
        length = 0 if value is None else len(value if isinstance(value, str) else str(value))
        if minimum is not None and length < minimum:
            return f"is too short (minimum is {minimum} characters)"
        if maximum is not None and length > maximum:
            return f"is too long (maximum is {maximum} characters)"
        return None
    return Rule(attribute, check, **conditions)


def numericality_of(
    attribute: str,
    only_integer: bool = False,
    allow_blank: bool = False,
    **conditions: Any,
) -> Rule:
    def check(value: Any, record: RecordLike) -> str | None:
        if is_blank(value):
            return None if allow_blank else "is not a number"
        if isinstance(value, bool):
            return "is not a number"
        if isinstance(value, int):
            return None
        if isinstance(value, float):
            return "must be an integer" if only_integer and not value.is_integer() else None
        text = str(value)
        if not _NUMBER.match(text):
            return "is not a number"
        if only_integer and not _INTEGER.match(text):
            return "must be an integer"
        return None
    return Rule(attribute, check, **conditions)


def satisfies(
    attribute: str,
    predicate: Callable[[Any, RecordLike], bool],
    message: str = "is invalid",
    **conditions: Any,
) -> Rule:
    """Wrap an arbitrary predicate (value, record) -> bool as a rule."""
    def check(value: Any, record: RecordLike) -> str | None:
        return None if predicate(value, record) else message
    return Rule(attribute, check, **conditions)
