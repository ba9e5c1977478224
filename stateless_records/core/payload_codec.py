"""Payload Codec — packs an attribute mapping into bytes for the cipher, and back.

Invariants:
    - Encoding is a JSON array of [name, tag, value] triples sorted by name:
      equal mappings always produce identical bytes
    - decode_payload(encode_payload(m)) == m for every mapping of supported values,
      including the empty mapping
    - Any malformed buffer raises DecodeError, never returns a partial mapping
    - Serialized attributes: None is stored as None (never an empty document) and
      loads back as None

Design Decisions:
    - JSON over a binary format: stdlib, self-describing, and the tag makes
      bool/int/float distinctions explicit instead of relying on JSON's number rules
    - Non-ASCII text is \\u-escaped, so lone surrogates in str values encode and
      decode exactly
    - PyYAML safe_dump/safe_load for serialized documents: any plain structure
      (mappings, lists, scalars) survives the round trip, nothing executable loads
"""

import json
from typing import Any, Mapping

import yaml

from stateless_records.core.domain_types import PayloadTag
from stateless_records.core.errors import DecodeError, PayloadEncodeError

_TAG_VALUES = {tag.value for tag in PayloadTag}


def _tag_for(name: str, value: Any) -> PayloadTag:
    if value is None:
        return PayloadTag.NULL
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return PayloadTag.BOOL
    if isinstance(value, int):
        return PayloadTag.INT
    if isinstance(value, float):
        return PayloadTag.FLOAT
    if isinstance(value, str):
        return PayloadTag.STR
    raise PayloadEncodeError(name, value)


def _matches_tag(tag: str, value: Any) -> bool:
    if tag == PayloadTag.NULL.value:
        return value is None
    if tag == PayloadTag.BOOL.value:
        return isinstance(value, bool)
    if tag == PayloadTag.INT.value:
        return isinstance(value, int) and not isinstance(value, bool)
    if tag == PayloadTag.FLOAT.value:
        return isinstance(value, float)
    return isinstance(value, str)


def encode_payload(attributes: Mapping[str, Any]) -> bytes:
    """Encode name → value into a stable, self-describing byte buffer."""
    triples = [
        [name, _tag_for(name, attributes[name]).value, attributes[name]]
        for name in sorted(attributes)
    ]
    return json.dumps(triples, separators=(",", ":")).encode("ascii")


def decode_payload(buffer: bytes) -> dict[str, Any]:
    """Decode a buffer produced by encode_payload. Raises DecodeError if malformed."""
    try:
        triples = json.loads(buffer.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodeError(f"Payload is not valid JSON: {e.__class__.__name__}") from e
    if not isinstance(triples, list):
        raise DecodeError("Payload must be a list of attribute entries")

    attributes: dict[str, Any] = {}
    for entry in triples:
        if not (isinstance(entry, list) and len(entry) == 3):
            raise DecodeError("Payload entry must be a [name, tag, value] triple")
        name, tag, value = entry
        if not isinstance(name, str) or not isinstance(tag, str) or tag not in _TAG_VALUES:
            raise DecodeError("Payload entry has invalid name or tag")
        if not _matches_tag(tag, value):
            raise DecodeError(f"Payload value for '{name}' does not match tag '{tag}'")
        if name in attributes:
            raise DecodeError(f"Payload repeats attribute '{name}'")
        attributes[name] = value
    return attributes


# ─── Serialized Attributes ───────────────────────────────────────

def dump_document(name: str, value: Any) -> str | None:
    """Serialize a structured value for storage in a str attribute."""
    if value is None:
        return None
    try:
        return yaml.safe_dump(value, default_flow_style=False, sort_keys=True)
    except yaml.YAMLError as e:
        raise PayloadEncodeError(name, value) from e


def load_document(stored: str | None) -> Any:
    """Parse a stored document back into its structured value."""
    if stored is None:
        return None
    if not isinstance(stored, str):
        raise DecodeError("Serialized attribute must be stored as a string")
    try:
        return yaml.safe_load(stored)
    except yaml.YAMLError as e:
        raise DecodeError("Serialized attribute is not a valid document") from e
