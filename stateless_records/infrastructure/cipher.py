"""Cipher — deterministic symmetric encryption of bytes to URL-safe tokens.

Invariants:
    - decrypt(encrypt(b)) == b for every byte string b under the same secret
    - encrypt(b) always matches ^[A-Za-z0-9_-]*$ (no '+', '/', or '=' padding)
    - Same secret + same bytes → same token (records have stable identities)
    - A token sealed under another secret, or any malformed token, raises DecodeError;
      decryption never returns unauthenticated bytes
    - No secret → ConfigurationError on encrypt and decrypt (not at construction)

Design Decisions:
    - AES-SIV (cryptography AEAD): deterministic without a nonce AND authenticated,
      so a wrong key fails loudly instead of yielding garbage
    - Key = SHA-512 digest of the secret string → 64 bytes → AES-256-SIV
    - One format-version byte prefixed to the plaintext: lets the empty byte string
      be sealed and lets a future format change be detected as DecodeError
    - Padding restored from len % 4 on decode; remainder 1 is never produced
    - Decode accepts only the canonical armor: nonzero unused trailing bits are rejected
"""

import base64
import binascii
import hashlib
import logging
import re

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESSIV

from stateless_records.core.domain_types import Token
from stateless_records.core.errors import ConfigurationError, DecodeError

logger = logging.getLogger(__name__)

FORMAT_VERSION: bytes = b"\x01"
SIV_TAG_BYTES: int = 16
TOKEN_ALPHABET = re.compile(r"^[A-Za-z0-9_-]*$")


def derive_key(secret: str) -> bytes:
    """One-way hash of the configured secret into AES-SIV key material."""
    return hashlib.sha512(secret.encode("utf-8")).digest()


def armor(sealed: bytes) -> Token:
    """Render bytes as unpadded URL-safe base64 ('+' → '-', '/' → '_')."""
    return Token(base64.urlsafe_b64encode(sealed).decode("ascii").rstrip("="))


def unarmor(token: str) -> bytes:
    """Reverse armor(). Raises DecodeError for foreign characters, impossible lengths
    or non-canonical encodings."""
    if not isinstance(token, str) or not TOKEN_ALPHABET.match(token):
        raise DecodeError("Token contains characters outside [A-Za-z0-9_-]")
    if len(token) % 4 == 1:
        raise DecodeError("Token length is not a valid base64 length")
    padded = token + "=" * ((4 - len(token) % 4) % 4)
    try:
        sealed = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise DecodeError("Token is not valid base64") from e
    # Unused trailing bits must be zero: one token per sealed payload.
    if armor(sealed) != token:
        raise DecodeError("Token is not in canonical form")
    return sealed


class Cipher:
    """Seals and opens tokens with a key derived from one secret string."""

    def __init__(self, secret: str | None):
        self._aead = AESSIV(derive_key(secret)) if secret else None

    @property
    def is_configured(self) -> bool:
        return self._aead is not None

    def encrypt(self, clear: bytes) -> Token:
        aead = self._require_key()
        return armor(aead.encrypt(FORMAT_VERSION + clear, None))

    def decrypt(self, token: str) -> bytes:
        aead = self._require_key()
        sealed = unarmor(token)
        if len(sealed) < SIV_TAG_BYTES + len(FORMAT_VERSION):
            raise DecodeError("Token too short")
        try:
            clear = aead.decrypt(sealed, None)
        except (InvalidTag, ValueError) as e:
            raise DecodeError("Token failed authentication") from e
        if not clear.startswith(FORMAT_VERSION):
            raise DecodeError("Token format version not supported")
        return clear[len(FORMAT_VERSION):]

    def _require_key(self) -> AESSIV:
        if self._aead is None:
            logger.error("Token operation attempted without a configured secret")
            raise ConfigurationError()
        return self._aead

    def __repr__(self) -> str:
        return f"Cipher(configured={self.is_configured})"
