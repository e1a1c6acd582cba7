"""Identity codec: signs and optionally encrypts the session identifier.

Only the identifier ever travels in the cookie. Each key pair holds an
authentication key (required) and an encryption key (optional, 16, 24 or 32
bytes for AES-128/192/256-GCM). Values are encoded with the first pair and
decoded with the first pair that accepts them, so a new pair can be put in
front of the list while cookies signed with older pairs keep working.
"""

from __future__ import annotations

import base64
import binascii
import os
from typing import NamedTuple, Sequence

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from itsdangerous import BadData, URLSafeTimedSerializer
from itsdangerous.encoding import base64_decode, base64_encode

from .errors import ConfigurationError, DecodeError

CODEC_MAX_AGE = 30 * 24 * 3600  # signed timestamps older than this are rejected
_SALT_PREFIX = "sessionstore.cookie:"
_NONCE_SIZE = 12
_AES_KEY_SIZES = (16, 24, 32)


class KeyPair(NamedTuple):
    auth_key: bytes
    enc_key: bytes | None = None


def key_pairs_from(*keys: bytes | None) -> list[KeyPair]:
    """Group a flat ``auth, enc, auth, enc, ...`` sequence into key pairs.

    The encryption key of the last pair may be omitted.
    """
    pairs = []
    for i in range(0, len(keys), 2):
        auth_key = keys[i] or b""
        enc_key = keys[i + 1] if i + 1 < len(keys) else None
        pairs.append(KeyPair(auth_key, enc_key or None))
    return pairs


def _check_signature_encoding(cookie_value: str) -> None:
    # Base64 decoding ignores the unused low bits of the last character, so
    # a signature is only accepted in its canonical encoding.
    _, sep, signature = cookie_value.rpartition(".")
    if not sep or not signature:
        raise DecodeError("cookie value has no signature")
    if base64_encode(base64_decode(signature)) != signature.encode():
        raise DecodeError("cookie signature is not canonically encoded")


class _PairCodec:
    def __init__(self, pair: KeyPair, max_age: int | None) -> None:
        if not pair.auth_key:
            raise ConfigurationError("every key pair needs an authentication key")
        if pair.enc_key and len(pair.enc_key) not in _AES_KEY_SIZES:
            raise ConfigurationError(
                f"encryption key must be 16, 24 or 32 bytes, got {len(pair.enc_key)}"
            )
        self._auth_key = pair.auth_key
        self._cipher = AESGCM(pair.enc_key) if pair.enc_key else None
        self._max_age = max_age

    def _serializer(self, name: str) -> URLSafeTimedSerializer:
        # The cookie name is part of the salt so a value cannot be replayed
        # under another cookie name.
        return URLSafeTimedSerializer(self._auth_key, salt=_SALT_PREFIX + name)

    def encode(self, name: str, value: str) -> str:
        payload = value
        if self._cipher is not None:
            nonce = os.urandom(_NONCE_SIZE)
            sealed = self._cipher.encrypt(nonce, value.encode(), name.encode())
            payload = base64.urlsafe_b64encode(nonce + sealed).decode("ascii")
        return self._serializer(name).dumps(payload)

    def decode(self, name: str, cookie_value: str) -> str:
        _check_signature_encoding(cookie_value)
        payload = self._serializer(name).loads(cookie_value, max_age=self._max_age)
        if not isinstance(payload, str):
            raise DecodeError("cookie payload is not a string")
        if self._cipher is None:
            return payload
        try:
            raw = base64.urlsafe_b64decode(payload.encode("ascii"))
            plain = self._cipher.decrypt(
                raw[:_NONCE_SIZE], raw[_NONCE_SIZE:], name.encode()
            )
            return plain.decode()
        except (binascii.Error, ValueError, InvalidTag) as e:
            raise DecodeError("cookie could not be decrypted") from e


class IdentityCodec:
    """Authenticated, optionally encrypted encoding of session identifiers."""

    def __init__(
        self,
        key_pairs: Sequence[KeyPair | tuple[bytes, bytes | None]],
        max_age: int | None = CODEC_MAX_AGE,
    ) -> None:
        if not key_pairs:
            raise ConfigurationError("at least one key pair is required")
        self._codecs = [_PairCodec(KeyPair(*pair), max_age) for pair in key_pairs]

    @classmethod
    def from_keys(cls, *keys: bytes | None, max_age: int | None = CODEC_MAX_AGE) -> IdentityCodec:
        """Build a codec from a flat ``auth, enc, auth, enc, ...`` key list."""
        return cls(key_pairs_from(*keys), max_age=max_age)

    def encode(self, name: str, value: str) -> str:
        return self._codecs[0].encode(name, value)

    def decode(self, name: str, cookie_value: str) -> str:
        """Return the identifier carried by ``cookie_value``.

        Raises DecodeError when no key pair accepts the value (bad or
        tampered signature, expired timestamp, wrong key, failed decryption).
        """
        last_error: Exception | None = None
        for codec in self._codecs:
            try:
                return codec.decode(name, cookie_value)
            except (BadData, DecodeError) as e:
                last_error = e
        raise DecodeError(f"cookie {name!r} was not accepted by any key pair") from last_error
