"""Tests for the identity codec."""

import string
import time
from unittest.mock import patch

import pytest

from sessionstore import ConfigurationError, DecodeError, IdentityCodec, KeyPair
from sessionstore.codec import key_pairs_from

AUTH = b"test-authentication-key-32-bytes"
SESSION_ID = "65f0c0ffee0123456789abcd"


@pytest.mark.parametrize("enc_key", [None, b"k" * 16, b"k" * 24, b"k" * 32])
def test_decode_returns_encoded_identifier(enc_key):
    codec = IdentityCodec([KeyPair(AUTH, enc_key)])
    assert codec.decode("s", codec.encode("s", SESSION_ID)) == SESSION_ID


def test_encrypted_cookie_hides_identifier():
    codec = IdentityCodec([KeyPair(AUTH, b"k" * 16)])
    assert SESSION_ID not in codec.encode("s", SESSION_ID)


def test_signed_cookie_without_encryption_is_still_authenticated():
    codec = IdentityCodec([KeyPair(AUTH)])
    value = codec.encode("s", SESSION_ID)
    with pytest.raises(DecodeError):
        IdentityCodec([KeyPair(b"another-authentication-key")]).decode("s", value)


def test_flipped_byte_fails():
    codec = IdentityCodec([KeyPair(AUTH, b"k" * 16)])
    value = codec.encode("s", SESSION_ID)
    tampered = ("x" if value[0] != "x" else "y") + value[1:]
    with pytest.raises(DecodeError):
        codec.decode("s", tampered)


def test_name_is_bound_into_the_value():
    codec = IdentityCodec([KeyPair(AUTH)])
    with pytest.raises(DecodeError):
        codec.decode("other", codec.encode("s", SESSION_ID))


def test_wrong_encryption_key_fails():
    value = IdentityCodec([KeyPair(AUTH, b"a" * 16)]).encode("s", SESSION_ID)
    with pytest.raises(DecodeError):
        IdentityCodec([KeyPair(AUTH, b"b" * 16)]).decode("s", value)


def test_old_timestamp_is_rejected():
    codec = IdentityCodec([KeyPair(AUTH)], max_age=60)
    with patch("itsdangerous.timed.time.time", return_value=time.time() - 120):
        value = codec.encode("s", SESSION_ID)
    with pytest.raises(DecodeError):
        codec.decode("s", value)


def test_first_pair_encodes_any_pair_decodes():
    old = IdentityCodec([KeyPair(b"old-key")])
    rotated = IdentityCodec([KeyPair(b"new-key", b"n" * 32), KeyPair(b"old-key")])

    assert rotated.decode("s", old.encode("s", SESSION_ID)) == SESSION_ID
    with pytest.raises(DecodeError):
        old.decode("s", rotated.encode("s", SESSION_ID))


def test_from_keys_groups_flat_list():
    assert key_pairs_from(b"a1", b"e" * 16, b"a2") == [
        KeyPair(b"a1", b"e" * 16),
        KeyPair(b"a2", None),
    ]
    assert key_pairs_from(b"a1", b"") == [KeyPair(b"a1", None)]
    codec = IdentityCodec.from_keys(b"a1", None, b"a2")
    assert codec.decode("s", codec.encode("s", SESSION_ID)) == SESSION_ID


@pytest.mark.parametrize(
    "pairs",
    [
        [],
        [KeyPair(b"")],
        [KeyPair(AUTH, b"short")],
    ],
)
def test_invalid_keys_are_rejected(pairs):
    with pytest.raises(ConfigurationError):
        IdentityCodec(pairs)


@pytest.mark.parametrize("enc_key", [None, b"k" * 16])
def test_every_single_character_change_fails(enc_key):
    alphabet = string.ascii_letters + string.digits + "-_."
    codec = IdentityCodec([KeyPair(AUTH, enc_key)])
    value = codec.encode("s", SESSION_ID)

    accepted = []
    for pos, original in enumerate(value):
        for ch in alphabet:
            if ch == original:
                continue
            altered = value[:pos] + ch + value[pos + 1:]
            try:
                codec.decode("s", altered)
            except DecodeError:
                continue
            accepted.append((pos, original, ch))

    assert accepted == []


def test_value_without_signature_fails():
    codec = IdentityCodec([KeyPair(AUTH)])
    with pytest.raises(DecodeError):
        codec.decode("s", "no-separator-here")
