"""
Tests for PublicKey and Keypair.
"""

import json

import base58
import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from directed_stake.crypto import Keypair, PublicKey
from directed_stake.exceptions import ConfigurationError, InvalidKeyError


class TestPublicKey:

    def test_base58_roundtrip(self):
        key = Keypair.generate().public_key
        assert PublicKey.from_string(str(key)) == key

    def test_system_program_id(self):
        key = PublicKey.from_string("11111111111111111111111111111111")
        assert key.is_default()
        assert key == PublicKey.default()

    def test_wrong_length_rejected(self):
        with pytest.raises(InvalidKeyError):
            PublicKey(b"\x01" * 31)

    def test_invalid_base58_rejected(self):
        with pytest.raises(InvalidKeyError):
            PublicKey.from_string("0OIl-not-base58")

    def test_short_base58_rejected(self):
        with pytest.raises(InvalidKeyError):
            PublicKey.from_string("abc")

    def test_immutable(self):
        key = PublicKey.default()
        with pytest.raises(AttributeError):
            key.foo = 1

    def test_hashable_and_ordered(self):
        a = PublicKey(b"\x01" * 32)
        b = PublicKey(b"\x02" * 32)
        assert len({a, b, PublicKey(b"\x01" * 32)}) == 2
        assert sorted([b, a]) == sorted([a, b])


class TestKeypair:

    def test_signature_verifies(self):
        keypair = Keypair.generate()
        signature = keypair.sign(b"message")
        assert len(signature) == 64
        Ed25519PublicKey.from_public_bytes(keypair.public_key.to_bytes()).verify(signature, b"message")

    def test_seed_is_deterministic(self):
        assert Keypair.from_seed(b"\x07" * 32).public_key == Keypair.from_seed(b"\x07" * 32).public_key

    def test_secret_key_roundtrip(self):
        keypair = Keypair.generate()
        secret = keypair.secret_key()
        assert len(secret) == 64
        assert Keypair.from_secret_key(secret).public_key == keypair.public_key

    def test_mismatched_public_half_rejected(self):
        secret = Keypair.generate().secret_key()
        forged = secret[:32] + Keypair.generate().public_key.to_bytes()
        with pytest.raises(InvalidKeyError):
            Keypair.from_secret_key(forged)

    def test_json_form(self):
        keypair = Keypair.generate()
        loaded = Keypair.from_json(json.dumps(list(keypair.secret_key())))
        assert loaded.public_key == keypair.public_key

    def test_json_must_be_byte_array(self):
        with pytest.raises(InvalidKeyError):
            Keypair.from_json('{"key": 1}')
        with pytest.raises(InvalidKeyError):
            Keypair.from_json("[1, 2, 300]")

    def test_from_environment_base58(self, monkeypatch):
        keypair = Keypair.generate()
        monkeypatch.setenv("TEST_WALLET", base58.b58encode(keypair.secret_key()).decode())
        assert Keypair.from_environment("TEST_WALLET").public_key == keypair.public_key

    def test_from_environment_json(self, monkeypatch):
        keypair = Keypair.generate()
        monkeypatch.setenv("TEST_WALLET", json.dumps(list(keypair.secret_key())))
        assert Keypair.from_environment("TEST_WALLET").public_key == keypair.public_key

    def test_from_environment_unset(self, monkeypatch):
        monkeypatch.delenv("TEST_WALLET", raising=False)
        with pytest.raises(ConfigurationError):
            Keypair.from_environment("TEST_WALLET")
