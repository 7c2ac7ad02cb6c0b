"""
Directed Stake Crypto Keys Module

Implements the ledger's Ed25519 key types:
- PublicKey: 32-byte account address, base58 text form
- Keypair: Ed25519 signing key, compatible with the standard
  64-integer JSON keypair file format
"""

import json
import os
from typing import Union

import base58
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from ..constants import PUBLIC_KEY_LENGTH, SECRET_KEY_LENGTH
from ..exceptions import ConfigurationError, InvalidKeyError


class PublicKey:
    """
    32-byte ledger public key.

    Immutable, hashable and ordered by base58 text so that sorted output
    is stable and human-checkable.
    """

    __slots__ = ("_bytes",)

    def __init__(self, key: Union[bytes, bytearray, "PublicKey"]):
        """
        Initialize public key.

        Args:
            key: 32 raw bytes or another PublicKey

        Raises:
            InvalidKeyError: If the key is not exactly 32 bytes
        """
        if isinstance(key, PublicKey):
            key = key.to_bytes()
        if not isinstance(key, (bytes, bytearray)):
            raise InvalidKeyError(f"Invalid public key type: {type(key)}")
        if len(key) != PUBLIC_KEY_LENGTH:
            raise InvalidKeyError(
                f"Public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(key)}"
            )
        object.__setattr__(self, "_bytes", bytes(key))

    def __setattr__(self, name, value):
        raise AttributeError("PublicKey is immutable")

    @classmethod
    def from_string(cls, value: str) -> "PublicKey":
        """
        Create from a base58 string.

        Args:
            value: Base58-encoded 32-byte key

        Returns:
            PublicKey instance

        Raises:
            InvalidKeyError: If the text is not base58 or not 32 bytes
        """
        if not isinstance(value, str) or not value:
            raise InvalidKeyError(f"Invalid base58 public key: {value!r}")
        try:
            raw = base58.b58decode(value)
        except ValueError as e:
            raise InvalidKeyError(f"Invalid base58 public key {value!r}: {e}")
        return cls(raw)

    @classmethod
    def default(cls) -> "PublicKey":
        """The all-zero key, used by the ledger for unset key fields."""
        return cls(bytes(PUBLIC_KEY_LENGTH))

    def is_default(self) -> bool:
        return self._bytes == bytes(PUBLIC_KEY_LENGTH)

    def to_bytes(self) -> bytes:
        return self._bytes

    def to_base58(self) -> str:
        return base58.b58encode(self._bytes).decode("ascii")

    def __bytes__(self) -> bytes:
        return self._bytes

    def __str__(self) -> str:
        return self.to_base58()

    def __repr__(self) -> str:
        return f"PublicKey({self.to_base58()})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self._bytes == other._bytes

    def __lt__(self, other: "PublicKey") -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.to_base58() < other.to_base58()

    def __hash__(self) -> int:
        return hash(self._bytes)


class Keypair:
    """
    Ed25519 keypair for transaction signing.

    Wraps cryptography's Ed25519PrivateKey.
    """

    def __init__(self, private_key: Ed25519PrivateKey):
        self._key = private_key
        raw_public = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        self._public_key = PublicKey(raw_public)

    @classmethod
    def generate(cls) -> "Keypair":
        """Generate a new random keypair."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "Keypair":
        """
        Create from a 32-byte private seed.

        Raises:
            InvalidKeyError: If the seed is not 32 bytes
        """
        if len(seed) != PUBLIC_KEY_LENGTH:
            raise InvalidKeyError(f"Keypair seed must be 32 bytes, got {len(seed)}")
        return cls(Ed25519PrivateKey.from_private_bytes(bytes(seed)))

    @classmethod
    def from_secret_key(cls, secret: bytes) -> "Keypair":
        """
        Create from a 64-byte secret key (seed followed by public key).

        The embedded public key must match the one derived from the seed.

        Raises:
            InvalidKeyError: If the secret is malformed or inconsistent
        """
        secret = bytes(secret)
        if len(secret) == PUBLIC_KEY_LENGTH:
            return cls.from_seed(secret)
        if len(secret) != SECRET_KEY_LENGTH:
            raise InvalidKeyError(
                f"Secret key must be {SECRET_KEY_LENGTH} bytes, got {len(secret)}"
            )
        keypair = cls.from_seed(secret[:PUBLIC_KEY_LENGTH])
        if keypair.public_key.to_bytes() != secret[PUBLIC_KEY_LENGTH:]:
            raise InvalidKeyError("Secret key public half does not match its seed")
        return keypair

    @classmethod
    def from_json(cls, text: str) -> "Keypair":
        """
        Create from a JSON array of byte values (keypair file format).

        Raises:
            InvalidKeyError: If the JSON is not a list of byte values
        """
        try:
            values = json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidKeyError(f"Keypair JSON is invalid: {e}")
        if not isinstance(values, list) or not all(
            isinstance(v, int) and 0 <= v <= 255 for v in values
        ):
            raise InvalidKeyError("Keypair JSON must be an array of byte values")
        return cls.from_secret_key(bytes(values))

    @classmethod
    def from_base58(cls, text: str) -> "Keypair":
        """Create from a base58-encoded 64-byte secret key."""
        try:
            secret = base58.b58decode(text.strip())
        except ValueError as e:
            raise InvalidKeyError(f"Keypair is not valid base58: {e}")
        return cls.from_secret_key(secret)

    @classmethod
    def from_environment(cls, variable: str) -> "Keypair":
        """
        Load a keypair from an environment variable.

        The value may be the JSON array form or the base58 form.

        Raises:
            ConfigurationError: If the variable is unset
            InvalidKeyError: If the value is malformed
        """
        value = os.environ.get(variable)
        if not value:
            raise ConfigurationError(f"Environment variable {variable} is not set")
        value = value.strip()
        if value.startswith("["):
            return cls.from_json(value)
        return cls.from_base58(value)

    @property
    def public_key(self) -> PublicKey:
        return self._public_key

    def secret_key(self) -> bytes:
        """Return the 64-byte secret key (seed || public key)."""
        seed = self._key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        return seed + self._public_key.to_bytes()

    def sign(self, message: bytes) -> bytes:
        """
        Sign a message.

        Args:
            message: Serialized transaction message

        Returns:
            64-byte Ed25519 signature
        """
        return self._key.sign(message)

    def __repr__(self) -> str:
        return f"Keypair({self._public_key})"
