"""
Director Account Layout

Binary codec for the on-chain Director account:

    discriminator (8) || authority (32) || stake_target (32)

Discriminators follow the Anchor convention: the first 8 bytes of
sha256("account:<Name>") for accounts and sha256("global:<name>") for
instructions.
"""

import hashlib
from dataclasses import dataclass
from typing import Optional

from ..constants import (
    DIRECTOR_ACCOUNT_NAME,
    DIRECTOR_ACCOUNT_SIZE,
    DISCRIMINATOR_LENGTH,
    PUBLIC_KEY_LENGTH,
)
from ..crypto.keys import PublicKey
from ..exceptions import AccountDecodeError


def account_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"account:{name}".encode("utf-8")).digest()[:DISCRIMINATOR_LENGTH]


def instruction_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"global:{name}".encode("utf-8")).digest()[:DISCRIMINATOR_LENGTH]


DIRECTOR_DISCRIMINATOR = account_discriminator(DIRECTOR_ACCOUNT_NAME)


@dataclass(frozen=True)
class Director:
    """
    One authority's stake-direction choice.

    Attributes:
        authority: Owning wallet, fixed at creation
        stake_target: Validator the stake is directed to; None only between
            init and the first set, which the ledger never exposes when both
            are submitted in one transaction
    """
    authority: PublicKey
    stake_target: Optional[PublicKey] = None

    @property
    def is_active(self) -> bool:
        return self.stake_target is not None

    def encode(self) -> bytes:
        target = self.stake_target or PublicKey.default()
        return DIRECTOR_DISCRIMINATOR + self.authority.to_bytes() + target.to_bytes()

    @classmethod
    def decode(cls, data: bytes) -> "Director":
        """
        Decode raw account data.

        Raises:
            AccountDecodeError: On a size or discriminator mismatch
        """
        if len(data) < DIRECTOR_ACCOUNT_SIZE:
            raise AccountDecodeError(
                f"Director account needs {DIRECTOR_ACCOUNT_SIZE} bytes, got {len(data)}"
            )
        if data[:DISCRIMINATOR_LENGTH] != DIRECTOR_DISCRIMINATOR:
            raise AccountDecodeError("Account discriminator is not Director")

        offset = DISCRIMINATOR_LENGTH
        authority = PublicKey(data[offset:offset + PUBLIC_KEY_LENGTH])
        offset += PUBLIC_KEY_LENGTH
        target = PublicKey(data[offset:offset + PUBLIC_KEY_LENGTH])
        return cls(authority=authority, stake_target=None if target.is_default() else target)


@dataclass(frozen=True)
class DirectorRecord:
    """A Director together with the address it was read from, when known."""
    director: Director
    address: Optional[PublicKey] = None

    @property
    def authority(self) -> PublicKey:
        return self.director.authority

    @property
    def stake_target(self) -> Optional[PublicKey]:
        return self.director.stake_target
