"""
Directed Stake Program Instructions

Builders for the three program instructions. None of them take
arguments beyond the discriminator; every input is passed as an account.
"""

from dataclasses import dataclass, field
from typing import List

from ..constants import (
    IX_CLOSE_DIRECTOR,
    IX_INIT_DIRECTOR,
    IX_SET_STAKE_TARGET,
    SYSTEM_PROGRAM_ID,
)
from ..crypto.address import find_director_address
from ..crypto.keys import PublicKey
from .layout import instruction_discriminator

SYSTEM_PROGRAM = PublicKey.from_string(SYSTEM_PROGRAM_ID)

INIT_DIRECTOR_DISCRIMINATOR = instruction_discriminator(IX_INIT_DIRECTOR)
SET_STAKE_TARGET_DISCRIMINATOR = instruction_discriminator(IX_SET_STAKE_TARGET)
CLOSE_DIRECTOR_DISCRIMINATOR = instruction_discriminator(IX_CLOSE_DIRECTOR)

INSTRUCTION_NAMES = {
    INIT_DIRECTOR_DISCRIMINATOR: IX_INIT_DIRECTOR,
    SET_STAKE_TARGET_DISCRIMINATOR: IX_SET_STAKE_TARGET,
    CLOSE_DIRECTOR_DISCRIMINATOR: IX_CLOSE_DIRECTOR,
}


@dataclass(frozen=True)
class AccountMeta:
    pubkey: PublicKey
    is_signer: bool
    is_writable: bool


@dataclass(frozen=True)
class Instruction:
    """
    A single program invocation.

    Attributes:
        program_id: Program to invoke
        accounts: Ordered account list the program expects
        data: Discriminator followed by any encoded arguments
    """
    program_id: PublicKey
    accounts: List[AccountMeta] = field(default_factory=list)
    data: bytes = b""

    @property
    def name(self) -> str:
        """Instruction name when it belongs to the directed stake program."""
        return INSTRUCTION_NAMES.get(self.data[:8], "unknown")


def init_director(program_id: PublicKey, authority: PublicKey, payer: PublicKey) -> Instruction:
    """
    Create the director record for `authority`; `payer` funds its rent.

    Fails on-chain if the record already exists.
    """
    director = find_director_address(authority, program_id)
    return Instruction(
        program_id=program_id,
        accounts=[
            AccountMeta(director, is_signer=False, is_writable=True),
            AccountMeta(authority, is_signer=True, is_writable=False),
            AccountMeta(payer, is_signer=True, is_writable=True),
            AccountMeta(SYSTEM_PROGRAM, is_signer=False, is_writable=False),
        ],
        data=INIT_DIRECTOR_DISCRIMINATOR,
    )


def set_stake_target(program_id: PublicKey, authority: PublicKey, stake_target: PublicKey) -> Instruction:
    """Overwrite the stake target of an existing (or just-initialized) record."""
    director = find_director_address(authority, program_id)
    return Instruction(
        program_id=program_id,
        accounts=[
            AccountMeta(director, is_signer=False, is_writable=True),
            AccountMeta(authority, is_signer=True, is_writable=False),
            AccountMeta(stake_target, is_signer=False, is_writable=False),
        ],
        data=SET_STAKE_TARGET_DISCRIMINATOR,
    )


def close_director(program_id: PublicKey, authority: PublicKey, rent_destination: PublicKey) -> Instruction:
    """Remove the record and send its rent balance to `rent_destination`."""
    director = find_director_address(authority, program_id)
    return Instruction(
        program_id=program_id,
        accounts=[
            AccountMeta(director, is_signer=False, is_writable=True),
            AccountMeta(authority, is_signer=True, is_writable=False),
            AccountMeta(rent_destination, is_signer=False, is_writable=True),
        ],
        data=CLOSE_DIRECTOR_DISCRIMINATOR,
    )
