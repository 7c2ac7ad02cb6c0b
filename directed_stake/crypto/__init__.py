"""
Directed Stake Crypto Module

This module provides the ledger's cryptographic primitives:
- Ed25519 keys (PublicKey, Keypair)
- Program-derived addresses and the director address derivation
"""

from .keys import PublicKey, Keypair
from .address import (
    AddressDeriver,
    create_program_address,
    find_director_address,
    find_program_address,
    is_on_curve,
)

__all__ = [
    "PublicKey",
    "Keypair",
    "AddressDeriver",
    "create_program_address",
    "find_director_address",
    "find_program_address",
    "is_on_curve",
]
