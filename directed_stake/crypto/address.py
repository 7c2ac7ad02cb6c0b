"""
Directed Stake Crypto Address Module

Implements the ledger's program-derived address scheme and the director
record address derivation built on it.

A program address is sha256(seeds || program_id || "ProgramDerivedAddress")
that does NOT decode to an Ed25519 curve point, so no private key can
ever sign for it. `find_program_address` searches a one-byte "bump" seed
from 255 downward until the hash falls off the curve.
"""

import hashlib
from typing import Iterable, List, Sequence, Tuple, Union

from ..constants import (
    DIRECTOR_SEED,
    MAX_SEED_LENGTH,
    MAX_SEEDS,
    PDA_MARKER,
    PUBLIC_KEY_LENGTH,
)
from ..exceptions import InvalidKeyError, InvalidSeedsError
from .keys import PublicKey

# Ed25519: -x^2 + y^2 = 1 + d*x^2*y^2 over GF(2^255 - 19)
_P = 2 ** 255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P

Seed = Union[bytes, PublicKey]


def is_on_curve(point: bytes) -> bool:
    """
    Check whether 32 bytes decompress to an Ed25519 point.

    Follows the compressed Edwards-Y decoding: the top bit carries the sign
    of x, the remaining 255 bits are y (reduced mod p). The point exists iff
    x^2 = (y^2 - 1) / (d*y^2 + 1) has a square root.

    Args:
        point: 32-byte compressed point

    Returns:
        True if the bytes are a valid curve point
    """
    if len(point) != PUBLIC_KEY_LENGTH:
        raise InvalidKeyError(f"Curve point must be {PUBLIC_KEY_LENGTH} bytes, got {len(point)}")
    y = (int.from_bytes(point, "little") & ((1 << 255) - 1)) % _P
    y2 = y * y % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    # d is a non-square, so v is never zero
    x2 = u * pow(v, _P - 2, _P) % _P
    if x2 == 0:
        return True
    # Euler's criterion
    return pow(x2, (_P - 1) // 2, _P) == 1


def _seed_bytes(seeds: Iterable[Seed]) -> List[bytes]:
    out = []
    for seed in seeds:
        raw = seed.to_bytes() if isinstance(seed, PublicKey) else bytes(seed)
        if len(raw) > MAX_SEED_LENGTH:
            raise InvalidSeedsError(f"Seed exceeds {MAX_SEED_LENGTH} bytes: {len(raw)}")
        out.append(raw)
    if len(out) > MAX_SEEDS:
        raise InvalidSeedsError(f"At most {MAX_SEEDS} seeds are allowed, got {len(out)}")
    return out


def create_program_address(seeds: Sequence[Seed], program_id: PublicKey) -> PublicKey:
    """
    Derive a program address from exact seeds.

    Args:
        seeds: Seed byte strings (or keys), bump included if any
        program_id: Owning program

    Returns:
        Derived address

    Raises:
        InvalidSeedsError: If seeds are out of bounds or the hash lands on the curve
    """
    hasher = hashlib.sha256()
    for raw in _seed_bytes(seeds):
        hasher.update(raw)
    hasher.update(program_id.to_bytes())
    hasher.update(PDA_MARKER)
    digest = hasher.digest()
    if is_on_curve(digest):
        raise InvalidSeedsError("Derived address lies on the Ed25519 curve")
    return PublicKey(digest)


def find_program_address(seeds: Sequence[Seed], program_id: PublicKey) -> Tuple[PublicKey, int]:
    """
    Find the canonical program address and its bump seed.

    Args:
        seeds: Seed byte strings (or keys), without bump
        program_id: Owning program

    Returns:
        Tuple of (address, bump)

    Raises:
        InvalidSeedsError: If no bump in 255..0 yields an off-curve address
    """
    base = _seed_bytes(seeds)
    if len(base) >= MAX_SEEDS:
        raise InvalidSeedsError(f"At most {MAX_SEEDS - 1} seeds leave room for a bump")
    for bump in range(255, -1, -1):
        try:
            return create_program_address(base + [bytes([bump])], program_id), bump
        except InvalidSeedsError:
            continue
    raise InvalidSeedsError("Unable to find a viable program address bump seed")


def find_director_address(authority: PublicKey, program_id: PublicKey) -> PublicKey:
    """
    Derive the director record address for an authority.

    Seeds are the literal "director" followed by the authority's 32 bytes.
    """
    address, _ = find_program_address([DIRECTOR_SEED, authority], program_id)
    return address


class AddressDeriver:
    """
    Maps a wallet to its unique director record address.

    Bound to one program id; stateless and safe to share.
    """

    def __init__(self, program_id: PublicKey):
        self.program_id = program_id

    def derive(self, authority: PublicKey) -> PublicKey:
        return find_director_address(authority, self.program_id)

    def derive_with_bump(self, authority: PublicKey) -> Tuple[PublicKey, int]:
        return find_program_address([DIRECTOR_SEED, authority], self.program_id)

    def __call__(self, authority: PublicKey) -> PublicKey:
        return self.derive(authority)
