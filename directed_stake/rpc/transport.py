"""
Ledger Transport Interface

Abstract boundary to the remote ledger. Every component takes a transport
in its constructor, so tests substitute an in-memory ledger and
production uses the JSON-RPC implementation in `rpc.http`.

Transports own timeouts and confirmation policy. They never retry a
submission; failures propagate as TransportError (or
TransactionRejectedError when the ledger refused the transaction).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..crypto.keys import PublicKey
from ..transactions.message import Transaction


@dataclass(frozen=True)
class AccountInfo:
    """
    Raw account state as reported by the ledger.

    Attributes:
        owner: Program that owns the account
        lamports: Balance in the ledger's smallest unit
        data: Raw account data
        executable: Whether the account is a program
    """
    owner: PublicKey
    lamports: int
    data: bytes
    executable: bool = False


@dataclass(frozen=True)
class MemcmpFilter:
    """Match accounts whose data at `offset` starts with `data`."""
    offset: int
    data: bytes


class LedgerTransport(ABC):
    """Remote ledger operations the director client depends on."""

    @abstractmethod
    async def get_multiple_accounts(
        self, addresses: Sequence[PublicKey]
    ) -> List[Optional[AccountInfo]]:
        """Fetch accounts in request order; None where an account does not exist."""

    @abstractmethod
    async def get_program_accounts(
        self,
        program_id: PublicKey,
        data_size: Optional[int] = None,
        memcmp: Sequence[MemcmpFilter] = (),
    ) -> List[Tuple[PublicKey, AccountInfo]]:
        """Full scan of accounts owned by `program_id` matching every filter."""

    @abstractmethod
    async def get_latest_blockhash(self) -> bytes:
        """Return a recent 32-byte blockhash for transaction building."""

    @abstractmethod
    async def send_transaction(self, transaction: Transaction) -> str:
        """
        Submit a signed transaction and wait for confirmation.

        All instructions apply together or not at all.

        Returns:
            Transaction signature (base58)

        Raises:
            TransactionRejectedError: The ledger refused the transaction
            TransportError: Network failure or confirmation timeout
        """

    async def close(self) -> None:
        """Release any held connections."""

    async def __aenter__(self) -> "LedgerTransport":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
