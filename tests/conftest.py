"""
Shared fixtures: an in-memory ledger that executes directed stake
instructions with the on-chain rules and reports failures in the same
shape as the JSON-RPC transport.
"""

import hashlib
from collections import defaultdict
from typing import Awaitable, Callable, Dict, List, Optional

import pytest
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from directed_stake.constants import IX_CLOSE_DIRECTOR, IX_INIT_DIRECTOR, IX_SET_STAKE_TARGET
from directed_stake.crypto import Keypair, PublicKey, find_director_address
from directed_stake.director import DirectorLedgerClient, DirectorLifecycleManager
from directed_stake.exceptions import TransactionRejectedError
from directed_stake.program import Director, Instruction
from directed_stake.rpc import AccountInfo, LedgerTransport
from directed_stake.transactions import Transaction

DIRECTOR_RENT = 1_392_000


class FakeLedger(LedgerTransport):
    """
    Ledger state held in memory.

    Transactions apply atomically: instructions run against a staged copy
    that is only committed when every instruction succeeds.
    """

    def __init__(self, program_id: PublicKey):
        self.program_id = program_id
        self.accounts: Dict[PublicKey, AccountInfo] = {}
        self.balances: Dict[PublicKey, int] = defaultdict(int)
        self.sent: List[Transaction] = []
        self.blockhash = hashlib.sha256(b"blockhash").digest()
        self.before_send: Optional[Callable[[], Awaitable[None]]] = None

    # ── reads ──

    async def get_multiple_accounts(self, addresses):
        return [self.accounts.get(a) for a in addresses]

    async def get_program_accounts(self, program_id, data_size=None, memcmp=()):
        matches = []
        for address, info in self.accounts.items():
            if info.owner != program_id:
                continue
            if data_size is not None and len(info.data) != data_size:
                continue
            if any(info.data[f.offset:f.offset + len(f.data)] != f.data for f in memcmp):
                continue
            matches.append((address, info))
        return matches

    async def get_latest_blockhash(self):
        return self.blockhash

    # ── writes ──

    async def send_transaction(self, transaction: Transaction) -> str:
        if self.before_send is not None:
            hook, self.before_send = self.before_send, None
            await hook()

        payload = transaction.message.serialize()
        for key, signature in zip(transaction.message.signer_keys, transaction.signatures):
            try:
                Ed25519PublicKey.from_public_bytes(key.to_bytes()).verify(signature, payload)
            except InvalidSignature:
                raise TransactionRejectedError("Signature verification failed", err="SignatureFailure")

        staged = dict(self.accounts)
        credits: Dict[PublicKey, int] = defaultdict(int)
        logs: List[str] = []
        for index, instruction in enumerate(transaction.message.decompile()):
            failure = self._execute(staged, credits, instruction, logs)
            if failure is not None:
                raise TransactionRejectedError(
                    f"Transaction simulation failed: Error processing Instruction {index}: {failure}",
                    err={"InstructionError": [index, failure]},
                    logs=logs,
                )

        self.accounts = staged
        for key, amount in credits.items():
            self.balances[key] += amount
        self.sent.append(transaction)
        return transaction.signature

    def _execute(self, staged, credits, instruction: Instruction, logs):
        if instruction.program_id != self.program_id:
            return None
        metas = instruction.accounts
        director, authority = metas[0].pubkey, metas[1]
        logs.append(f"Program {self.program_id} invoke [1]")
        logs.append(f"Program log: Instruction: {instruction.name}")

        if not authority.is_signer:
            return "MissingRequiredSignature"
        if director != find_director_address(authority.pubkey, self.program_id):
            return {"Custom": 2006}

        if instruction.name == IX_INIT_DIRECTOR:
            if director in staged:
                logs.append(
                    f"Allocate: account Address {{ address: {director}, base: None }} already in use"
                )
                return {"Custom": 0}
            staged[director] = AccountInfo(
                owner=self.program_id,
                lamports=DIRECTOR_RENT,
                data=Director(authority=authority.pubkey).encode(),
            )
            return None

        existing = staged.get(director)
        if existing is None:
            logs.append("Program log: AnchorError caused by account: director. Error Code: AccountNotInitialized.")
            return {"Custom": 3012}
        record = Director.decode(existing.data)
        if record.authority != authority.pubkey:
            return {"Custom": 2001}

        if instruction.name == IX_SET_STAKE_TARGET:
            updated = Director(authority=record.authority, stake_target=metas[2].pubkey)
            staged[director] = AccountInfo(existing.owner, existing.lamports, updated.encode())
            return None
        if instruction.name == IX_CLOSE_DIRECTOR:
            del staged[director]
            credits[metas[2].pubkey] += existing.lamports
            return None
        return {"Custom": 101}  # InstructionFallbackNotFound

    # ── test helpers ──

    def put_director(self, authority: PublicKey, stake_target: Optional[PublicKey]) -> PublicKey:
        """Seed a record directly, bypassing transactions."""
        address = find_director_address(authority, self.program_id)
        self.accounts[address] = AccountInfo(
            owner=self.program_id,
            lamports=DIRECTOR_RENT,
            data=Director(authority=authority, stake_target=stake_target).encode(),
        )
        return address

    def sent_instruction_names(self, index: int = -1) -> List[str]:
        return [ix.name for ix in self.sent[index].message.decompile()]


def make_key(label: str) -> PublicKey:
    return PublicKey(hashlib.sha256(label.encode()).digest())


@pytest.fixture
def program_id():
    return make_key("directed-stake-program")


@pytest.fixture
def ledger(program_id):
    return FakeLedger(program_id)


@pytest.fixture
def client(ledger, program_id):
    return DirectorLedgerClient(ledger, program_id)


@pytest.fixture
def manager(ledger, program_id):
    return DirectorLifecycleManager(ledger, program_id)


@pytest.fixture
def wallet():
    return Keypair.generate()


@pytest.fixture
def validator_a():
    return make_key("validator-a")


@pytest.fixture
def validator_b():
    return make_key("validator-b")
