"""
Director Lifecycle Manager

State machine per authority, observed from the ledger:

    UNINITIALIZED --init+set--> ACTIVE --set--> ACTIVE
          ^                        |
          +---------close----------+

A closed record is indistinguishable from one that never existed, so
re-initialising after close is the same path as the first init.

`set_target` is check-then-act against a remote ledger. Two callers can
both read UNINITIALIZED and both submit init+set; the deterministic
record address lets exactly one init succeed and the other is rejected
with DirectorAlreadyExistsError at submission time. That error is
recoverable: re-read the state and submit a plain update, which
`set_target_resolving_conflict` does exactly once.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from ..crypto.keys import Keypair, PublicKey
from ..exceptions import DirectorAlreadyExistsError, TransactionRejectedError
from ..logger import get_logger
from ..program import instructions as ix
from ..program.errors import translate_rejection
from ..rpc.transport import LedgerTransport
from ..transactions.message import Transaction
from .client import DirectorLedgerClient

logger = get_logger(__name__)


class DirectorState(Enum):
    """Observable state of an authority's director record."""
    UNINITIALIZED = "uninitialized"   # No record; also the state after close
    ACTIVE = "active"                 # Record exists, target possibly unset


@dataclass(frozen=True)
class LifecycleResult:
    """
    Outcome of a submitted lifecycle transaction.

    Attributes:
        signature: Transaction signature
        initialized: True if the transaction created the record
    """
    signature: str
    initialized: bool = False


def compose_set_target(
    program_id: PublicKey,
    authority: PublicKey,
    validator: PublicKey,
    initialize: bool,
    payer: Optional[PublicKey] = None,
) -> List[ix.Instruction]:
    """
    Instructions that point `authority`'s record at `validator`.

    With `initialize`, the init instruction comes first so creation and
    target-setting land in the same atomic transaction.
    """
    instructions = []
    if initialize:
        instructions.append(ix.init_director(program_id, authority, payer or authority))
    instructions.append(ix.set_stake_target(program_id, authority, validator))
    return instructions


class DirectorLifecycleManager:
    """
    Drives init / set-target / close for director records.

    Args:
        transport: Ledger transport used for reads and submissions
        program_id: Directed stake program
        client: Optional pre-built read client sharing the transport
    """

    def __init__(
        self,
        transport: LedgerTransport,
        program_id: PublicKey,
        client: Optional[DirectorLedgerClient] = None,
    ):
        self.transport = transport
        self.program_id = program_id
        self.client = client or DirectorLedgerClient(transport, program_id)

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_current_target(self, authority: PublicKey) -> Optional[PublicKey]:
        """
        Read the authority's stake target.

        Returns:
            Validator key, or None when no record exists
        """
        director = await self.client.fetch_for_authority(authority)
        return director.stake_target if director else None

    async def get_state(self, authority: PublicKey) -> DirectorState:
        director = await self.client.fetch_for_authority(authority)
        return DirectorState.ACTIVE if director is not None else DirectorState.UNINITIALIZED

    # =========================================================================
    # INSTRUCTION BUILDERS
    # =========================================================================

    async def build_set_target_instructions(
        self,
        authority: PublicKey,
        validator: PublicKey,
        payer: Optional[PublicKey] = None,
    ) -> List[ix.Instruction]:
        """
        Read the current state and return the instructions for a target change,
        without submitting them.

        The init instruction is included only when no record exists. The
        caller composing these into a larger transaction is subject to the
        same race as `set_target`.
        """
        director = await self.client.fetch_for_authority(authority)
        return compose_set_target(
            self.program_id, authority, validator, initialize=director is None, payer=payer,
        )

    def build_close_instruction(self, authority: PublicKey, rent_destination: PublicKey) -> ix.Instruction:
        return ix.close_director(self.program_id, authority, rent_destination)

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    async def set_target(
        self,
        authority: Keypair,
        validator: PublicKey,
        payer: Optional[Keypair] = None,
    ) -> LifecycleResult:
        """
        Direct `authority`'s stake to `validator`.

        Creates the record (init+set, one transaction) when it does not
        exist, otherwise submits only set-target. Setting the same
        validator again is harmless.

        Args:
            authority: Wallet whose stake is directed; always signs
            validator: Validator to direct to
            payer: Pays rent and fees; defaults to `authority`

        Raises:
            DirectorAlreadyExistsError: Another caller initialized the record
                between our read and our submission
            TransactionRejectedError: Any other ledger refusal
            TransportError: Ledger communication failed
        """
        payer = payer or authority
        instructions = await self.build_set_target_instructions(
            authority.public_key, validator, payer=payer.public_key,
        )
        initialized = len(instructions) == 2
        if initialized:
            logger.info(f"No director for {authority.public_key}; submitting init + set_stake_target")
        else:
            logger.info(f"Director exists for {authority.public_key}; submitting set_stake_target")

        signature = await self._submit(instructions, fee_payer=payer, signers=[authority])
        logger.info(f"Stake of {authority.public_key} directed to {validator} ({signature})")
        return LifecycleResult(signature=signature, initialized=initialized)

    async def set_target_resolving_conflict(
        self,
        authority: Keypair,
        validator: PublicKey,
        payer: Optional[Keypair] = None,
    ) -> LifecycleResult:
        """
        `set_target`, recovering once from a lost init race.

        On DirectorAlreadyExistsError the state is re-read and the change is
        resubmitted as an update. Other failures are not retried.
        """
        try:
            return await self.set_target(authority, validator, payer=payer)
        except DirectorAlreadyExistsError:
            logger.warning(
                f"Director for {authority.public_key} was initialized concurrently; retrying as update"
            )
            return await self.set_target(authority, validator, payer=payer)

    async def close(
        self,
        authority: Keypair,
        rent_destination: PublicKey,
        fee_payer: Optional[Keypair] = None,
    ) -> LifecycleResult:
        """
        Close `authority`'s record and return its rent to `rent_destination`.

        Raises:
            DirectorNotFoundError: No record exists
            AuthorityMismatchError: The signer is not the record's authority
            TransportError: Ledger communication failed
        """
        instruction = self.build_close_instruction(authority.public_key, rent_destination)
        signature = await self._submit(
            [instruction], fee_payer=fee_payer or authority, signers=[authority],
        )
        logger.info(f"Director of {authority.public_key} closed; rent to {rent_destination} ({signature})")
        return LifecycleResult(signature=signature)

    async def _submit(
        self,
        instructions: Sequence[ix.Instruction],
        fee_payer: Keypair,
        signers: Sequence[Keypair],
    ) -> str:
        blockhash = await self.transport.get_latest_blockhash()
        transaction = Transaction.build(instructions, fee_payer, blockhash, signers)
        try:
            return await self.transport.send_transaction(transaction)
        except TransactionRejectedError as e:
            typed = translate_rejection(e, instructions)
            if typed is e:
                raise
            raise typed from e
