"""
Ledger Rejection Translation

Maps the raw error object of a rejected transaction onto the typed
director errors, so callers can tell a lost init race apart from any
other refusal.
"""

from typing import Optional, Sequence

from ..constants import IX_CLOSE_DIRECTOR, IX_INIT_DIRECTOR, IX_SET_STAKE_TARGET
from ..exceptions import (
    AuthorityMismatchError,
    DirectorAlreadyExistsError,
    DirectorNotFoundError,
    TransactionRejectedError,
)
from .instructions import Instruction

# System program: account already in use
SYSTEM_ACCOUNT_ALREADY_IN_USE = 0

# Anchor framework error codes
ANCHOR_CONSTRAINT_HAS_ONE = 2001
ANCHOR_CONSTRAINT_SEEDS = 2006
ANCHOR_ACCOUNT_NOT_INITIALIZED = 3012

ALREADY_IN_USE_LOG = "already in use"


def _custom_code(detail) -> Optional[int]:
    if isinstance(detail, dict) and "Custom" in detail:
        return int(detail["Custom"])
    return None


def translate_rejection(
    error: TransactionRejectedError,
    instructions: Sequence[Instruction],
) -> TransactionRejectedError:
    """
    Return the most specific error for a rejected transaction.

    Args:
        error: Rejection raised by the transport
        instructions: Instructions of the rejected transaction, in order

    Returns:
        A typed subclass when the failure is recognised, else `error` itself
    """
    if type(error) is not TransactionRejectedError:
        return error

    located = error.instruction_error
    if located is None:
        return error
    index, detail = located
    name = instructions[index].name if 0 <= index < len(instructions) else "unknown"
    code = _custom_code(detail)
    already_in_use = any(ALREADY_IN_USE_LOG in line for line in error.logs)

    if name == IX_INIT_DIRECTOR and (code == SYSTEM_ACCOUNT_ALREADY_IN_USE or already_in_use):
        kind = DirectorAlreadyExistsError
    elif name in (IX_SET_STAKE_TARGET, IX_CLOSE_DIRECTOR) and code == ANCHOR_ACCOUNT_NOT_INITIALIZED:
        kind = DirectorNotFoundError
    elif code in (ANCHOR_CONSTRAINT_HAS_ONE, ANCHOR_CONSTRAINT_SEEDS):
        kind = AuthorityMismatchError
    else:
        return error

    return kind(f"{name} rejected: {error}", err=error.err, logs=error.logs)
