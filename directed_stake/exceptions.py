"""
Directed Stake Exceptions

Custom exception classes for the directed stake client.
"""

from typing import Any, List, Optional


class DirectedStakeException(Exception):
    """Base exception for directed stake."""
    pass


class InvalidKeyError(DirectedStakeException):
    """Invalid public key or keypair material."""
    pass


class InvalidSeedsError(DirectedStakeException):
    """Seeds cannot produce a program address."""
    pass


class ConfigurationError(DirectedStakeException):
    """Configuration error."""
    pass


class AccountDecodeError(DirectedStakeException):
    """Account data does not match the expected layout."""
    pass


class TransportError(DirectedStakeException):
    """Ledger communication error."""
    pass


class TransactionRejectedError(TransportError):
    """
    The ledger refused a submitted transaction.

    Attributes:
        err: Raw error object reported by the ledger
        logs: Program log lines, if the ledger returned any
    """

    def __init__(self, message: str, err: Any = None, logs: Optional[List[str]] = None):
        super().__init__(message)
        self.err = err
        self.logs = list(logs or [])

    @property
    def instruction_error(self):
        """Return ``(index, detail)`` for an InstructionError, else None."""
        if isinstance(self.err, dict) and "InstructionError" in self.err:
            index, detail = self.err["InstructionError"]
            return index, detail
        return None


class DirectorAlreadyExistsError(TransactionRejectedError):
    """
    Init was attempted for an authority that already has a director record.

    This is the losing side of the check-then-act race: another caller
    initialized the record between our read and our submission. Re-read
    the state and resubmit as a plain target update.
    """
    pass


class DirectorNotFoundError(TransactionRejectedError):
    """No director record exists for the authority."""
    pass


class AuthorityMismatchError(TransactionRejectedError):
    """Signer is not the authority of the director record."""
    pass


class MalformedSnapshotError(DirectedStakeException):
    """A snapshot row could not be parsed. Fatal for the whole batch."""

    def __init__(self, line_number: int, reason: str):
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Malformed snapshot line {line_number}: {reason}")
