"""
Contract exception hierarchy for the Orange vesting ledger.

Provides typed exceptions for token and vesting operations so callers can
handle each rejection precisely. Every failure aborts the whole operation;
none of these errors is recoverable within the call that raised it.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class ContractExecutionError(Exception):
    """Base exception for all contract execution failures.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried as submitted
    """

    recoverable = False

    def __init__(
        self,
        message: str = "",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        message = message or self.default_message()
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @classmethod
    def default_message(cls) -> str:
        return cls.__name__

    @property
    def code(self) -> str:
        """Stable error identifier (the exception class name)."""
        return type(self).__name__


# ==================== Token Errors ====================


class TokenError(ContractExecutionError):
    """Raised when a token ledger operation fails."""
    pass


class InsufficientBalanceError(TokenError):
    """Raised when an account lacks the balance for a transfer."""
    pass


class InvalidRecipientError(TokenError):
    """Raised when a transfer or mint targets the zero address."""
    pass


class InvalidAmountError(TokenError):
    """Raised when a token amount is negative or exceeds uint256."""
    pass


class SupplyCapExceededError(TokenError):
    """Raised when minting would exceed the token's supply cap."""
    pass


class TGEExecuted(TokenError):
    """Raised when the token generation event is executed a second time."""
    pass


# ==================== Vesting Errors ====================


class VestingError(ContractExecutionError):
    """Raised when a vesting ledger operation is rejected."""
    pass


class AccessIsDenied(VestingError):
    """Raised when a non-admin calls an admin-only operation."""
    pass


class DataLengthsIsZero(VestingError):
    """Raised when a schedule batch carries no entries."""
    pass


class DataLengthsNotMatch(VestingError):
    """Raised when batch accounts and amounts differ in length."""
    pass


class IncorrectAmount(VestingError):
    """Raised when a batch amount is zero."""
    pass


class ZeroAddress(VestingError):
    """Raised when a batch account or rescue token is the zero address."""
    pass


class InsufficientTokens(VestingError):
    """Raised when the available capacity cannot cover a top-up."""
    pass


class TotalAmountLessThanClaimed(VestingError):
    """Raised when a new schedule total is below the amount already claimed."""
    pass


class NotStarted(VestingError):
    """Raised when a schedule write is attempted before vesting has started."""
    pass


class VestingAlreadyStarted(VestingError):
    """Raised when the vesting start timestamp is set twice."""
    pass


class ClaimAmountIsZero(VestingError):
    """Raised when a claim finds nothing newly unlocked."""
    pass


class ForbiddenWithdrawalFromOwnContract(VestingError):
    """Raised when a rescue targets the vesting token itself."""
    pass


# ==================== Storage Errors ====================


class StateError(ContractExecutionError):
    """Raised when persisted contract state is missing or inconsistent."""
    pass
