"""
Exceptions for the Crust storage-order SDK.
"""
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import OrderOutcome


class CrustOrderError(Exception):
    """Base exception for all SDK errors."""
    pass


class InvalidSeedError(CrustOrderError):
    """Raised when a seed phrase cannot be turned into a key pair."""
    pass


class AdapterInputError(CrustOrderError):
    """Raised when an adapter request is missing or has malformed parameters."""
    pass


class ConfigurationError(CrustOrderError):
    """Raised when an environment setting has an invalid value."""
    pass


class PinningError(CrustOrderError):
    """Raised when pinning content or reading its size from IPFS fails."""
    pass


class ChainConnectionError(CrustOrderError):
    """Raised when the connection to the chain node fails."""
    pass


class SubmissionError(ChainConnectionError):
    """
    Raised when a signed transaction could not be handed to the chain node.

    No notification subscription exists when this is raised, so the caller
    may rebuild and resubmit.
    """
    pass


class ObservationTimeoutError(CrustOrderError):
    """Raised when an observer deadline passes before a terminal status."""
    pass


class OrderOutcomeError(CrustOrderError):
    """Raised by OrderOutcome.raise_for_outcome() for a failed order."""

    def __init__(self, message: str, outcome: Optional["OrderOutcome"] = None):
        self.outcome = outcome
        super().__init__(message)


class TransactionInvalidatedError(OrderOutcomeError):
    """The network dropped or superseded the transaction before inclusion."""
    pass


class TransactionRejectedError(OrderOutcomeError):
    """The transaction was included in a block but its execution failed."""
    pass
