"""
Crust storage-order SDK.

Pins IPFS content and places Crust storage orders for it, following each
submitted transaction until the chain reports a definitive result.
"""
from .version import __version__
from .config import AdapterSettings, NetworkConfig
from .exceptions import (
    CrustOrderError, InvalidSeedError, ConfigurationError, AdapterInputError, PinningError,
    ChainConnectionError, SubmissionError, ObservationTimeoutError,
    OrderOutcomeError, TransactionInvalidatedError, TransactionRejectedError
)
from .models import (
    TxStatus, StorageOrderRequest, ChainEvent, ChainNotification,
    OutcomeKind, OrderOutcome, EXTRINSIC_SUCCESS, EXTRINSIC_FAILED
)
from .signer import Credential, derive_credential
from .observer import TransactionObserver, TransactionTracker
from .pinning import IpfsPinningClient
from .pipeline import OrderPipeline

__all__ = [
    "__version__",
    "AdapterSettings",
    "NetworkConfig",
    "CrustOrderError",
    "InvalidSeedError",
    "ConfigurationError",
    "AdapterInputError",
    "PinningError",
    "ChainConnectionError",
    "SubmissionError",
    "ObservationTimeoutError",
    "OrderOutcomeError",
    "TransactionInvalidatedError",
    "TransactionRejectedError",
    "TxStatus",
    "StorageOrderRequest",
    "ChainEvent",
    "ChainNotification",
    "OutcomeKind",
    "OrderOutcome",
    "EXTRINSIC_SUCCESS",
    "EXTRINSIC_FAILED",
    "Credential",
    "derive_credential",
    "TransactionObserver",
    "TransactionTracker",
    "IpfsPinningClient",
    "OrderPipeline",
]
