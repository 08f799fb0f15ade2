"""
Data models for the Crust storage-order SDK.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import TransactionInvalidatedError, TransactionRejectedError


class TxStatus(str, Enum):
    """Lifecycle statuses a node reports for a watched extrinsic"""
    FUTURE = "Future"
    READY = "Ready"
    BROADCAST = "Broadcast"
    IN_BLOCK = "InBlock"
    RETRACTED = "Retracted"
    FINALITY_TIMEOUT = "FinalityTimeout"
    FINALIZED = "Finalized"
    USURPED = "Usurped"
    DROPPED = "Dropped"
    INVALID = "Invalid"


# Statuses after which the transaction can never be finalized
INVALIDATING_STATUSES = frozenset({
    TxStatus.INVALID,
    TxStatus.DROPPED,
    TxStatus.USURPED,
    TxStatus.RETRACTED,
})


class StorageOrderRequest(BaseModel):
    """Arguments of a single market.placeStorageOrder call"""
    model_config = ConfigDict(frozen=True)

    content_id: str = Field(..., min_length=1)
    size_bytes: int = Field(..., ge=0)
    replica_count: int = Field(0, ge=0)


class ChainEvent(BaseModel):
    """A runtime event, identified by its pallet section and method"""
    model_config = ConfigDict(frozen=True)

    section: str
    method: str

    def matches(self, section: str, method: str) -> bool:
        return self.section == section and self.method == method


class ChainNotification(BaseModel):
    """One status update emitted by the node for a watched extrinsic"""
    model_config = ConfigDict(frozen=True)

    status: TxStatus
    block_hash: Optional[str] = None
    events: List[ChainEvent] = Field(default_factory=list)


class OutcomeKind(str, Enum):
    """Terminal results of a submitted storage order"""
    CONFIRMED = "Confirmed"
    REJECTED = "Rejected"
    INVALIDATED = "Invalidated"


class OrderOutcome(BaseModel):
    """
    Terminal result of one submitted storage order.

    CONFIRMED means the extrinsic executed successfully in a block.
    REJECTED means it was included but execution failed (fees are spent).
    INVALIDATED means the network never included it.
    """
    model_config = ConfigDict(frozen=True)

    kind: OutcomeKind
    content_id: str
    reason: Optional[str] = None
    tx_hash: Optional[str] = None
    nonce: Optional[int] = None
    block_hash: Optional[str] = None

    @classmethod
    def confirmed(cls, content_id: str, **kwargs) -> "OrderOutcome":
        return cls(kind=OutcomeKind.CONFIRMED, content_id=content_id, **kwargs)

    @classmethod
    def rejected(cls, content_id: str, reason: str = "execution failed", **kwargs) -> "OrderOutcome":
        return cls(kind=OutcomeKind.REJECTED, content_id=content_id, reason=reason, **kwargs)

    @classmethod
    def invalidated(cls, content_id: str, reason: str, **kwargs) -> "OrderOutcome":
        return cls(kind=OutcomeKind.INVALIDATED, content_id=content_id, reason=reason, **kwargs)

    @property
    def is_success(self) -> bool:
        return self.kind == OutcomeKind.CONFIRMED

    def raise_for_outcome(self) -> None:
        """
        Raise an exception if the order did not succeed.

        Raises:
            TransactionRejectedError: If execution failed on-chain
            TransactionInvalidatedError: If the network never included the transaction
        """
        if self.kind == OutcomeKind.REJECTED:
            raise TransactionRejectedError(
                f"Storage order for {self.content_id} was included but failed: {self.reason}",
                outcome=self
            )
        if self.kind == OutcomeKind.INVALIDATED:
            raise TransactionInvalidatedError(
                f"Storage order for {self.content_id} was not accepted by the network: {self.reason}",
                outcome=self
            )


# System events that decide an included extrinsic's result
EXTRINSIC_SUCCESS = ChainEvent(section="system", method="ExtrinsicSuccess")
EXTRINSIC_FAILED = ChainEvent(section="system", method="ExtrinsicFailed")
