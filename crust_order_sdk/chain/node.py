"""
Chain-node interface used by the order pipeline.

This module defines the contract every chain-node implementation follows,
so the pipeline and observer work the same against a live Crust node or
a scripted in-process node.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from ..models import StorageOrderRequest
from ..signer import Credential
from .subscription import NotificationSubscription

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnsignedTransaction:
    """
    A place-storage-order call that has not been signed yet.

    The call object is opaque outside the node that built it.
    """
    request: StorageOrderRequest
    call: Any


@dataclass(frozen=True)
class SignedTransaction:
    """
    A wire-ready signed transaction.

    Attributes:
        request: Order the transaction carries
        payload: Opaque wire payload understood by the node that signed it
        nonce: Account sequence number assigned at signing time
        signer_address: SS58 address of the signing account
        tx_hash: Hash identifying the extrinsic
    """
    request: StorageOrderRequest
    payload: Any
    nonce: int
    signer_address: str
    tx_hash: str

    @property
    def content_id(self) -> str:
        return self.request.content_id


class ChainNode(ABC):
    """
    Abstract base class for chain-node connections.

    A node may be shared by concurrent submissions. It does not serialize
    nonce assignment per account.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """
        Open the connection to the node.

        Raises:
            ChainConnectionError: If the node cannot be reached
        """
        pass

    @abstractmethod
    async def build_place_order_tx(
        self,
        content_id: str,
        size_bytes: int,
        replica_count: int = 0
    ) -> UnsignedTransaction:
        """
        Build an unsigned market.placeStorageOrder call.

        Args:
            content_id: CID of the content to store
            size_bytes: Cumulative size of the content in bytes
            replica_count: Third order argument, 0 lets the network decide

        Returns:
            Unsigned transaction
        """
        pass

    @abstractmethod
    async def current_nonce(self, address: str) -> int:
        """
        Get the next usable nonce for an account.

        Args:
            address: SS58 address of the account

        Returns:
            Next nonce
        """
        pass

    @abstractmethod
    async def sign(
        self,
        unsigned_tx: UnsignedTransaction,
        credential: Credential,
        nonce: int
    ) -> SignedTransaction:
        """
        Sign a transaction with the given credential and nonce.

        Args:
            unsigned_tx: Transaction to sign
            credential: Signing credential
            nonce: Nonce to embed in the transaction

        Returns:
            Signed transaction
        """
        pass

    @abstractmethod
    async def submit(self, signed_tx: SignedTransaction) -> NotificationSubscription:
        """
        Submit a signed transaction and watch its status.

        Args:
            signed_tx: Transaction to submit

        Returns:
            Subscription delivering the transaction's notifications

        Raises:
            SubmissionError: If the node did not accept the submission
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""
        pass

    async def __aenter__(self) -> "ChainNode":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
