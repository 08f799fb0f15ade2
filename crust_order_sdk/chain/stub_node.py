"""
Scripted in-process chain node.

This module provides a chain node that never touches the network. Each
submission replays a scripted sequence of notifications, which makes it
useful for development and for exercising the observer state machine.
"""
import asyncio
import hashlib
import logging
from collections import defaultdict, deque
from typing import Deque, Dict, Iterable, List, Optional, Set

from ..exceptions import ChainConnectionError, SubmissionError
from ..models import (
    ChainEvent, ChainNotification, StorageOrderRequest, TxStatus,
    EXTRINSIC_SUCCESS, EXTRINSIC_FAILED
)
from ..signer import Credential
from .node import ChainNode, SignedTransaction, UnsignedTransaction
from .subscription import NotificationSubscription

logger = logging.getLogger(__name__)

STUB_BLOCK_HASH = "0x" + "ab" * 32


def in_block(*events: ChainEvent, block_hash: str = STUB_BLOCK_HASH) -> ChainNotification:
    """Build an InBlock notification carrying the given events"""
    return ChainNotification(status=TxStatus.IN_BLOCK, block_hash=block_hash, events=list(events))


def status(tag: TxStatus, block_hash: Optional[str] = None) -> ChainNotification:
    """Build a notification without events"""
    return ChainNotification(status=tag, block_hash=block_hash)


def successful_script() -> List[ChainNotification]:
    return [
        status(TxStatus.READY),
        in_block(ChainEvent(section="market", method="FileSuccess"), EXTRINSIC_SUCCESS),
        status(TxStatus.FINALIZED, STUB_BLOCK_HASH),
    ]


def failed_script() -> List[ChainNotification]:
    return [status(TxStatus.READY), in_block(EXTRINSIC_FAILED)]


class StubChainNode(ChainNode):
    """
    Chain node that replays scripted notification sequences.

    Scripts are queued per content identifier with ``script()``; a submission
    without a queued script replays ``default_script``. Nonces follow the
    node's transaction pool: the next nonce accounts for transactions still
    pending, and a second submission with a nonce already in the pool is
    rejected the way a real node rejects it.

    Args:
        default_script: Notifications replayed when no script is queued
        stall: Keep streams open after the script instead of ending them
    """

    def __init__(
        self,
        default_script: Optional[Iterable[ChainNotification]] = None,
        stall: bool = False
    ):
        self.default_script = list(default_script) if default_script is not None else successful_script()
        self.stall = stall
        self.initialized = False
        self.submissions: List[SignedTransaction] = []
        self.subscriptions: List[NotificationSubscription] = []
        self._scripts: Dict[str, Deque[List[ChainNotification]]] = defaultdict(deque)
        self._submit_errors: Deque[BaseException] = deque()
        self._account_nonces: Dict[str, int] = defaultdict(int)
        self._pool: Dict[str, Set[int]] = defaultdict(set)

    @property
    def open_subscriptions(self) -> int:
        return sum(1 for sub in self.subscriptions if not sub.closed)

    def script(self, content_id: str, notifications: Iterable[ChainNotification]) -> None:
        """Queue the notifications replayed for the next submission of content_id"""
        self._scripts[content_id].append(list(notifications))

    def fail_next_submit(self, error: BaseException) -> None:
        """Make the next submit() raise the given error"""
        self._submit_errors.append(error)

    def set_account_nonce(self, address: str, nonce: int) -> None:
        self._account_nonces[address] = nonce

    def _ensure_initialized(self) -> None:
        if not self.initialized:
            raise ChainConnectionError("Stub chain node not initialized")

    async def initialize(self) -> None:
        self.initialized = True
        logger.debug("Initialized stub chain node")

    async def build_place_order_tx(
        self,
        content_id: str,
        size_bytes: int,
        replica_count: int = 0
    ) -> UnsignedTransaction:
        self._ensure_initialized()
        request = StorageOrderRequest(
            content_id=content_id,
            size_bytes=size_bytes,
            replica_count=replica_count
        )
        call = {
            "call_module": "Market",
            "call_function": "place_storage_order",
            "call_args": [content_id, size_bytes, replica_count],
        }
        return UnsignedTransaction(request=request, call=call)

    async def current_nonce(self, address: str) -> int:
        self._ensure_initialized()
        pending = self._pool[address]
        nonce = max([self._account_nonces[address]] + [n + 1 for n in pending])
        # Yield like a network round trip would
        await asyncio.sleep(0)
        return nonce

    async def sign(
        self,
        unsigned_tx: UnsignedTransaction,
        credential: Credential,
        nonce: int
    ) -> SignedTransaction:
        self._ensure_initialized()
        request = unsigned_tx.request
        digest = hashlib.sha256(
            f"{credential.address}:{nonce}:{request.content_id}:{request.size_bytes}:{request.replica_count}".encode()
        ).hexdigest()
        return SignedTransaction(
            request=request,
            payload={"call": unsigned_tx.call, "nonce": nonce, "signer": credential.address},
            nonce=nonce,
            signer_address=credential.address,
            tx_hash=f"0x{digest}"
        )

    async def submit(self, signed_tx: SignedTransaction) -> NotificationSubscription:
        self._ensure_initialized()
        if self._submit_errors:
            raise self._submit_errors.popleft()

        address = signed_tx.signer_address
        if signed_tx.nonce < self._account_nonces[address]:
            raise SubmissionError("1010: Invalid Transaction: Transaction is outdated")
        if signed_tx.nonce in self._pool[address]:
            raise SubmissionError("1014: Priority is too low: transaction with the same nonce is already in the pool")

        self._pool[address].add(signed_tx.nonce)
        self.submissions.append(signed_tx)

        queued = self._scripts.get(signed_tx.content_id)
        notifications = queued.popleft() if queued else list(self.default_script)

        subscription = NotificationSubscription(signed_tx.tx_hash)
        self.subscriptions.append(subscription)
        for notification in notifications:
            self._apply_to_pool(signed_tx, notification)
            subscription.push(notification)
        if not self.stall:
            subscription.finish()

        logger.debug(f"Stub node accepted {signed_tx.tx_hash[:10]}... with {len(notifications)} scripted notifications")
        return subscription

    def _apply_to_pool(self, signed_tx: SignedTransaction, notification: ChainNotification) -> None:
        address = signed_tx.signer_address
        if notification.status == TxStatus.IN_BLOCK:
            self._pool[address].discard(signed_tx.nonce)
            self._account_nonces[address] = max(self._account_nonces[address], signed_tx.nonce + 1)
        elif notification.status in (TxStatus.INVALID, TxStatus.DROPPED, TxStatus.USURPED):
            self._pool[address].discard(signed_tx.nonce)

    async def close(self) -> None:
        for subscription in self.subscriptions:
            await subscription.unsubscribe()
        self.initialized = False
