"""
Transaction observer for submitted storage orders.

The observer submits a signed transaction, follows the node's status
notifications for it, and resolves to exactly one OrderOutcome.

Block inclusion alone does not mean the extrinsic succeeded: the events
delivered with the InBlock notification decide the result. The earliest
unambiguous InBlock decision is accepted without waiting for finality.
"""
import asyncio
import logging
from enum import Enum
from typing import Optional

from ._rate_limited_log import rate_limited_log
from .chain.node import ChainNode, SignedTransaction
from .chain.subscription import NotificationSubscription
from .exceptions import ChainConnectionError, ObservationTimeoutError, SubmissionError
from .models import (
    ChainNotification, OrderOutcome, TxStatus,
    INVALIDATING_STATUSES, EXTRINSIC_FAILED, EXTRINSIC_SUCCESS
)

logger = logging.getLogger(__name__)


class TrackerState(str, Enum):
    SUBMITTED = "Submitted"
    IN_BLOCK = "InBlock"
    RESOLVED = "Resolved"


class TransactionTracker:
    """
    State machine for one submitted transaction.

    ``feed()`` returns the outcome for the notification that resolves the
    transaction and None otherwise. Once resolved, every later notification
    is ignored.
    """

    def __init__(self, signed_tx: SignedTransaction):
        self.signed_tx = signed_tx
        self.state = TrackerState.SUBMITTED
        self.outcome: Optional[OrderOutcome] = None
        self.notifications_seen = 0
        self.ignored = 0

    @property
    def resolved(self) -> bool:
        return self.outcome is not None

    def feed(self, notification: ChainNotification) -> Optional[OrderOutcome]:
        self.notifications_seen += 1
        tx = self.signed_tx
        logger.debug(
            f"Transaction status: {notification.status.value}, nonce: {tx.nonce}, tx: {tx.tx_hash[:10]}..."
        )

        if self.resolved:
            self.ignored += 1
            logger.debug(
                f"Ignoring {notification.status.value} for {tx.tx_hash[:10]}..., already {self.outcome.kind.value}"
            )
            return None

        if notification.status in INVALIDATING_STATUSES:
            return self._resolve(OrderOutcome.invalidated(
                tx.content_id,
                reason=notification.status.value,
                tx_hash=tx.tx_hash,
                nonce=tx.nonce,
                block_hash=notification.block_hash
            ))

        if notification.status == TxStatus.IN_BLOCK:
            self.state = TrackerState.IN_BLOCK
            return self._inspect_block(notification)

        rate_limited_log(
            f"Still waiting on {tx.tx_hash[:10]}... (status {notification.status.value})",
            level="info",
            interval=30,
            logger_instance=logger
        )
        return None

    def _inspect_block(self, notification: ChainNotification) -> Optional[OrderOutcome]:
        tx = self.signed_tx
        for event in notification.events:
            if event.matches(EXTRINSIC_FAILED.section, EXTRINSIC_FAILED.method):
                logger.error(f"Send transaction {tx.tx_hash[:10]}... failed in block {notification.block_hash}")
                return self._resolve(OrderOutcome.rejected(
                    tx.content_id,
                    tx_hash=tx.tx_hash,
                    nonce=tx.nonce,
                    block_hash=notification.block_hash
                ))
            if event.matches(EXTRINSIC_SUCCESS.section, EXTRINSIC_SUCCESS.method):
                logger.info(f"Send transaction {tx.tx_hash[:10]}... succeeded in block {notification.block_hash}")
                return self._resolve(OrderOutcome.confirmed(
                    tx.content_id,
                    tx_hash=tx.tx_hash,
                    nonce=tx.nonce,
                    block_hash=notification.block_hash
                ))

        # Included, but this notification does not carry the result yet
        logger.debug(f"No result event for {tx.tx_hash[:10]}... in block {notification.block_hash}")
        return None

    def _resolve(self, outcome: OrderOutcome) -> OrderOutcome:
        self.outcome = outcome
        self.state = TrackerState.RESOLVED
        return outcome


class TransactionObserver:
    """
    Submits signed transactions and waits for their terminal outcome.

    Args:
        node: Chain node used for submission
        timeout: Optional deadline in seconds for a terminal outcome.
            None waits until the stream resolves or ends.
    """

    def __init__(self, node: ChainNode, timeout: Optional[float] = None):
        self.node = node
        self.timeout = timeout

    async def observe(self, signed_tx: SignedTransaction) -> OrderOutcome:
        """
        Submit a signed transaction and wait for its outcome.

        Args:
            signed_tx: Transaction to submit

        Returns:
            The first terminal outcome reported for the transaction

        Raises:
            SubmissionError: If the node did not accept the transaction
            ChainConnectionError: If the stream ended before a terminal status
            ObservationTimeoutError: If the optional deadline passed
        """
        subscription = await self.submit(signed_tx)
        return await self.follow(signed_tx, subscription)

    async def submit(self, signed_tx: SignedTransaction) -> NotificationSubscription:
        """
        Hand a signed transaction to the node and open its subscription.

        Raises:
            SubmissionError: If the node did not accept the transaction
        """
        logger.info(f"Send tx {signed_tx.tx_hash[:10]}... to chain, nonce: {signed_tx.nonce}")
        try:
            return await self.node.submit(signed_tx)
        except SubmissionError:
            raise
        except Exception as e:
            logger.error(f"Failed to submit transaction {signed_tx.tx_hash[:10]}...: {e}")
            raise SubmissionError(f"Failed to submit transaction: {str(e)}") from e

    async def follow(
        self,
        signed_tx: SignedTransaction,
        subscription: NotificationSubscription
    ) -> OrderOutcome:
        """
        Drive the state machine over an open subscription until it resolves.

        The subscription is released on every exit path.
        """
        tracker = TransactionTracker(signed_tx)
        async with subscription:
            if self.timeout is None:
                return await self._follow(subscription, tracker)
            try:
                return await asyncio.wait_for(self._follow(subscription, tracker), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.error(
                    f"No terminal status for {signed_tx.tx_hash[:10]}... after {self.timeout}s "
                    f"(last state {tracker.state.value})"
                )
                raise ObservationTimeoutError(
                    f"Transaction {signed_tx.tx_hash} not resolved within {self.timeout}s"
                )

    async def _follow(self, subscription: NotificationSubscription, tracker: TransactionTracker) -> OrderOutcome:
        async for notification in subscription:
            outcome = tracker.feed(notification)
            if outcome is not None:
                return outcome

        raise ChainConnectionError(
            f"Notification stream for {tracker.signed_tx.tx_hash} ended in state {tracker.state.value} "
            f"after {tracker.notifications_seen} notifications"
        )
