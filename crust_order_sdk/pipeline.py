"""
Order pipeline: from a content identifier to an on-chain storage order.
"""
import asyncio
import logging
from collections import defaultdict
from typing import Dict, Optional

from .chain.node import ChainNode, SignedTransaction, UnsignedTransaction
from .exceptions import PinningError
from .models import OrderOutcome
from .observer import TransactionObserver
from .pinning import IpfsPinningClient
from .signer import Credential

logger = logging.getLogger(__name__)


class OrderPipeline:
    """
    Places Crust storage orders.

    The pipeline is not idempotent: every call to ``place()`` signs a fresh
    transaction with the account's next nonce and creates an independent
    on-chain order.

    Nonce selection is not serialized per account unless
    ``serialize_nonces`` is set. Without it, concurrent orders signed by the
    same credential can pick the same nonce and all but one are refused by
    the node.

    Args:
        node: Chain node used to build, sign and submit transactions
        pinning: IPFS client, required only by ``store()``
        observer: Observer used to follow submissions (built from node by default)
        serialize_nonces: Hold a per-account lock from nonce lookup to submission
    """

    def __init__(
        self,
        node: ChainNode,
        pinning: Optional[IpfsPinningClient] = None,
        observer: Optional[TransactionObserver] = None,
        serialize_nonces: bool = False
    ):
        self.node = node
        self.pinning = pinning
        self.observer = observer or TransactionObserver(node)
        self.serialize_nonces = serialize_nonces
        self._account_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def place(
        self,
        content_id: str,
        size_bytes: int,
        credential: Credential,
        replica_count: int = 0
    ) -> OrderOutcome:
        """
        Build, sign and submit a storage order and wait for its outcome.

        Args:
            content_id: CID of the content to store
            size_bytes: Size of the content in bytes
            credential: Credential of the paying account
            replica_count: Third order argument (0 lets the network decide)

        Returns:
            Terminal outcome of the order

        Raises:
            SubmissionError: If the node refused the submission
            ChainConnectionError: If the connection failed while waiting
            ObservationTimeoutError: If the observer deadline passed
        """
        unsigned_tx = await self.node.build_place_order_tx(content_id, size_bytes, replica_count)

        if self.serialize_nonces:
            # Held from nonce lookup until the node has accepted the submission
            async with self._account_locks[credential.address]:
                signed_tx = await self._sign_next(unsigned_tx, credential)
                subscription = await self.observer.submit(signed_tx)
        else:
            signed_tx = await self._sign_next(unsigned_tx, credential)
            subscription = await self.observer.submit(signed_tx)

        return await self.observer.follow(signed_tx, subscription)

    async def _sign_next(self, unsigned_tx: UnsignedTransaction, credential: Credential) -> SignedTransaction:
        nonce = await self.node.current_nonce(credential.address)
        signed_tx = await self.node.sign(unsigned_tx, credential, nonce)
        logger.debug(f"Signed order for {unsigned_tx.request.content_id} with nonce {nonce}")
        return signed_tx

    async def store(self, content_id: str, credential: Credential, replica_count: int = 0) -> OrderOutcome:
        """
        Pin content, measure it and place a storage order for it.

        Args:
            content_id: CID of the content to store
            credential: Credential of the paying account
            replica_count: Third order argument (0 lets the network decide)

        Returns:
            Terminal outcome of the order

        Raises:
            PinningError: If pinning or the size lookup failed
            SubmissionError: If the node refused the submission
        """
        if self.pinning is None:
            raise PinningError("No IPFS pinning client configured")

        await asyncio.to_thread(self.pinning.ensure_pinned, content_id)
        size_bytes = await asyncio.to_thread(self.pinning.stat_size, content_id)
        logger.info(f"Placing storage order for {content_id} ({size_bytes} bytes)")

        outcome = await self.place(content_id, size_bytes, credential, replica_count)
        if outcome.is_success:
            logger.info(f"Publish {content_id} success")
        else:
            logger.error(f"Publish {content_id} failed: {outcome.kind.value} ({outcome.reason})")
        return outcome
