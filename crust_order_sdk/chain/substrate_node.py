"""
Crust chain node over Substrate JSON-RPC.

Runtime metadata, SCALE encoding, signing, nonce lookup and event decoding
go through substrate-interface. Extrinsic status updates are watched on a
dedicated websocket per submission (author_submitAndWatchExtrinsic), so a
slow watcher never blocks other requests.
"""
import asyncio
import json
import logging
import threading
from itertools import count
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import websockets
from websockets.exceptions import ConnectionClosed
from substrateinterface import ExtrinsicReceipt, SubstrateInterface

from ..exceptions import ChainConnectionError, SubmissionError
from ..models import ChainEvent, ChainNotification, StorageOrderRequest, TxStatus
from ..signer import CRUST_SS58_FORMAT, Credential
from ..utils import validate_url
from .node import ChainNode, SignedTransaction, UnsignedTransaction
from .subscription import NotificationSubscription

logger = logging.getLogger(__name__)

# JSON-RPC status keys reported by author_extrinsicUpdate
_STATUS_KEYS = {
    "future": TxStatus.FUTURE,
    "ready": TxStatus.READY,
    "broadcast": TxStatus.BROADCAST,
    "inBlock": TxStatus.IN_BLOCK,
    "retracted": TxStatus.RETRACTED,
    "finalityTimeout": TxStatus.FINALITY_TIMEOUT,
    "finalized": TxStatus.FINALIZED,
    "usurped": TxStatus.USURPED,
    "dropped": TxStatus.DROPPED,
    "invalid": TxStatus.INVALID,
}

# Statuses whose payload is the hash of a block
_BLOCK_STATUSES = {TxStatus.IN_BLOCK, TxStatus.RETRACTED, TxStatus.FINALITY_TIMEOUT, TxStatus.FINALIZED}


def parse_extrinsic_status(result: Any) -> Optional[Tuple[TxStatus, Optional[str]]]:
    """
    Parse the result of an author_extrinsicUpdate notification.

    Simple statuses arrive as strings ("ready"); the others as a
    single-key object ({"inBlock": "0x..."}).

    Returns:
        (status, block_hash), or None for an unrecognized status
    """
    if isinstance(result, str):
        status = _STATUS_KEYS.get(result)
        return (status, None) if status else None

    if isinstance(result, dict) and len(result) == 1:
        key, value = next(iter(result.items()))
        status = _STATUS_KEYS.get(key)
        if status is None:
            return None
        block_hash = value if status in _BLOCK_STATUSES and isinstance(value, str) else None
        return status, block_hash

    return None


def event_from_record(record: Any) -> ChainEvent:
    """
    Convert a decoded event record into a ChainEvent.

    The section is the pallet name in lower camel case ("System" becomes
    "system"), matching how runtime events are usually addressed.
    """
    value = getattr(record, "value", record)
    inner = value.get("event") or {}
    module_id = value.get("module_id") or inner.get("module_id") or ""
    event_id = value.get("event_id") or inner.get("event_id") or ""
    return ChainEvent(section=module_id[:1].lower() + module_id[1:], method=event_id)


class SubstrateChainNode(ChainNode):
    """
    Chain node backed by a Substrate-based Crust node.

    Args:
        node_url: Websocket endpoint of the node (wss://, or ws:// for local nodes)
        ss58_format: Address format of the network
        connect_timeout: Timeout for opening websocket connections in seconds
        request_timeout: Timeout for JSON-RPC responses in seconds
    """

    PLACE_ORDER_MODULE = "Market"
    PLACE_ORDER_FUNCTION = "place_storage_order"
    # Argument names of Market.place_storage_order, in call order
    PLACE_ORDER_PARAMS = ("cid", "reported_file_size", "tips")

    def __init__(
        self,
        node_url: str,
        ss58_format: int = CRUST_SS58_FORMAT,
        connect_timeout: float = 15.0,
        request_timeout: float = 30.0
    ):
        self.node_url = validate_url(node_url, "node_url", ("wss",))
        self.ss58_format = ss58_format
        self.connect_timeout = connect_timeout
        self.request_timeout = request_timeout
        self.substrate: Optional[SubstrateInterface] = None
        self._request_ids = count(1)
        self._open: Set[NotificationSubscription] = set()
        # substrate-interface shares one websocket; the lock is held by the worker
        # thread, so a cancelled caller cannot release it while the call still runs
        self._rpc_lock = threading.Lock()

    async def initialize(self) -> None:
        if self.substrate is not None:
            return
        try:
            self.substrate = await asyncio.to_thread(
                SubstrateInterface,
                url=self.node_url,
                ss58_format=self.ss58_format
            )
        except Exception as e:
            logger.error(f"Failed to connect to chain node {self.node_url}: {e}")
            raise ChainConnectionError(f"Failed to connect to chain node {self.node_url}: {str(e)}") from e
        logger.info(f"Connected to chain node {self.node_url}")

    def _require(self) -> SubstrateInterface:
        if self.substrate is None:
            raise ChainConnectionError("Chain node not initialized")
        return self.substrate

    def _locked(self, fn: Callable, *args, **kwargs) -> Any:
        with self._rpc_lock:
            return fn(*args, **kwargs)

    async def _call(self, fn: Callable, *args, **kwargs) -> Any:
        return await asyncio.to_thread(self._locked, fn, *args, **kwargs)

    async def build_place_order_tx(
        self,
        content_id: str,
        size_bytes: int,
        replica_count: int = 0
    ) -> UnsignedTransaction:
        request = StorageOrderRequest(
            content_id=content_id,
            size_bytes=size_bytes,
            replica_count=replica_count
        )
        call_params = dict(zip(self.PLACE_ORDER_PARAMS, (content_id, size_bytes, replica_count)))
        try:
            call = await self._call(
                self._require().compose_call,
                call_module=self.PLACE_ORDER_MODULE,
                call_function=self.PLACE_ORDER_FUNCTION,
                call_params=call_params
            )
        except ChainConnectionError:
            raise
        except Exception as e:
            raise ChainConnectionError(f"Failed to build storage order call: {str(e)}") from e
        return UnsignedTransaction(request=request, call=call)

    async def current_nonce(self, address: str) -> int:
        try:
            return await self._call(self._require().get_account_nonce, address)
        except ChainConnectionError:
            raise
        except Exception as e:
            raise ChainConnectionError(f"Failed to read nonce for {address}: {str(e)}") from e

    async def sign(
        self,
        unsigned_tx: UnsignedTransaction,
        credential: Credential,
        nonce: int
    ) -> SignedTransaction:
        try:
            extrinsic = await self._call(
                self._require().create_signed_extrinsic,
                call=unsigned_tx.call,
                keypair=credential.keypair,
                nonce=nonce
            )
        except ChainConnectionError:
            raise
        except Exception as e:
            raise ChainConnectionError(f"Failed to sign storage order: {str(e)}") from e
        extrinsic_hash = extrinsic.extrinsic_hash
        if isinstance(extrinsic_hash, bytes):
            extrinsic_hash = f"0x{extrinsic_hash.hex()}"
        return SignedTransaction(
            request=unsigned_tx.request,
            payload=str(extrinsic.data),
            nonce=nonce,
            signer_address=credential.address,
            tx_hash=extrinsic_hash
        )

    async def submit(self, signed_tx: SignedTransaction) -> NotificationSubscription:
        try:
            ws = await websockets.connect(self.node_url, open_timeout=self.connect_timeout)
        except Exception as e:
            logger.error(f"Failed to open watch connection to {self.node_url}: {e}")
            raise SubmissionError(f"Failed to connect to chain node: {str(e)}") from e

        request_id = next(self._request_ids)
        early: List[Dict[str, Any]] = []
        try:
            await ws.send(json.dumps({
                "jsonrpc": "2.0",
                "id": request_id,
                "method": "author_submitAndWatchExtrinsic",
                "params": [signed_tx.payload],
            }))
            response = await self._await_response(ws, request_id, early)
        except asyncio.CancelledError:
            await ws.close()
            raise
        except Exception as e:
            await ws.close()
            raise SubmissionError(f"Failed to submit transaction: {str(e)}") from e

        if "error" in response:
            await ws.close()
            error = response["error"] or {}
            raise SubmissionError(
                f"{error.get('code')}: {error.get('message')}"
                + (f": {error['data']}" if error.get("data") else "")
            )

        subscription_id = response.get("result")
        reader: Optional[asyncio.Task] = None

        async def release() -> None:
            self._open.discard(subscription)
            if reader is not None and not reader.done():
                reader.cancel()
            try:
                await ws.send(json.dumps({
                    "jsonrpc": "2.0",
                    "id": next(self._request_ids),
                    "method": "author_unwatchExtrinsic",
                    "params": [subscription_id],
                }))
            except ConnectionClosed:
                pass
            finally:
                await ws.close()

        subscription = NotificationSubscription(signed_tx.tx_hash, on_unsubscribe=release)
        self._open.add(subscription)
        reader = asyncio.ensure_future(
            self._read_notifications(ws, subscription_id, signed_tx, subscription, early)
        )
        logger.debug(f"Watching {signed_tx.tx_hash[:10]}... as subscription {subscription_id}")
        return subscription

    async def _await_response(self, ws, request_id: int, early: List[Dict[str, Any]]) -> Dict[str, Any]:
        while True:
            raw = await asyncio.wait_for(ws.recv(), timeout=self.request_timeout)
            message = json.loads(raw)
            if message.get("id") == request_id:
                return message
            # Updates can race ahead of the subscription id
            early.append(message)

    async def _read_notifications(
        self,
        ws,
        subscription_id: str,
        signed_tx: SignedTransaction,
        subscription: NotificationSubscription,
        early: List[Dict[str, Any]]
    ) -> None:
        try:
            for message in early:
                await self._dispatch(message, subscription_id, signed_tx, subscription)
            async for raw in ws:
                await self._dispatch(json.loads(raw), subscription_id, signed_tx, subscription)
            subscription.fail(ChainConnectionError("Chain node closed the notification stream"))
        except asyncio.CancelledError:
            raise
        except ConnectionClosed as e:
            subscription.fail(ChainConnectionError(f"Notification stream closed: {e}"))
        except Exception as e:
            logger.error(f"Error reading notifications for {signed_tx.tx_hash[:10]}...: {e}")
            subscription.fail(ChainConnectionError(f"Error reading notifications: {str(e)}"))

    async def _dispatch(
        self,
        message: Dict[str, Any],
        subscription_id: str,
        signed_tx: SignedTransaction,
        subscription: NotificationSubscription
    ) -> None:
        params = message.get("params") or {}
        if message.get("method") != "author_extrinsicUpdate" or params.get("subscription") != subscription_id:
            return

        parsed = parse_extrinsic_status(params.get("result"))
        if parsed is None:
            logger.warning(f"Unrecognized extrinsic status for {signed_tx.tx_hash[:10]}...: {params.get('result')}")
            return

        status, block_hash = parsed
        events: List[ChainEvent] = []
        if status in (TxStatus.IN_BLOCK, TxStatus.FINALIZED) and block_hash:
            events = await self._call(self._extrinsic_events, signed_tx.tx_hash, block_hash)
        subscription.push(ChainNotification(status=status, block_hash=block_hash, events=events))

    def _extrinsic_events(self, tx_hash: str, block_hash: str) -> List[ChainEvent]:
        receipt = ExtrinsicReceipt(substrate=self.substrate, extrinsic_hash=tx_hash, block_hash=block_hash)
        return [event_from_record(record) for record in receipt.triggered_events]

    async def close(self) -> None:
        for subscription in list(self._open):
            await subscription.unsubscribe()
        if self.substrate is not None:
            try:
                await self._call(self.substrate.close)
            except Exception as e:
                logger.warning(f"Error closing chain node connection: {e}", exc_info=True)
            self.substrate = None
        logger.debug(f"Closed chain node {self.node_url}")
