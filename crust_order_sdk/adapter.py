"""
External-adapter entry points.

Wraps the order pipeline in the request/response format of a Chainlink
external adapter and exposes handlers for Google Cloud Functions and
AWS Lambda.

Request:
    {"id": "<job run id>", "data": {"cid": "Qm...", "ipfsPinHost": ..., "crustNodeUrl": ...,
                                    "crustOrderSeeds": ..., "hostNodes": [...]}}

Only ``cid`` is required; the other parameters fall back to AdapterSettings.
"""
import asyncio
import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .chain import init_chain_node
from .chain.node import ChainNode
from .config import AdapterSettings, NetworkConfig
from .exceptions import AdapterInputError, CrustOrderError
from .models import OrderOutcome
from .observer import TransactionObserver
from .pinning import IpfsPinningClient
from .pipeline import OrderPipeline
from .signer import derive_credential
from .utils import validate_cid

logger = logging.getLogger(__name__)

# Parameter name -> required
CUSTOM_PARAMS = {
    "cid": True,
    "hostNodes": False,
    "ipfsPinHost": False,
    "crustNodeUrl": False,
    "crustOrderSeeds": False,
}

DEFAULT_JOB_RUN_ID = "1"


@dataclass
class ValidatedRequest:
    """Adapter request with defaults applied"""
    job_run_id: str
    cid: str
    ipfs_pin_host: str
    crust_node_url: str
    crust_order_seeds: str = field(repr=False)
    host_nodes: List[str] = field(default_factory=list)


def _job_run_id(input_data: Any) -> str:
    if isinstance(input_data, dict) and input_data.get("id") is not None:
        return str(input_data["id"])
    return DEFAULT_JOB_RUN_ID


def validate_request(input_data: Any, settings: AdapterSettings) -> ValidatedRequest:
    """
    Validate an adapter request and fill in defaults.

    Args:
        input_data: Raw request body
        settings: Defaults for omitted parameters

    Returns:
        Validated request

    Raises:
        AdapterInputError: If a parameter is missing or malformed
    """
    if not isinstance(input_data, dict):
        raise AdapterInputError(f"Request must be a JSON object, got {type(input_data).__name__}")

    data = input_data.get("data")
    if not isinstance(data, dict):
        raise AdapterInputError("Request must contain a 'data' object")

    for name, required in CUSTOM_PARAMS.items():
        if required and data.get(name) in (None, ""):
            raise AdapterInputError(f"Required parameter not supplied: {name}")

    cid = validate_cid(data["cid"])

    host_nodes = data.get("hostNodes") or []
    if isinstance(host_nodes, str):
        host_nodes = [node.strip() for node in host_nodes.split(",") if node.strip()]
    if not isinstance(host_nodes, list) or not all(isinstance(node, str) for node in host_nodes):
        raise AdapterInputError("hostNodes must be a list of multiaddresses")

    ipfs_pin_host = data.get("ipfsPinHost") or settings.ipfs_pin_host
    if not ipfs_pin_host:
        raise AdapterInputError("No ipfsPinHost supplied and DEFAULT_IPFS_PIN_HOST is not set")

    seeds = data.get("crustOrderSeeds") or settings.crust_order_seeds
    if not seeds:
        raise AdapterInputError("No crustOrderSeeds supplied and DEFAULT_CRUST_ORDER_SEEDS is not set")

    try:
        crust_node_url = settings.resolve_node_url(data.get("crustNodeUrl"))
    except ValueError as e:
        raise AdapterInputError(str(e)) from e

    return ValidatedRequest(
        job_run_id=_job_run_id(input_data),
        cid=cid,
        ipfs_pin_host=ipfs_pin_host,
        crust_node_url=crust_node_url,
        crust_order_seeds=seeds,
        host_nodes=host_nodes
    )


def success(job_run_id: str, data: Dict[str, Any], status_code: int = 200) -> Dict[str, Any]:
    return {
        "jobRunID": job_run_id,
        "data": data,
        "result": data.get("result"),
        "statusCode": status_code,
    }


def errored(job_run_id: str, error: BaseException, status_code: int = 500) -> Dict[str, Any]:
    return {
        "jobRunID": job_run_id,
        "status": "errored",
        "error": {"name": type(error).__name__, "message": str(error)},
        "statusCode": status_code,
    }


def _outcome_data(outcome: OrderOutcome) -> Dict[str, Any]:
    return {
        "result": outcome.content_id,
        "status": outcome.kind.value,
        "txHash": outcome.tx_hash,
        "nonce": outcome.nonce,
        "blockHash": outcome.block_hash,
    }


async def create_request(
    input_data: Any,
    settings: Optional[AdapterSettings] = None,
    node: Optional[ChainNode] = None,
    pinning: Optional[IpfsPinningClient] = None
) -> Tuple[int, Dict[str, Any]]:
    """
    Handle one adapter request: pin, measure and order storage for a CID.

    Args:
        input_data: Raw request body
        settings: Defaults for omitted parameters (read from the environment if None)
        node: Chain node to use instead of the process-wide node for the URL
        pinning: IPFS client to use instead of one built from the request

    Returns:
        (status_code, response body)
    """
    job_run_id = _job_run_id(input_data)
    owns_pinning = pinning is None

    try:
        settings = settings or AdapterSettings.from_env()
        request = validate_request(input_data, settings)
        ss58_format = NetworkConfig.get_ss58_format(settings.network)
        credential = derive_credential(request.crust_order_seeds, ss58_format=ss58_format)

        if pinning is None:
            try:
                pinning = IpfsPinningClient(request.ipfs_pin_host, auth_token=settings.ipfs_auth_token)
            except ValueError as e:
                raise AdapterInputError(str(e)) from e
        if request.host_nodes:
            await asyncio.to_thread(pinning.connect_peers, request.host_nodes)

        if node is None:
            try:
                node = await init_chain_node(request.crust_node_url, ss58_format=ss58_format)
            except ValueError as e:
                raise AdapterInputError(str(e)) from e

        pipeline = OrderPipeline(
            node,
            pinning=pinning,
            observer=TransactionObserver(node, timeout=settings.observe_timeout),
            serialize_nonces=settings.serialize_nonces
        )
        outcome = await pipeline.store(request.cid, credential)
        outcome.raise_for_outcome()
    except CrustOrderError as e:
        logger.error(f"Job {job_run_id} failed: {type(e).__name__}: {e}")
        return 500, errored(job_run_id, e)
    except Exception as e:
        logger.exception(f"Job {job_run_id} failed with an unexpected error")
        return 500, errored(job_run_id, e)
    finally:
        if owns_pinning and pinning is not None:
            pinning.close()

    return 200, success(job_run_id, _outcome_data(outcome))


# Serverless runtimes reuse the process between invocations, so one loop is
# kept for the process and shared chain nodes stay bound to it.
_loop: Optional[asyncio.AbstractEventLoop] = None
_loop_lock = threading.Lock()


def _run(coro):
    global _loop
    with _loop_lock:
        if _loop is None or _loop.is_closed():
            _loop = asyncio.new_event_loop()
        return _loop.run_until_complete(coro)


def gcp_service(request) -> Tuple[Dict[str, Any], int]:
    """Google Cloud Functions entry point (Flask request)"""
    body = request.get_json(silent=True)
    status_code, data = _run(create_request(body))
    return data, status_code


def handler(event, context) -> Dict[str, Any]:
    """AWS Lambda entry point receiving the request body as the event"""
    _, data = _run(create_request(event))
    return data


def handler_v2(event, context) -> Dict[str, Any]:
    """AWS Lambda entry point for API Gateway proxy events"""
    try:
        body = json.loads(event.get("body") or "{}")
    except (TypeError, ValueError) as e:
        status_code, data = 500, errored(DEFAULT_JOB_RUN_ID, AdapterInputError(f"Invalid JSON body: {e}"))
    else:
        status_code, data = _run(create_request(body))
    return {
        "statusCode": status_code,
        "body": json.dumps(data),
        "isBase64Encoded": False,
    }
