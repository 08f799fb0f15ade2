"""
Pytest fixtures for the Crust storage-order SDK tests.
"""
from urllib.parse import parse_qs, urlparse

import pytest
import pytest_asyncio

from crust_order_sdk._rate_limited_log import reset_rate_limits
from crust_order_sdk.chain import StubChainNode
from crust_order_sdk.chain import _chain_nodes
from crust_order_sdk.config import NetworkConfig
from crust_order_sdk.signer import derive_credential

# Constants for testing
TEST_SEED = "//Alice"
TEST_PIN_HOST = "https://ipfs.example.com:5001"
TEST_NODE_URL = "wss://rpc.example.com"
# Valid base58 CIDv0
TEST_CID = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"


@pytest.fixture(autouse=True)
def _reset_shared_state(monkeypatch):
    """Start every test with no suppressed log lines, no registered nodes and a fresh network table."""
    reset_rate_limits()
    _chain_nodes.clear()
    NetworkConfig._networks_cache = None
    monkeypatch.delenv("CRUST_ALLOW_INSECURE", raising=False)
    yield
    _chain_nodes.clear()


@pytest.fixture
def credential():
    """Deterministic sr25519 credential for the well-known dev account"""
    return derive_credential(TEST_SEED)


@pytest.fixture
def other_credential():
    return derive_credential("//Bob")


@pytest_asyncio.fixture
async def stub_node():
    """Initialized scripted chain node"""
    node = StubChainNode()
    await node.initialize()
    yield node
    await node.close()


@pytest.fixture
def ipfs_api(requests_mock):
    """Mock IPFS HTTP API that pins and measures any CID"""
    def pin_callback(request, context):
        # request.qs lower-cases values, so read the CID from the raw URL
        cid = parse_qs(urlparse(request.url).query)["arg"][0]
        context.headers["Content-Type"] = "application/json"
        return (
            '{"Progress": 1}\n'
            '{"Progress": 4}\n'
            f'{{"Pins": ["{cid}"]}}\n'
        )

    def stat_callback(request, context):
        context.headers["Content-Type"] = "application/json"
        return {"Hash": TEST_CID, "Size": 0, "CumulativeSize": 2048, "Type": "directory"}

    requests_mock.post(f"{TEST_PIN_HOST}/api/v0/pin/add", text=pin_callback)
    requests_mock.post(f"{TEST_PIN_HOST}/api/v0/files/stat", json=stat_callback)
    requests_mock.post(f"{TEST_PIN_HOST}/api/v0/swarm/connect", json={"Strings": ["connect ok success"]})
    return requests_mock
