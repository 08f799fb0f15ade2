"""
Tests for the process-wide chain node registry.
"""
from unittest.mock import AsyncMock, patch

import pytest

from crust_order_sdk.chain import (
    StubChainNode, get_chain_node, init_chain_node, register_chain_node, shutdown_chain_nodes
)

TEST_NODE_URL = "wss://rpc.example.com"


class TestChainRegistry:

    def test_register_keeps_existing(self):
        first = StubChainNode()
        second = StubChainNode()

        assert register_chain_node(TEST_NODE_URL, first) is first
        assert register_chain_node(TEST_NODE_URL, second) is first
        assert get_chain_node(TEST_NODE_URL) is first

    def test_get_unknown(self):
        assert get_chain_node("wss://unknown.example.com") is None

    @pytest.mark.asyncio
    async def test_init_reuses_registered_node(self):
        node = register_chain_node(TEST_NODE_URL, StubChainNode())

        assert await init_chain_node(TEST_NODE_URL) is node
        assert node.initialized is True

    @pytest.mark.asyncio
    async def test_init_creates_substrate_node(self):
        with patch(
            "crust_order_sdk.chain.substrate_node.SubstrateChainNode.initialize",
            new_callable=AsyncMock
        ) as initialize:
            node = await init_chain_node(TEST_NODE_URL, ss58_format=42)
            again = await init_chain_node(TEST_NODE_URL)

        assert node is again
        assert node.ss58_format == 42
        assert initialize.await_count == 2

    @pytest.mark.asyncio
    async def test_shutdown(self):
        healthy = register_chain_node("wss://a.example.com", StubChainNode())
        broken = register_chain_node("wss://b.example.com", StubChainNode())
        await healthy.initialize()
        broken.close = AsyncMock(side_effect=RuntimeError("already closed"))

        await shutdown_chain_nodes()

        assert healthy.initialized is False
        broken.close.assert_awaited_once()
        assert get_chain_node("wss://a.example.com") is None
