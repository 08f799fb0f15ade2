"""
Chain-node connections for the Crust storage-order SDK.

Chain nodes are process-wide resources: a service initializes the nodes it
needs at startup with ``init_chain_node``, injects them into pipelines,
and tears them down with ``shutdown_chain_nodes``.
"""
import logging
import threading
from typing import Dict, Optional

from .node import ChainNode, SignedTransaction, UnsignedTransaction
from .stub_node import StubChainNode
from .subscription import NotificationSubscription

__all__ = [
    'ChainNode', 'SignedTransaction', 'UnsignedTransaction', 'NotificationSubscription',
    'StubChainNode', 'init_chain_node', 'get_chain_node', 'register_chain_node',
    'shutdown_chain_nodes'
]

logger = logging.getLogger(__name__)

# Module-level node registry with thread safety
_chain_nodes: Dict[str, ChainNode] = {}
_registry_lock = threading.RLock()


def register_chain_node(node_url: str, node: ChainNode) -> ChainNode:
    """
    Register an already constructed node under a URL.

    Returns the node that ends up registered; an existing registration wins.
    """
    with _registry_lock:
        return _chain_nodes.setdefault(node_url, node)


def get_chain_node(node_url: str) -> Optional[ChainNode]:
    """Return the registered node for a URL, if any"""
    with _registry_lock:
        return _chain_nodes.get(node_url)


async def init_chain_node(node_url: str, **kwargs) -> ChainNode:
    """
    Get or create the process-wide node for a URL and initialize it.

    Args:
        node_url: Websocket endpoint of the node
        **kwargs: Extra arguments for SubstrateChainNode

    Returns:
        Initialized chain node
    """
    with _registry_lock:
        node = _chain_nodes.get(node_url)
        if node is None:
            from .substrate_node import SubstrateChainNode
            node = SubstrateChainNode(node_url, **kwargs)
            _chain_nodes[node_url] = node
    await node.initialize()
    return node


async def shutdown_chain_nodes() -> None:
    """Close and forget every registered node."""
    with _registry_lock:
        nodes = list(_chain_nodes.items())
        _chain_nodes.clear()
    for node_url, node in nodes:
        try:
            await node.close()
        except Exception as e:
            logger.warning(f"Error closing chain node {node_url}: {e}", exc_info=True)
