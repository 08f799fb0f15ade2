#!/usr/bin/env python3
"""
Example of pinning content and placing a Crust storage order.
"""
import asyncio
import logging
import os
import sys

from crust_order_sdk import (
    AdapterSettings, CrustOrderError, IpfsPinningClient, OrderPipeline,
    TransactionObserver, derive_credential
)
from crust_order_sdk.chain import init_chain_node, shutdown_chain_nodes
from crust_order_sdk.config import NetworkConfig


async def main(cid: str) -> int:
    """
    Demonstrate the order pipeline.

    This example shows how to:
    1. Derive a signing credential from a seed
    2. Connect to a Crust node and an IPFS node
    3. Pin the content and place a storage order for it
    """
    settings = AdapterSettings.from_env()
    if not settings.ipfs_pin_host or not settings.crust_order_seeds:
        print("ERROR: DEFAULT_IPFS_PIN_HOST and DEFAULT_CRUST_ORDER_SEEDS are required")
        return 1

    ss58_format = NetworkConfig.get_ss58_format(settings.network)
    credential = derive_credential(settings.crust_order_seeds, ss58_format=ss58_format)
    print(f"Ordering storage as {credential.address}")

    pinning = IpfsPinningClient(settings.ipfs_pin_host, auth_token=settings.ipfs_auth_token)
    try:
        node = await init_chain_node(settings.resolve_node_url(), ss58_format=ss58_format)
        pipeline = OrderPipeline(
            node,
            pinning=pinning,
            observer=TransactionObserver(node, timeout=settings.observe_timeout)
        )
        outcome = await pipeline.store(cid, credential)
    except CrustOrderError as e:
        print(f"ERROR: {type(e).__name__}: {e}")
        return 1
    finally:
        pinning.close()
        await shutdown_chain_nodes()

    print(f"Outcome: {outcome.kind.value}")
    print(f"Transaction: {outcome.tx_hash} (nonce {outcome.nonce})")
    if outcome.block_hash:
        print(f"Block: {outcome.block_hash}")
    return 0 if outcome.is_success else 1


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    if len(sys.argv) != 2:
        print(f"Usage: {os.path.basename(sys.argv[0])} <cid>")
        sys.exit(2)
    sys.exit(asyncio.run(main(sys.argv[1])))
