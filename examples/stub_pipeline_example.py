#!/usr/bin/env python3
"""
Offline example: drive the order pipeline against the scripted stub node.
"""
import asyncio
import logging

from crust_order_sdk import OrderPipeline, TxStatus, derive_credential, EXTRINSIC_FAILED
from crust_order_sdk.chain import StubChainNode
from crust_order_sdk.chain.stub_node import in_block, status


async def main() -> None:
    credential = derive_credential("//Alice")

    async with StubChainNode() as node:
        node.script("QmTest2", [status(TxStatus.READY), status(TxStatus.DROPPED)])
        node.script("QmTest3", [status(TxStatus.READY), in_block(EXTRINSIC_FAILED)])

        pipeline = OrderPipeline(node, serialize_nonces=True)
        outcomes = await asyncio.gather(
            pipeline.place("QmTest1", 1024, credential),
            pipeline.place("QmTest2", 2048, credential),
            pipeline.place("QmTest3", 4096, credential),
        )

    for outcome in outcomes:
        print(f"{outcome.content_id}: {outcome.kind.value} (nonce {outcome.nonce}, reason {outcome.reason})")


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    asyncio.run(main())
