#!/usr/bin/env python3
"""
Token Status Monitor Example

Subscribes the wallet to status feeds for a list of tokens (paying the
quoted price) and prints every status change until interrupted.

Environment:
    NODE_ADDRESS      ws(s)/http(s) URL or .ipc path
    ACCESS_ADDRESS    Access contract address
    MNEMONIC          Wallet mnemonic
    TOKENS            Comma-separated token addresses

Run with: python examples/status_monitor.py
"""

import asyncio
import os

from monitorchain import AccessInterface, configure_logging


async def main() -> None:
    configure_logging("INFO")

    access = AccessInterface(
        os.environ["NODE_ADDRESS"],
        os.environ["ACCESS_ADDRESS"],
        mnemonic=os.environ["MNEMONIC"],
    )
    tokens = [t.strip() for t in os.environ["TOKENS"].split(",") if t.strip()]

    try:
        await access.init()
        if not await access.subscriptionIsValid():
            receipt = await access.subscribe(tokens)
            print(f"Subscribed in tx {receipt['transactionHash'].hex()}")
        print(f"Subscribed tokens: {await access.get_tokens_subscribed_to()}")

        async def on_status(err, event):
            if err is not None:
                print(f"[monitor] error: {err}")
                return
            args = event["args"]
            print(f"[monitor] {args['token']} -> level {args['statusLevel']}")

        await access.on_status_changed(on_status)
        print("Watching for status changes (Ctrl+C to stop)...")
        await asyncio.Event().wait()
    finally:
        await access.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
