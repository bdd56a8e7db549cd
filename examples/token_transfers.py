#!/usr/bin/env python3
"""
Concurrent Token Transfers Example

Sends several ERC-20 transfers at once from one wallet. The coordinator
assigns each transfer its own nonce, so none of them replaces another.

Environment:
    NODE_ADDRESS      ws(s)/http(s) URL or .ipc path
    TOKEN_ADDRESS     ERC-20 contract address
    MNEMONIC          Wallet mnemonic (accounts on m/44'/60'/0'/0/i)
    RECIPIENT         Address receiving the transfers

Run with: python examples/token_transfers.py
"""

import asyncio
import os

from monitorchain import CoordinatorConfig, ERC20Interface, configure_logging


async def main() -> None:
    configure_logging("INFO")

    token = ERC20Interface(
        os.environ["NODE_ADDRESS"],
        os.environ["TOKEN_ADDRESS"],
        mnemonic=os.environ["MNEMONIC"],
        config=CoordinatorConfig.from_env(),
    )
    recipient = os.environ["RECIPIENT"]

    try:
        await token.init()
        info = await token.token_info()
        print(f"Token: {info.name} ({info.symbol}), decimals={info.decimals}")

        def report(err, receipt):
            if err is not None:
                print(f"  transfer failed: {err}")
            else:
                print(f"  confirmed in block {receipt['blockNumber']}")

        await asyncio.gather(
            *(token.transfer(recipient, n * 10 ** info.decimals, report) for n in range(1, 6))
        )

        stats = token.stats("transfers done")
        print(f"Confirmed: {stats.confirmed}, failed: {stats.failed}, ETH spent: {stats.total_eth_spent:.6f}")
    finally:
        await token.close()


if __name__ == "__main__":
    asyncio.run(main())
