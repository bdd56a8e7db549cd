"""
MonitorChain Python SDK.

Async clients for the MonitorChain ERC-20 and access contracts, built on
a transaction coordinator that serializes nonce assignment per account,
keeps a ledger of every submission and throttles submissions when too
many are in flight.

Quick Start:
    >>> from monitorchain import AccessInterface
    >>> import asyncio
    >>>
    >>> async def main():
    ...     access = AccessInterface(
    ...         "wss://node.example.org",
    ...         "0x1234567890123456789012345678901234567890",
    ...         mnemonic="test test test ...",
    ...     )
    ...     await access.init()
    ...     print(await access.remainingSubscriptionDays())
    ...     await access.close()
    ...
    >>> asyncio.run(main())

Modules:
- `contracts`: ContractInterface, ERC20Interface, AccessInterface
- `coordination`: TransactionCoordinator, ledger, nonce resolution, locks
- `node`: NodeClient, the async web3 adapter
- `errors`: Exception hierarchy
- `utils`: Logging, retry, validation and callback helpers
"""

from monitorchain.version import __version__, __version_info__

from monitorchain.config import CoordinatorConfig
from monitorchain.contracts import (
    AccessInterface,
    ContractInterface,
    ERC20Interface,
    EventSubscription,
    TokenInfo,
)
from monitorchain.coordination import TransactionCoordinator, TransactionLedger
from monitorchain.errors import (
    CallbackError,
    ConfigurationError,
    InvalidStatusTransitionError,
    LedgerError,
    MonitorChainError,
    RpcError,
    TransactionError,
    UnsupportedMethodError,
    ValidationError,
)
from monitorchain.models import LedgerStats, TransactionIntent, TxStatus, TxType
from monitorchain.node import NodeClient, connect, create_node
from monitorchain.utils.logging import configure_logging, get_logger

__all__ = [
    "__version__",
    "__version_info__",
    # Config
    "CoordinatorConfig",
    # Contracts
    "ContractInterface",
    "ERC20Interface",
    "AccessInterface",
    "EventSubscription",
    "TokenInfo",
    # Coordination
    "TransactionCoordinator",
    "TransactionLedger",
    "TransactionIntent",
    "TxStatus",
    "TxType",
    "LedgerStats",
    # Node
    "NodeClient",
    "connect",
    "create_node",
    # Errors
    "MonitorChainError",
    "ConfigurationError",
    "ValidationError",
    "CallbackError",
    "RpcError",
    "TransactionError",
    "UnsupportedMethodError",
    "LedgerError",
    "InvalidStatusTransitionError",
    # Logging
    "get_logger",
    "configure_logging",
]
