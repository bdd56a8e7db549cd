"""
Per-connection transaction coordination context.

A TransactionCoordinator owns the mutex registry, ledger, nonce resolver
and submitter for one node connection. Contract interfaces attached to
the same node share one coordinator so their submissions draw nonces
from the same ledger.

Example:
    >>> coordinator = TransactionCoordinator(node)
    >>> err, receipt = await coordinator.submit(handle, intent)
    >>> coordinator.stats("after transfer")
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

from monitorchain.abi import ContractHandle
from monitorchain.config import CoordinatorConfig
from monitorchain.constants import GLOBAL_LOCK_KEY
from monitorchain.coordination.ledger import TransactionLedger
from monitorchain.coordination.mutex import MutexRegistry
from monitorchain.coordination.nonce import NonceResolution, NonceResolver
from monitorchain.coordination.submitter import TransactionSubmitter
from monitorchain.models import LedgerStats, TransactionIntent
from monitorchain.utils.callbacks import Outcome
from monitorchain.utils.logging import get_logger

if TYPE_CHECKING:
    from monitorchain.node import NodeClient

__all__ = ["TransactionCoordinator"]

_logger = get_logger(__name__)


class TransactionCoordinator:
    """Bundles the transaction-coordination components for one node."""

    def __init__(
        self,
        node: "NodeClient",
        config: Optional[CoordinatorConfig] = None,
    ) -> None:
        self.node = node
        self.config = config or CoordinatorConfig()
        self.registry = MutexRegistry()
        self.ledger = TransactionLedger()
        self.resolver = NonceResolver(node, self.ledger, self.registry)
        self.submitter = TransactionSubmitter(
            node, self.ledger, self.registry, self.resolver, self.config
        )

    @property
    def in_flight(self) -> int:
        return self.submitter.in_flight

    async def submit(
        self,
        handle: ContractHandle,
        intent: TransactionIntent,
        exclusive_lock: bool = False,
    ) -> Outcome[Any]:
        """Submit one contract call; see :meth:`TransactionSubmitter.submit`."""
        return await self.submitter.submit(handle, intent, exclusive_lock=exclusive_lock)

    async def resolve_nonce(self, account: str) -> NonceResolution:
        """Resolve ``account``'s next nonce. The caller must call ``release_lock``."""
        return await self.resolver.resolve(account)

    def stats(self, label: Optional[str] = None) -> LedgerStats:
        return self.ledger.stats(label)

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        """
        Hold the global submission gate.

        New state-changing submissions wait at the gate until the block
        exits; submissions already past it continue.
        """
        async with self.registry.hold(GLOBAL_LOCK_KEY):
            _logger.debug("Global submission gate closed")
            yield
        _logger.debug("Global submission gate opened")
