"""
Nonce resolution for outgoing transactions.

The resolver reconciles the node's transaction count with what the local
ledger already knows: confirmed transactions the node may not report yet,
and submitted transactions still in flight. The per-account lock taken
during resolution stays held after :meth:`NonceResolver.resolve` returns;
the caller releases it once the nonce is recorded on a submitted intent.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Set

from monitorchain.coordination.ledger import TransactionLedger
from monitorchain.coordination.mutex import LockRelease, MutexRegistry
from monitorchain.utils.logging import get_logger
from monitorchain.utils.validation import to_checksum

if TYPE_CHECKING:
    from monitorchain.node import NodeClient

__all__ = ["NonceDetails", "NonceResolution", "NonceResolver"]

_logger = get_logger(__name__)


@dataclass(frozen=True)
class NonceDetails:
    """Diagnostic breakdown of a nonce computation."""

    local_nonce_result: int
    highest_locally_confirmed: int
    highest_suggested: int
    next_network_nonce: int


@dataclass(frozen=True)
class NonceResolution:
    """
    Result of :meth:`NonceResolver.resolve`.

    Attributes:
        next_nonce: Nonce to use for the next transaction
        details: How the nonce was derived
        release_lock: Releases the per-account nonce lock; call exactly once
    """

    next_nonce: int
    details: NonceDetails
    release_lock: LockRelease


class NonceResolver:
    """Computes the next safe nonce for an account."""

    def __init__(
        self,
        node: "NodeClient",
        ledger: TransactionLedger,
        registry: MutexRegistry,
    ) -> None:
        self._node = node
        self._ledger = ledger
        self._registry = registry

    async def resolve(self, account: str) -> NonceResolution:
        """
        Lock ``account`` and compute its next nonce.

        Raises:
            Whatever the node raises; the lock is released first.
        """
        account = to_checksum(account, "account")
        release = await self._registry.acquire(account)
        try:
            block = await self._node.get_block("latest")
            next_network_nonce = int(
                await self._node.get_transaction_count(account, block["number"])
            )
        except BaseException:
            release()
            raise

        confirmed = [
            intent.nonce
            for intent in self._ledger.confirmed(account)
            if intent.nonce is not None
        ]
        highest_locally_confirmed = max(confirmed) + 1 if confirmed else 0
        highest_suggested = max(next_network_nonce, highest_locally_confirmed)

        in_flight: Set[int] = {
            intent.nonce
            for intent in self._ledger.submitted(account)
            if intent.nonce is not None
        }
        local_nonce_result = highest_suggested
        while local_nonce_result in in_flight:
            local_nonce_result += 1

        details = NonceDetails(
            local_nonce_result=local_nonce_result,
            highest_locally_confirmed=highest_locally_confirmed,
            highest_suggested=highest_suggested,
            next_network_nonce=next_network_nonce,
        )
        next_nonce = max(next_network_nonce, local_nonce_result)
        _logger.debug(
            "Nonce resolved",
            extra={
                "account": account,
                "nonce": next_nonce,
                "network_nonce": next_network_nonce,
                "confirmed_nonce": highest_locally_confirmed,
                "in_flight": len(in_flight),
            },
        )
        return NonceResolution(next_nonce=next_nonce, details=details, release_lock=release)
