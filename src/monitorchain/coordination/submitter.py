"""
Transaction submission.

The submitter runs one outgoing contract call through its lifecycle.
Read-only calls go straight to the node. State-changing calls are
recorded in the ledger, claim a nonce under the account lock once the
in-flight limit allows, are dispatched and end CONFIRMED or FAILED.

Every submission returns an ``(error, result)`` pair; node and
transaction failures never unwind past the submitter. Ledger errors are
internal bugs and do.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Mapping, Optional

from web3 import Web3

from monitorchain.abi import ContractHandle
from monitorchain.config import CoordinatorConfig
from monitorchain.constants import GLOBAL_LOCK_KEY
from monitorchain.coordination.ledger import TransactionLedger
from monitorchain.coordination.mutex import LockRelease, MutexRegistry, exclusive_key
from monitorchain.coordination.nonce import NonceResolver
from monitorchain.errors import LedgerError, UnsupportedMethodError
from monitorchain.models import TransactionIntent, TxStatus, TxType
from monitorchain.utils.callbacks import Outcome, capture
from monitorchain.utils.logging import get_logger
from monitorchain.utils.validation import to_checksum

if TYPE_CHECKING:
    from monitorchain.node import NodeClient

__all__ = ["TransactionSubmitter"]

_logger = get_logger(__name__)


def _hash_hex(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    return str(value)


class TransactionSubmitter:
    """Orchestrates the lifecycle of contract calls for one coordinator."""

    def __init__(
        self,
        node: "NodeClient",
        ledger: TransactionLedger,
        registry: MutexRegistry,
        resolver: NonceResolver,
        config: Optional[CoordinatorConfig] = None,
    ) -> None:
        self._node = node
        self._ledger = ledger
        self._registry = registry
        self._resolver = resolver
        self._config = config or CoordinatorConfig()

    @property
    def in_flight(self) -> int:
        """Number of submitted, not yet confirmed or failed, transactions."""
        return len(self._ledger.submitted())

    @staticmethod
    def classify(handle: ContractHandle, intent: TransactionIntent) -> TxType:
        """Explicit ``tx_type`` wins; otherwise the ABI mutability decides.

        Unknown methods classify as SEND so the failure is recorded.
        """
        if intent.tx_type is not None:
            return TxType(intent.tx_type)
        return handle.classify(intent.method) or TxType.SEND

    async def submit(
        self,
        handle: ContractHandle,
        intent: TransactionIntent,
        exclusive_lock: bool = False,
    ) -> Outcome[Any]:
        """
        Submit one contract call.

        Args:
            handle: Contract to call
            intent: What to call and with which send options
            exclusive_lock: Also hold the account's exclusive lock for the
                whole submission

        Returns:
            ``(error, result)``: the call result or transaction receipt

        Raises:
            LedgerError: On internal ledger inconsistencies
        """
        if self.classify(handle, intent) is TxType.CALL:
            return await capture(
                self._node.call(handle, intent.method, intent.method_args, intent.options)
            )

        address = to_checksum(intent.address or intent.options.get("from", ""), "from")
        intent = intent.evolve(
            tx_type=TxType.SEND,
            address=address,
            options={**intent.options, "from": address},
        )

        await self._registry.barrier(GLOBAL_LOCK_KEY)
        exclusive: Optional[LockRelease] = None
        if exclusive_lock:
            exclusive = await self._registry.acquire(exclusive_key(address))
        try:
            return await self._send(handle, intent)
        finally:
            if exclusive is not None and not exclusive.released:
                exclusive()

    async def _send(self, handle: ContractHandle, intent: TransactionIntent) -> Outcome[Any]:
        intent_id = self._ledger.append(intent)
        entry = self._ledger.get(intent_id)
        nonce_release: Optional[LockRelease] = None
        gas_price: Optional[int] = None
        receipt: Any = None
        error: Optional[Exception] = None

        try:
            if handle.member(entry.method) is None:
                raise UnsupportedMethodError(entry.method, handle.address)

            while True:
                await self._wait_for_capacity()
                resolution = await self._resolver.resolve(entry.address)
                nonce_release = resolution.release_lock
                # No await between this check and the SUBMITTED update.
                if self.in_flight < self._config.max_in_flight:
                    break
                nonce_release()
                nonce_release = None

            entry = entry.evolve(
                status=TxStatus.SUBMITTED,
                nonce=resolution.next_nonce,
                options={**entry.options, "nonce": resolution.next_nonce},
            )
            self._ledger.update(entry)
            nonce_release()

            gas_price = await self._effective_gas_price(entry.options.get("gasPrice"))
            receipt = await self._node.send(
                handle,
                entry.method,
                entry.method_args,
                {**entry.options, "gasPrice": gas_price},
            )
        except LedgerError:
            raise
        except Exception as e:
            error = e
        except BaseException as e:
            # Cancelled: the entry must not stay counted as in flight.
            reason = type(e).__name__
            self._ledger.update(entry.evolve(status=TxStatus.FAILED, error=reason))
            _logger.warning(
                "Transaction abandoned",
                extra={"id": intent_id, "method": entry.method, "nonce": entry.nonce, "error": reason},
            )
            raise
        finally:
            if nonce_release is not None and not nonce_release.released:
                nonce_release()

        if error is not None:
            self._ledger.update(entry.evolve(status=TxStatus.FAILED, error=str(error)))
            log = _logger.error if isinstance(error, UnsupportedMethodError) else _logger.warning
            log(
                "Transaction failed",
                extra={
                    "id": intent_id,
                    "method": entry.method,
                    "account": entry.address,
                    "nonce": entry.nonce,
                    "error": str(error),
                },
            )
            return error, None

        gas_used = int(_get(receipt, "gasUsed", 0))
        price_paid = int(_get(receipt, "effectiveGasPrice", None) or gas_price or 0)
        self._ledger.record_cost(gas_used, price_paid)
        tx_hash = _hash_hex(_get(receipt, "transactionHash", None))
        self._ledger.update(
            entry.evolve(
                status=TxStatus.CONFIRMED,
                gas_used=gas_used,
                total_gas_used=self._ledger.total_gas_used,
                tx_hash=tx_hash,
            )
        )
        _logger.info(
            "Transaction confirmed",
            extra={
                "id": intent_id,
                "method": entry.method,
                "account": entry.address,
                "nonce": entry.nonce,
                "gas_used": gas_used,
                "tx_hash": tx_hash,
            },
        )
        return None, receipt

    async def _wait_for_capacity(self) -> None:
        # No upper bound on the wait: the submission proceeds once the node
        # confirms enough in-flight transactions.
        limit = self._config.max_in_flight
        if self.in_flight < limit:
            return
        _logger.warning(
            "Too many transactions in flight, waiting",
            extra={"in_flight": self.in_flight, "limit": limit},
        )
        while self.in_flight >= limit:
            await asyncio.sleep(self._config.backpressure_poll_interval)
        _logger.debug("In-flight capacity available", extra={"in_flight": self.in_flight})

    async def _effective_gas_price(self, requested: Any) -> int:
        suggested = int(await self._node.get_gas_price())
        if requested is None:
            return int(Decimal(suggested) * Decimal(str(self._config.gas_price_multiplier)))

        price = int(requested)
        if price < suggested:
            _logger.warning(
                "Gas price below the node's current price; confirmation may be slow",
                extra={"gas_price": price, "node_gas_price": suggested},
            )
        return price


def _get(receipt: Any, key: str, default: Any) -> Any:
    if isinstance(receipt, Mapping):
        return receipt.get(key, default)
    return getattr(receipt, key, default)
