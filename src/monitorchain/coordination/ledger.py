"""
In-memory ledger of transaction intents.

The ledger keeps every state-changing call attempted through a
coordinator, in creation order, together with running gas and cost
totals. Counts reported by :meth:`TransactionLedger.stats` are derived
from the entries on every call, never maintained separately.

The ledger lives as long as its coordinator; it is neither persisted
nor pruned.
"""

from __future__ import annotations

import itertools
import random
from datetime import datetime, timezone
from typing import (
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Sequence,
    Union,
)

from monitorchain.constants import INTENT_ID_MODULUS
from monitorchain.errors import InvalidStatusTransitionError, LedgerError
from monitorchain.models import LedgerStats, TransactionIntent, TxStatus
from monitorchain.utils.logging import get_logger
from monitorchain.utils.validation import wei_to_ether

__all__ = ["TransactionLedger", "StatusFilter", "ALLOWED_TRANSITIONS"]

_logger = get_logger(__name__)

# Process-wide id source: random start, wraps at 2**53.
_id_counter = itertools.count(random.randrange(INTENT_ID_MODULUS))


def _next_intent_id() -> int:
    return next(_id_counter) % INTENT_ID_MODULUS


ALLOWED_TRANSITIONS = {
    TxStatus.PENDING: {TxStatus.PENDING, TxStatus.SUBMITTED, TxStatus.FAILED},
    TxStatus.SUBMITTED: {TxStatus.SUBMITTED, TxStatus.CONFIRMED, TxStatus.FAILED},
    TxStatus.CONFIRMED: {TxStatus.CONFIRMED},
    TxStatus.FAILED: {TxStatus.FAILED},
}


Predicate = Callable[[TransactionIntent], bool]
StatusFilter = Union[TxStatus, str, Predicate, Sequence[Union[TxStatus, str, Predicate]]]


def _as_predicate(criterion: Union[TxStatus, str, Predicate]) -> Predicate:
    if callable(criterion):
        return criterion
    try:
        status = TxStatus(criterion)
    except ValueError:
        raise LedgerError(f"unknown transaction status: {criterion!r}") from None
    return lambda intent: intent.status == status


class TransactionLedger:
    """
    Ordered record of transaction intents plus gas/cost accumulators.

    Example:
        >>> ledger = TransactionLedger()
        >>> tx_id = ledger.append(TransactionIntent(address=wallet, method="transfer"))
        >>> ledger.stats().pending
        1
    """

    def __init__(self) -> None:
        self._entries: List[TransactionIntent] = []
        self._positions: Dict[int, int] = {}
        self.total_gas_used: int = 0
        self.total_wei_spent: int = 0
        self.total_eth_spent: float = 0.0

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TransactionIntent]:
        return iter(list(self._entries))

    def __contains__(self, intent_id: object) -> bool:
        return intent_id in self._positions

    def append(self, intent: TransactionIntent) -> int:
        """
        Record a new intent.

        Assigns an id when missing, stamps the creation time and resets the
        status to PENDING.

        Returns:
            The intent id

        Raises:
            LedgerError: If the intent carries an id already in the ledger
        """
        intent_id = intent.id
        if intent_id is None:
            intent_id = _next_intent_id()
            while intent_id in self._positions:
                intent_id = _next_intent_id()
        elif intent_id in self._positions:
            raise LedgerError(f"duplicate intent id {intent_id}")

        entry = intent.evolve(
            id=intent_id,
            time=intent.time or datetime.now(timezone.utc),
            status=TxStatus.PENDING,
        )
        self._positions[intent_id] = len(self._entries)
        self._entries.append(entry)
        return intent_id

    def get(self, intent_id: int) -> TransactionIntent:
        """Return the entry with ``intent_id``."""
        try:
            return self._entries[self._positions[intent_id]]
        except KeyError:
            raise LedgerError(f"unknown intent id {intent_id}") from None

    def update(self, intent: TransactionIntent) -> None:
        """
        Replace the entry whose id matches ``intent.id``.

        Raises:
            LedgerError: If the id is not in the ledger
            InvalidStatusTransitionError: If the status would move backwards
        """
        if intent.id is None or intent.id not in self._positions:
            raise LedgerError(
                f"cannot update unknown intent id {intent.id}",
                details={"method": intent.method, "address": intent.address},
            )
        position = self._positions[intent.id]
        current = self._entries[position]
        if intent.status not in ALLOWED_TRANSITIONS[current.status]:
            raise InvalidStatusTransitionError(
                intent.id, current.status.value, intent.status.value
            )
        self._entries[position] = intent

    def filter(
        self,
        status_or_predicates: StatusFilter,
        address: Optional[str] = None,
    ) -> List[TransactionIntent]:
        """
        Return entries matching a status and optional address, in ledger order.

        Args:
            status_or_predicates: A status (enum or name), a predicate, or a
                sequence of these that must all match
            address: Only entries from this account (case-insensitive)
        """
        if isinstance(status_or_predicates, (TxStatus, str)) or callable(status_or_predicates):
            criteria = [status_or_predicates]
        else:
            criteria = list(status_or_predicates)
        predicates = [_as_predicate(c) for c in criteria]

        wanted = address.lower() if address else None
        return [
            intent
            for intent in self._entries
            if (wanted is None or intent.address.lower() == wanted)
            and all(p(intent) for p in predicates)
        ]

    def pending(self, address: Optional[str] = None) -> List[TransactionIntent]:
        return self.filter(TxStatus.PENDING, address)

    def submitted(self, address: Optional[str] = None) -> List[TransactionIntent]:
        return self.filter(TxStatus.SUBMITTED, address)

    def confirmed(self, address: Optional[str] = None) -> List[TransactionIntent]:
        return self.filter(TxStatus.CONFIRMED, address)

    def failed(self, address: Optional[str] = None) -> List[TransactionIntent]:
        return self.filter(TxStatus.FAILED, address)

    def stats(self, label: Optional[str] = None) -> LedgerStats:
        """
        Snapshot of per-status counts and running totals.

        Args:
            label: When given, the snapshot is also logged under this label
        """
        snapshot = LedgerStats(
            submitted=len(self.submitted()),
            pending=len(self.pending()),
            failed=len(self.failed()),
            confirmed=len(self.confirmed()),
            total_gas_used=self.total_gas_used,
            total_wei_spent=self.total_wei_spent,
            total_eth_spent=self.total_eth_spent,
        )
        if label is not None:
            _logger.info(
                "Ledger stats",
                extra={
                    "label": label,
                    "submitted": snapshot.submitted,
                    "pending": snapshot.pending,
                    "failed": snapshot.failed,
                    "confirmed": snapshot.confirmed,
                    "total_gas_used": snapshot.total_gas_used,
                    "total_eth_spent": snapshot.total_eth_spent,
                },
            )
        return snapshot

    def record_cost(self, gas_used: int, gas_price: int) -> int:
        """
        Add one transaction's cost to the running totals.

        Args:
            gas_used: Gas consumed
            gas_price: Price paid per unit of gas, in wei

        Returns:
            Cost in wei (exact integer product)
        """
        gas_used = int(gas_used)
        cost = gas_used * int(gas_price)
        self.total_gas_used += gas_used
        self.total_wei_spent += cost
        self.total_eth_spent += wei_to_ether(cost)
        return cost
