from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Sequence

__all__ = ["TxStatus", "TxType", "TransactionIntent", "LedgerStats"]


class TxStatus(str, Enum):
    """Lifecycle of a transaction intent."""

    PENDING = "pending"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TxStatus.CONFIRMED, TxStatus.FAILED)


class TxType(str, Enum):
    """Whether an intent mutates state (send) or only reads (call)."""

    SEND = "send"
    CALL = "call"


@dataclass
class TransactionIntent:
    """One attempted contract call.

    Attributes:
        address: Originating account (checksum-formatted)
        method: Contract method name
        method_args: Positional method arguments
        options: Send parameters (from, gas, gasPrice, value, nonce)
        tx_type: SEND or CALL; None lets the submitter classify from the ABI
        id: Unique id, assigned by the ledger when absent
        nonce: Assigned sequence number (SEND only)
        status: Lifecycle status
        time: Creation timestamp
        gas_used: Gas used by this transaction
        total_gas_used: Ledger-wide gas total right after this transaction
        tx_hash: Transaction hash from the receipt
        error: Error message when the intent failed
    """
    address: str
    method: str
    method_args: Sequence[Any] = field(default_factory=tuple)
    options: Dict[str, Any] = field(default_factory=dict)
    tx_type: Optional[TxType] = None
    id: Optional[int] = None
    nonce: Optional[int] = None
    status: TxStatus = TxStatus.PENDING
    time: Optional[datetime] = None
    gas_used: Optional[int] = None
    total_gas_used: Optional[int] = None
    tx_hash: Optional[str] = None
    error: Optional[str] = None

    def evolve(self, **changes: Any) -> "TransactionIntent":
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "address": self.address,
            "method": self.method,
            "method_args": list(self.method_args),
            "options": dict(self.options),
            "tx_type": self.tx_type.value if self.tx_type else None,
            "nonce": self.nonce,
            "status": self.status.value,
            "time": self.time.isoformat() if self.time else None,
            "gas_used": self.gas_used,
            "total_gas_used": self.total_gas_used,
            "tx_hash": self.tx_hash,
            "error": self.error,
        }


@dataclass(frozen=True)
class LedgerStats:
    """Snapshot of ledger counts and totals."""
    submitted: int
    pending: int
    failed: int
    confirmed: int
    total_gas_used: int
    total_wei_spent: int
    total_eth_spent: float

    @property
    def total(self) -> int:
        return self.submitted + self.pending + self.failed + self.confirmed
