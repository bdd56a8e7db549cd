"""
Transaction coordination: keyed locks, the transaction ledger, nonce
resolution and submission.
"""

from monitorchain.coordination.coordinator import TransactionCoordinator
from monitorchain.coordination.ledger import TransactionLedger
from monitorchain.coordination.mutex import LockRelease, MutexRegistry, exclusive_key
from monitorchain.coordination.nonce import NonceDetails, NonceResolution, NonceResolver
from monitorchain.coordination.submitter import TransactionSubmitter

__all__ = [
    "TransactionCoordinator",
    "TransactionLedger",
    "MutexRegistry",
    "LockRelease",
    "exclusive_key",
    "NonceResolver",
    "NonceResolution",
    "NonceDetails",
    "TransactionSubmitter",
]
