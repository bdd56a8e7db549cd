"""MonitorChain SDK exceptions."""

from monitorchain.errors.base import MonitorChainError
from monitorchain.errors.transaction import (
    CallbackError,
    ConfigurationError,
    InvalidStatusTransitionError,
    LedgerError,
    RpcError,
    TransactionError,
    UnsupportedMethodError,
    ValidationError,
)

__all__ = [
    "MonitorChainError",
    "ConfigurationError",
    "ValidationError",
    "CallbackError",
    "RpcError",
    "TransactionError",
    "UnsupportedMethodError",
    "LedgerError",
    "InvalidStatusTransitionError",
]
