"""
Concrete error types raised by the MonitorChain SDK.

Configuration and validation errors fail fast at the call boundary.
Node and submission failures are returned as the error half of a
submission result. Ledger errors signal internal invariant violations
and always propagate.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from monitorchain.errors.base import MonitorChainError


class ConfigurationError(MonitorChainError):
    """Raised when the client is constructed with unusable settings."""

    code = "CONFIGURATION_ERROR"


class ValidationError(MonitorChainError):
    """Raised when input validation fails."""

    code = "VALIDATION_ERROR"


class CallbackError(ValidationError):
    """Raised when a non-callable value is supplied as a callback."""

    code = "INVALID_CALLBACK"

    def __init__(self, value: Any) -> None:
        super().__init__(
            f"callback must be a function, got {type(value).__name__}",
            details={"type": type(value).__name__},
        )


class RpcError(MonitorChainError):
    """Raised when an RPC/provider request fails."""

    code = "RPC_ERROR"


class TransactionError(MonitorChainError):
    """Raised when a mined transaction reports a failed status."""

    code = "TRANSACTION_FAILED"


class UnsupportedMethodError(MonitorChainError):
    """Raised when a submission names a method the contract does not declare."""

    code = "UNSUPPORTED_METHOD"

    def __init__(self, method: str, contract: Optional[str] = None) -> None:
        super().__init__(
            f"Method '{method}' is not declared by the contract ABI",
            details={"method": method, "contract": contract},
        )
        self.method = method


class LedgerError(MonitorChainError):
    """Raised when the transaction ledger is used inconsistently."""

    code = "LEDGER_ERROR"


class InvalidStatusTransitionError(LedgerError):
    """Raised when a ledger update would move an intent backwards."""

    code = "INVALID_STATUS_TRANSITION"

    def __init__(
        self,
        intent_id: int,
        current: str,
        requested: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            f"invalid status transition {current} -> {requested} for intent {intent_id}",
            details={"id": intent_id, "current": current, "requested": requested, **(details or {})},
        )
