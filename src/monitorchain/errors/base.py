"""
Root of the MonitorChain exception hierarchy.

Every SDK error has a stable ``code`` (class attribute, overridable per
instance), the message, and optionally the hash of the transaction it
concerns plus structured ``details`` for logs and API responses.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class MonitorChainError(Exception):
    """
    Base class for SDK errors.

    Example:
        >>> err = MonitorChainError("node rejected transaction", code="RPC_ERROR")
        >>> str(err)
        '[RPC_ERROR] node rejected transaction'
    """

    code: str = "MONITORCHAIN_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        tx_hash: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.tx_hash = tx_hash
        self.details: Dict[str, Any] = dict(details or {})

    def __str__(self) -> str:
        text = f"[{self.code}] {self.message}"
        if self.tx_hash:
            text += f" (tx {self.tx_hash})"
        return text

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code!r})"

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view; ``tx_hash`` and ``details`` only when set."""
        payload: Dict[str, Any] = {
            "type": type(self).__name__,
            "code": self.code,
            "message": self.message,
        }
        if self.tx_hash:
            payload["tx_hash"] = self.tx_hash
        if self.details:
            payload["details"] = self.details
        return payload
