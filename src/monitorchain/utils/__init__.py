"""
MonitorChain SDK utilities.

Logging, retry, validation and the ``(error, result)`` callback helpers.
"""

from monitorchain.utils.callbacks import capture, ensure_callback, settle, split_callback
from monitorchain.utils.logging import configure_logging, disable_logging, get_logger, set_level
from monitorchain.utils.retry import RetryConfig, calculate_delay, retry_async
from monitorchain.utils.validation import (
    MAX_UINT256,
    decode_revert_reason,
    gwei_to_wei,
    to_block_number,
    to_checksum,
    validate_amount,
    wei_to_ether,
)

__all__ = [
    # Callbacks
    "capture",
    "settle",
    "ensure_callback",
    "split_callback",
    # Logging
    "get_logger",
    "configure_logging",
    "set_level",
    "disable_logging",
    # Retry
    "RetryConfig",
    "calculate_delay",
    "retry_async",
    # Validation
    "MAX_UINT256",
    "to_checksum",
    "validate_amount",
    "gwei_to_wei",
    "wei_to_ether",
    "to_block_number",
    "decode_revert_reason",
]
