"""
Validation and conversion helpers for the MonitorChain SDK.

Provides:
- Checksum address normalization
- Wei amount validation
- Gas price conversion (gwei decimal -> wei integer)
- Block number normalization
- Solidity revert reason decoding

All validation functions raise ValidationError on failure.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from eth_utils import to_checksum_address
from web3 import Web3

from monitorchain.constants import ABI_SELECTOR_LENGTH, ABI_WORD_LENGTH, REVERT_SELECTOR
from monitorchain.errors import ValidationError

MAX_UINT256 = 2**256 - 1


def to_checksum(address: str, field_name: str = "address") -> str:
    """
    Normalize an address to its checksum (mixed-case) form.

    Args:
        address: 0x-prefixed hex address in any case
        field_name: Field name for error messages

    Returns:
        Checksum-formatted address

    Raises:
        ValidationError: If the value is not an address
    """
    if not isinstance(address, str) or not Web3.is_address(address):
        raise ValidationError(
            f"{field_name} must be a valid Ethereum address",
            details={"field": field_name, "value": str(address)},
        )
    return to_checksum_address(address)


def validate_amount(amount: Union[int, str], field_name: str = "amount") -> int:
    """
    Validate a wei amount.

    Args:
        amount: Amount in wei (integer or decimal string)
        field_name: Field name for error messages

    Returns:
        Amount as an arbitrary-precision integer
    """
    try:
        value = int(amount)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer amount of wei") from None
    if value < 0:
        raise ValidationError(f"{field_name} must be non-negative")
    if value > MAX_UINT256:
        raise ValidationError(f"{field_name} exceeds uint256")
    return value


def gwei_to_wei(price: Union[int, float, str, Decimal]) -> int:
    """
    Convert a gas price expressed in gwei (decimal allowed) to wei.

    Args:
        price: Gas price in gwei, e.g. ``3`` or ``"1.5"``

    Returns:
        Gas price in wei
    """
    try:
        value = Decimal(str(price))
    except InvalidOperation:
        raise ValidationError("gas price must be a decimal number of gwei") from None
    if value < 0:
        raise ValidationError("gas price must be non-negative")
    return int(Web3.to_wei(value, "gwei"))


def wei_to_ether(amount: int) -> float:
    """Convert wei to ether as a float (accepted imprecision for accounting)."""
    return float(Web3.from_wei(amount, "ether"))


def to_block_number(block: Union[int, str]) -> int:
    """
    Normalize a block number given as int, decimal string or hex string.

    Raises:
        ValidationError: If the value is not a non-negative block number
    """
    try:
        if isinstance(block, str):
            number = int(block, 16) if block.startswith("0x") else int(block)
        else:
            number = int(block)
    except (TypeError, ValueError):
        raise ValidationError(f"invalid block number: {block!r}") from None
    if number < 0:
        raise ValidationError("block number must be non-negative")
    return number


def decode_revert_reason(raw: str) -> Optional[str]:
    """Decode Solidity revert reason from error data.

    Args:
        raw: Hex-encoded error data string

    Returns:
        Decoded revert reason string, or None if decoding fails
    """
    # Error(string): selector + offset word + length word + data
    if raw.startswith(REVERT_SELECTOR) and len(raw) >= 10:
        try:
            data = bytes.fromhex(raw[2:])
            if len(data) >= ABI_SELECTOR_LENGTH + ABI_WORD_LENGTH + ABI_WORD_LENGTH:
                offset = ABI_SELECTOR_LENGTH + ABI_WORD_LENGTH
                strlen = int.from_bytes(data[offset : offset + ABI_WORD_LENGTH], "big")
                reason_start = offset + ABI_WORD_LENGTH
                reason_bytes = data[reason_start : reason_start + strlen]
                return reason_bytes.decode(errors="ignore")
        except (ValueError, UnicodeDecodeError):
            return None
    return None
