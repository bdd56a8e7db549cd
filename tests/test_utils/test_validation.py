"""
Tests for validation and conversion helpers.
"""

import pytest

from monitorchain.errors import ValidationError
from monitorchain.utils.validation import (
    MAX_UINT256,
    decode_revert_reason,
    gwei_to_wei,
    to_block_number,
    to_checksum,
    validate_amount,
    wei_to_ether,
)

# Error(string) encoding of "Insufficient balance"
REVERT_DATA = (
    "0x08c379a0"
    "0000000000000000000000000000000000000000000000000000000000000020"
    "0000000000000000000000000000000000000000000000000000000000000014"
    "496e73756666696369656e742062616c616e6365000000000000000000000000"
)


class TestAddresses:

    def test_checksum_lowercase(self) -> None:
        address = "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"
        assert to_checksum(address) == "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"

    @pytest.mark.parametrize("value", ["", "0x123", "not an address", None, 12])
    def test_invalid(self, value) -> None:
        with pytest.raises(ValidationError):
            to_checksum(value, "to")


class TestAmounts:

    def test_accepts_int_and_string(self) -> None:
        assert validate_amount(10) == 10
        assert validate_amount("1000000000000000000") == 10**18

    @pytest.mark.parametrize("value", [-1, "abc", MAX_UINT256 + 1, None])
    def test_rejects(self, value) -> None:
        with pytest.raises(ValidationError):
            validate_amount(value)


class TestGasPrice:

    @pytest.mark.parametrize(
        "gwei, wei",
        [(1, 10**9), ("1.5", 1_500_000_000), ("0.000000001", 1), ("20", 20 * 10**9)],
    )
    def test_gwei_to_wei(self, gwei, wei) -> None:
        assert gwei_to_wei(gwei) == wei

    def test_rejects_garbage(self) -> None:
        with pytest.raises(ValidationError):
            gwei_to_wei("fast")

    def test_wei_to_ether(self) -> None:
        assert wei_to_ether(10**18) == 1.0


class TestBlockNumbers:

    @pytest.mark.parametrize("block, number", [(5, 5), ("12", 12), ("0x10", 16)])
    def test_normalizes(self, block, number) -> None:
        assert to_block_number(block) == number

    @pytest.mark.parametrize("block", ["latest", -1, "0xzz"])
    def test_rejects(self, block) -> None:
        with pytest.raises(ValidationError):
            to_block_number(block)


class TestRevertReason:

    def test_decodes_error_string(self) -> None:
        assert decode_revert_reason(REVERT_DATA) == "Insufficient balance"

    def test_other_data(self) -> None:
        assert decode_revert_reason("0xdeadbeef") is None
