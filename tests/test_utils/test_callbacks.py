"""
Tests for the (error, result) callback helpers.
"""

from typing import Any, List

import pytest

from monitorchain.errors import CallbackError
from monitorchain.utils.callbacks import capture, ensure_callback, settle, split_callback


async def _value(v: Any) -> Any:
    return v


async def _fail() -> None:
    raise ValueError("bad")


class TestCapture:

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        assert await capture(_value(3)) == (None, 3)

    @pytest.mark.asyncio
    async def test_failure(self) -> None:
        err, result = await capture(_fail())
        assert isinstance(err, ValueError)
        assert result is None


class TestSettle:

    @pytest.mark.asyncio
    async def test_returns_result_without_callback(self) -> None:
        assert await settle(None, 5) == 5

    @pytest.mark.asyncio
    async def test_raises_error_without_callback(self) -> None:
        with pytest.raises(ValueError):
            await settle(ValueError("x"), None)

    @pytest.mark.asyncio
    async def test_callback_receives_pair(self) -> None:
        seen: List[Any] = []
        error = ValueError("x")

        returned = await settle(error, None, lambda e, r: seen.append((e, r)) or "handled")

        assert seen == [(error, None)]
        assert returned == "handled"

    @pytest.mark.asyncio
    async def test_async_callback(self) -> None:
        async def callback(err, result):
            return result * 2

        assert await settle(None, 4, callback) == 8


class TestHelpers:

    def test_ensure_callback(self) -> None:
        fn = lambda e, r: None  # noqa: E731
        assert ensure_callback(fn) is fn
        with pytest.raises(CallbackError):
            ensure_callback(42)

    def test_split_trailing_callable(self) -> None:
        fn = lambda e, r: None  # noqa: E731
        assert split_callback((1, 2, fn)) == ((1, 2), fn)

    def test_keyword_callback_wins(self) -> None:
        fn = lambda e, r: None  # noqa: E731
        other = lambda e, r: None  # noqa: E731
        assert split_callback((1, other), fn) == ((1, other), fn)

    def test_no_callback(self) -> None:
        assert split_callback((1, "a")) == ((1, "a"), None)
