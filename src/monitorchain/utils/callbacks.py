"""
Helpers for the paired ``(error, result)`` convention.

Node-facing operations produce ``(error, result)`` pairs instead of
unwinding the stack. Public callables then either hand the pair to a
caller-supplied completion callback or, when none was given, raise the
error / return the result.
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Optional, Tuple, TypeVar

from monitorchain.errors import CallbackError

T = TypeVar("T")

Callback = Callable[[Optional[BaseException], Any], Any]
Outcome = Tuple[Optional[Exception], Optional[T]]


async def capture(awaitable: Awaitable[T]) -> Outcome[T]:
    """
    Await and convert the outcome into an ``(error, result)`` pair.

    Example:
        >>> err, balance = await capture(token.methods.balanceOf(holder))
    """
    try:
        return None, await awaitable
    except Exception as e:
        return e, None


async def settle(
    error: Optional[BaseException],
    result: Any,
    callback: Optional[Callback] = None,
) -> Any:
    """
    Deliver an outcome in callback style or awaiting style.

    Args:
        error: Error half of the outcome (None on success)
        result: Result half of the outcome
        callback: Optional completion callback ``callback(error, result)``

    Returns:
        The callback's return value when a callback is given, otherwise
        ``result``.

    Raises:
        The error, when no callback is given.
    """
    if callback is not None:
        value = callback(error, result)
        if inspect.isawaitable(value):
            value = await value
        return value
    if error is not None:
        raise error
    return result


def ensure_callback(callback: Any) -> Callback:
    """Return ``callback`` unchanged or raise CallbackError if it is not callable."""
    if not callable(callback):
        raise CallbackError(callback)
    return callback


def split_callback(args: Tuple[Any, ...], callback: Optional[Callback] = None) -> Tuple[Tuple[Any, ...], Optional[Callback]]:
    """
    Separate a trailing positional callback from positional arguments.

    A keyword ``callback`` wins over a trailing callable.
    """
    if callback is None and args and callable(args[-1]):
        return args[:-1], args[-1]
    return args, callback
