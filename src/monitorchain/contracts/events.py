"""
Contract event forwarding.

An EventSubscription installs a node-side log filter for one event and
polls it from a background task, delivering each new log to a callback
as ``callback(None, event)``. Polling errors are delivered as
``callback(error, None)`` and polling continues.
"""

from __future__ import annotations

import asyncio
import traceback
from typing import TYPE_CHECKING, Any, Optional

from monitorchain.abi import ContractHandle
from monitorchain.constants import EVENT_POLL_SECONDS
from monitorchain.utils.callbacks import Callback, ensure_callback, settle
from monitorchain.utils.logging import get_logger

if TYPE_CHECKING:
    from monitorchain.node import NodeClient

__all__ = ["EventSubscription"]

_logger = get_logger(__name__)

_STOP_TIMEOUT_SECONDS = 10.0


class EventSubscription:
    """
    Background forwarder for one contract event.

    Example:
        >>> sub = EventSubscription(node, handle, "Transfer", on_transfer)
        >>> await sub.start()
        >>> ...
        >>> await sub.stop()
    """

    def __init__(
        self,
        node: "NodeClient",
        handle: ContractHandle,
        event_name: str,
        callback: Callback,
        poll_interval: float = EVENT_POLL_SECONDS,
    ) -> None:
        self._node = node
        self._handle = handle
        self.event_name = event_name
        self._callback = ensure_callback(callback)
        self._poll_interval = poll_interval
        self._filter: Any = None
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None
        self.delivered = 0

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> "EventSubscription":
        """Install the log filter and start polling."""
        if self.active:
            return self
        self._filter = await self._node.create_event_filter(self._handle, self.event_name)
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._poll_loop())
        _logger.debug(
            "Event subscription started",
            extra={"event": self.event_name, "contract": self._handle.address},
        )
        return self

    async def stop(self) -> None:
        """Stop polling; waits for an in-progress poll to finish."""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is not None:
            try:
                await asyncio.wait_for(self._task, timeout=_STOP_TIMEOUT_SECONDS)
            except asyncio.TimeoutError:
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
        self._task = None
        _logger.debug(
            "Event subscription stopped",
            extra={"event": self.event_name, "delivered": self.delivered},
        )

    async def poll(self) -> int:
        """
        Fetch new filter entries once and deliver them.

        Returns:
            Number of entries delivered (0 when the fetch failed)
        """
        try:
            entries = await self._filter.get_new_entries()
        except Exception as e:
            _logger.error(
                "Error polling event filter",
                extra={
                    "event": self.event_name,
                    "error": str(e),
                    "traceback": traceback.format_exc(),
                },
            )
            await self._deliver(e, None)
            return 0

        for entry in entries:
            await self._deliver(None, entry)
        self.delivered += len(entries)
        return len(entries)

    async def _deliver(self, error: Optional[Exception], event: Any) -> None:
        try:
            await settle(error, event, self._callback)
        except Exception as e:
            _logger.error(
                "Event callback raised",
                extra={"event": self.event_name, "error": str(e)},
            )

    async def _poll_loop(self) -> None:
        while self._stop_event is not None and not self._stop_event.is_set():
            await self.poll()

            # Wait for interval or stop signal
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._poll_interval)
                break
            except asyncio.TimeoutError:
                continue
