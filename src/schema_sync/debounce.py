"""Single-flight delayed execution for auto-saving an edited document.

Bursts of edits call ``trigger()``; the callback runs once after
``delay`` seconds without a new trigger.  Calls never overlap, and
``aclose()`` flushes a pending call so the last edit is not lost when the
editing session ends.

Usage:
    async def save() -> None:
        await store.save(document)

    async with Debouncer(save, delay=1.0) as debouncer:
        for edit in edits:
            apply(edit)
            debouncer.trigger()
    # pending save has run here

``Debouncer.from_settings(save, config.sync)`` takes the delay from the
``debounce_seconds`` key of the ``[sync]`` table in schema_sync.toml.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from schema_sync.config.models import SyncSettings

logger = logging.getLogger(__name__)

DebouncedCallback = Callable[[], Awaitable[Any]]


class Debouncer:
    """Collapse bursts of triggers into one awaited callback call.

    Args:
        callback: Zero-argument coroutine function to run.
        delay: Quiet period in seconds before the callback runs.

    Must be used from within a running event loop.
    """

    def __init__(self, callback: DebouncedCallback, delay: float = 1.0) -> None:
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self._callback = callback
        self._delay = delay
        self._timer: asyncio.Task | None = None
        self._lock = asyncio.Lock()
        self._closed = False

    @classmethod
    def from_settings(cls, callback: DebouncedCallback, settings: SyncSettings) -> "Debouncer":
        """Build a debouncer whose delay is ``settings.debounce_seconds``."""
        return cls(callback, delay=settings.debounce_seconds)

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """True while a call is scheduled but has not started."""
        return self._timer is not None and not self._timer.done()

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "Debouncer":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def trigger(self) -> None:
        """Schedule the callback, restarting the quiet period if pending.

        Raises:
            RuntimeError: If the debouncer has been closed.
        """
        if self._closed:
            raise RuntimeError("Debouncer is closed")
        self._cancel_timer()
        self._timer = asyncio.get_running_loop().create_task(self._run_after_delay())

    def cancel(self) -> bool:
        """Drop a pending call.  Returns True if one was pending."""
        was_pending = self.pending
        self._cancel_timer()
        return was_pending

    async def flush(self) -> bool:
        """Run a pending call now instead of waiting for the delay.

        Errors from the callback propagate to the caller.

        Returns:
            True if a pending call was run, False if nothing was pending.
        """
        if not self.cancel():
            return False
        await self._invoke()
        return True

    async def aclose(self) -> None:
        """Flush any pending call, wait for in-flight calls, then close."""
        if self._closed:
            return
        self._closed = True
        try:
            await self.flush()
        finally:
            async with self._lock:
                pass

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _run_after_delay(self) -> None:
        await asyncio.sleep(self._delay)
        # Detach first so a trigger during the call schedules a new one
        # instead of cancelling this one
        self._timer = None
        try:
            await self._invoke()
        except Exception:
            logger.exception("Debounced call failed")

    async def _invoke(self) -> None:
        async with self._lock:
            await self._callback()
