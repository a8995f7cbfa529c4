"""Display-refresh tick scheduler.

Callbacks are one-shot, in the manner of an animation-frame scheduler: a
callback that wants to run on every tick re-registers itself from inside the
callback.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable

from tensorcam.common.logging import get_logger


FrameCallback = Callable[[float], None]


class FrameScheduler:
    """Runs registered callbacks once per display tick."""

    def __init__(self, refresh_hz: float = 60.0) -> None:
        """Initialize the scheduler.

        Args:
            refresh_hz: Ticks per second when driven by ``run()``.
        """
        if refresh_hz <= 0:
            raise ValueError("refresh_hz must be positive")

        self.interval = 1.0 / refresh_hz
        self.logger = get_logger("scheduler")

        self._callbacks: dict[int, FrameCallback] = {}
        self._next_handle = 1
        self._tick_count = 0
        self._running = False
        self._stop_event = asyncio.Event()

    @property
    def tick_count(self) -> int:
        """Number of ticks run so far."""
        return self._tick_count

    @property
    def pending(self) -> int:
        """Number of callbacks waiting for the next tick."""
        return len(self._callbacks)

    @property
    def running(self) -> bool:
        return self._running

    def request_frame(self, callback: FrameCallback) -> int:
        """Register a callback for the next tick.

        Returns:
            Handle usable with ``cancel_frame``.
        """
        handle = self._next_handle
        self._next_handle += 1
        self._callbacks[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        """Cancel a pending callback. Unknown handles are ignored."""
        self._callbacks.pop(handle, None)

    def step(self, timestamp: float | None = None) -> int:
        """Run one tick.

        Callbacks registered while the tick runs are deferred to the next one.

        Args:
            timestamp: Tick time in milliseconds (monotonic clock if None).

        Returns:
            Number of callbacks run.
        """
        if timestamp is None:
            timestamp = time.monotonic() * 1000.0

        callbacks = self._callbacks
        self._callbacks = {}
        self._tick_count += 1

        for handle, callback in callbacks.items():
            try:
                callback(timestamp)
            except Exception as e:
                self.logger.exception("frame_callback_failed", handle=handle, error=str(e))

        return len(callbacks)

    async def run(self) -> None:
        """Tick at the refresh rate until ``stop()`` is called."""
        loop = asyncio.get_running_loop()
        self._running = True
        self._stop_event.clear()
        self.logger.debug("scheduler_started", interval_ms=round(self.interval * 1000, 2))

        try:
            while not self._stop_event.is_set():
                started = loop.time()
                self.step()

                remaining = self.interval - (loop.time() - started)
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=max(remaining, 0))
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
            self.logger.debug("scheduler_stopped", ticks=self._tick_count)

    def stop(self) -> None:
        """Stop a running ``run()`` loop after the current tick."""
        self._stop_event.set()
