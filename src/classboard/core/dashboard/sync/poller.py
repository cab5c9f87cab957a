"""
Notification polling with a single-flight guard.

The poller owns one timer task. Each tick starts the poll coroutine as its
own task unless the previous poll is still running, in which case the tick
is skipped rather than queued.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class NotificationPoller:
    """
    Run a poll coroutine on a fixed interval, one at a time.

    Example:
        >>> poller = NotificationPoller(orchestrator.refresh_notifications, interval=15.0)
        >>> poller.start()
        >>> ...
        >>> poller.stop()
    """

    def __init__(self, poll: Callable[[], Awaitable[object]], interval: float):
        """
        Initialize the poller.

        Args:
            poll: Coroutine function performing one poll
            interval: Seconds between ticks

        Raises:
            ValueError: If interval is not positive
        """
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        self.poll = poll
        self.interval = interval

        self.polls_started = 0
        self.polls_skipped = 0

        self._timer: asyncio.Task | None = None
        self._inflight: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        """Whether the timer loop is active."""
        return self._timer is not None and not self._timer.done()

    @property
    def inflight(self) -> asyncio.Task | None:
        """The poll task currently running, if any."""
        if self._inflight is not None and not self._inflight.done():
            return self._inflight
        return None

    def start(self) -> None:
        """Start the timer loop. Must be called from a running event loop."""
        if self.running:
            return
        self._timer = asyncio.create_task(self._run())
        logger.debug(f"Notification polling every {self.interval}s")

    def stop(self) -> None:
        """Stop the timer loop and cancel any in-flight poll."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.cancel_inflight()

    def cancel_inflight(self) -> None:
        """Cancel the in-flight poll, if any. The timer keeps running."""
        if self.inflight is not None:
            self._inflight.cancel()
        self._inflight = None

    def tick(self) -> bool:
        """
        Start a poll unless one is already in flight.

        Returns:
            True if a poll was started, False if it was skipped
        """
        if self.inflight is not None:
            self.polls_skipped += 1
            logger.debug("Previous notification poll still running; skipping tick")
            return False

        self.polls_started += 1
        self._inflight = asyncio.create_task(self._poll_once())
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()

    async def _poll_once(self) -> None:
        try:
            await self.poll()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Notification poll failed: {e}")
