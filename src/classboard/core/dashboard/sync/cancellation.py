"""
Cancellation token for sync cycles.

Every fetch in a cycle runs as an asyncio task attached to the cycle's
token. Cancelling the token cancels those tasks, so an in-flight httpx
request is interrupted at the network layer rather than having its
result discarded afterwards.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


class CycleCancelledError(asyncio.CancelledError):
    """Raised when work is attempted on behalf of a cancelled cycle."""


class CycleToken:
    """
    Cancellation signal shared by all work of one sync cycle.

    Example:
        >>> token = CycleToken(cycle_id=4)
        >>> task = asyncio.create_task(client.fetch_source(Source.EVENTS, token))
        >>> token.attach(task)
        >>> token.cancel()  # cancels the in-flight request
    """

    def __init__(self, cycle_id: int) -> None:
        self.cycle_id = cycle_id
        self._cancelled = False
        self._tasks: set[asyncio.Task] = set()

    @property
    def cancelled(self) -> bool:
        """Whether this cycle has been superseded or torn down."""
        return self._cancelled

    def attach(self, task: asyncio.Task) -> asyncio.Task:
        """
        Tie a task to this token so cancel() reaches it.

        A task attached after cancellation is cancelled immediately.
        """
        if self._cancelled:
            task.cancel()
            return task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def cancel(self) -> None:
        """Cancel the cycle and every task still attached to it."""
        if self._cancelled:
            return
        self._cancelled = True
        pending = [t for t in self._tasks if not t.done()]
        if pending:
            logger.debug(f"Cancelling {len(pending)} task(s) of cycle {self.cycle_id}")
        for task in pending:
            task.cancel()

    def raise_if_cancelled(self) -> None:
        """Raise CycleCancelledError if the cycle was cancelled."""
        if self._cancelled:
            raise CycleCancelledError(f"cycle {self.cycle_id} cancelled")

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"CycleToken(cycle_id={self.cycle_id}, {state})"
