"""
Sync orchestrator for the classboard dashboard.

Coordinates fetching of all backend collections (events, staff, students,
notifications, results) into a single AggregateSnapshot for the terminal
dashboard.

Architecture:
- SyncOrchestrator owns the DashboardState and is the only writer of it
- DashboardClient fetches raw envelopes; shapes.normalize extracts lists
- Parsers (people, notifications, events, results) build frozen models
- SnapshotCache persists the last good snapshot for warm starts
- NotificationPoller re-fetches notifications between full cycles

Sync Flow:
1. hydrate(): publish the cached snapshot, if any (stale-while-revalidate)
2. begin_cycle(): cancel the previous cycle, then fetch every source
   concurrently (all requests issued before any is awaited)
3. Aggregate once every source has resolved or degraded
4. Publish, write through to the cache, check the reload-once policy

Partial Failure Handling:
- Each source degrades independently to an empty contribution
- Some sources degraded: phase partially_failed, snapshot still applied
- All sources degraded: phase failed, previous snapshot kept, no cache write
- Superseded cycles are aborted: no state written, no error surfaced

Usage:
    from classboard.core.dashboard.sync import SyncOrchestrator

    orchestrator = SyncOrchestrator(client, cache=SnapshotCache(store))
    orchestrator.subscribe(renderer.update)
    result = await orchestrator.start()
    orchestrator.start_polling()
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from classboard.core.config.models import SyncConfig
from classboard.core.dashboard.cache import SnapshotCache
from classboard.core.dashboard.exceptions import SourceError
from classboard.core.dashboard.models import (
    AggregateSnapshot,
    DashboardState,
    NotificationView,
    Source,
    SyncPhase,
    SyncResult,
)
from classboard.core.dashboard.sync.cancellation import CycleToken
from classboard.core.dashboard.sync.parsers import (
    PeopleSummary,
    classify,
    format_notifications,
    format_notifications_basic,
    parse_events,
    parse_results,
)
from classboard.core.dashboard.sync.poller import NotificationPoller
from classboard.core.dashboard.sync.shapes import normalize

if TYPE_CHECKING:
    from classboard.core.dashboard.client import DashboardClient
    from classboard.utils.logging import SyncLogger

logger = logging.getLogger(__name__)

Listener = Callable[[DashboardState], None]

# Domain keys tried first when extracting each source's list
SOURCE_KEYS: dict[Source, tuple[str, ...]] = {
    Source.EVENTS: ("events",),
    Source.STAFF: ("teachers", "staff"),
    Source.STUDENTS: ("students",),
    Source.NOTIFICATIONS: ("notifications",),
    Source.RESULTS: ("results",),
}


class SyncOrchestrator:
    """
    Orchestrates syncing of all backend collections into dashboard state.

    The orchestrator coordinates:
    1. Warm starts from the session snapshot cache
    2. Concurrent, cancellable fetches of every source
    3. Aggregation into an immutable snapshot
    4. Notification polling, mark-read and the one-time reload

    Example:
        >>> orchestrator = SyncOrchestrator(client, cache=cache, on_reload=remount)
        >>> result = await orchestrator.run_cycle()
        >>> print(f"Phase: {result.phase}, degraded: {result.degraded_sources}")
    """

    def __init__(
        self,
        client: DashboardClient,
        cache: SnapshotCache | None = None,
        config: SyncConfig | None = None,
        on_reload: Callable[[], None] | None = None,
        event_log: SyncLogger | None = None,
    ) -> None:
        """
        Initialize the SyncOrchestrator.

        Args:
            client: Client used for every backend call
            cache: Session snapshot cache (None disables caching and reload-once)
            config: Sync settings (chunk size, poll interval, reload delay)
            on_reload: Called once per session when notifications first appear
            event_log: Optional structured JSONL event log
        """
        self.client = client
        self.cache = cache
        self.config = config or SyncConfig()
        self.on_reload = on_reload
        self.event_log = event_log

        self.last_result: SyncResult | None = None

        self._state = DashboardState()
        self._listeners: list[Listener] = []
        self._cycle_count = 0
        self._token: CycleToken | None = None
        self._cycle_task: asyncio.Task[SyncResult] | None = None
        self._poll_token: CycleToken | None = None
        self._poller: NotificationPoller | None = None
        self._reload_handle: asyncio.TimerHandle | None = None
        self._background: set[asyncio.Task[None]] = set()
        self._previous_notification_count = 0

    # ------------------------------------------------------------------
    # State and listeners
    # ------------------------------------------------------------------

    @property
    def state(self) -> DashboardState:
        """Current state. Frozen; replaced wholesale on every change."""
        return self._state

    @property
    def poller(self) -> NotificationPoller | None:
        """The notification poller, once start_polling() was called."""
        return self._poller

    @property
    def reload_pending(self) -> bool:
        """Whether the one-time reload is scheduled but has not fired."""
        return self._reload_handle is not None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a state listener.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, state: DashboardState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Dashboard state listener failed")

    def _apply_snapshot(self, snapshot: AggregateSnapshot, **updates: Any) -> None:
        self._publish(self._state.model_copy(update={"snapshot": snapshot, **updates}))
        if self.cache is not None:
            self.cache.write(snapshot)

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    def hydrate(self) -> bool:
        """
        Publish the cached snapshot, if there is one.

        Returns:
            True if the state was hydrated from cache
        """
        snapshot = self.cache.read() if self.cache is not None else None
        if snapshot is None:
            return False

        self._previous_notification_count = len(snapshot.notifications)
        self._publish(
            DashboardState(
                phase=SyncPhase.CACHE_HYDRATED,
                snapshot=snapshot,
                from_cache=True,
                cycle_id=self._state.cycle_id,
            )
        )
        logger.debug(
            f"Hydrated from cache: {snapshot.person_count} students, "
            f"{len(snapshot.notifications)} notifications"
        )
        if self.event_log is not None:
            self.event_log.log_cache_hydrated(len(snapshot.notifications), snapshot.person_count)
        return True

    async def start(self) -> SyncResult:
        """Hydrate from cache, then run a live cycle behind it."""
        self.hydrate()
        return await self.run_cycle()

    def begin_cycle(self) -> asyncio.Task[SyncResult]:
        """
        Start a new sync cycle, superseding any cycle or poll in flight.

        The previous token is cancelled before the new cycle issues any
        request. Must be called from a running event loop.

        Returns:
            Task resolving to the cycle's SyncResult
        """
        if self._token is not None:
            self._token.cancel()
        if self._poll_token is not None:
            self._poll_token.cancel()
        if self._poller is not None:
            self._poller.cancel_inflight()

        self._cycle_count += 1
        token = CycleToken(self._cycle_count)
        self._token = token
        self._cycle_task = asyncio.create_task(self._run_cycle(token))
        return self._cycle_task

    async def run_cycle(self) -> SyncResult:
        """Start a cycle and wait for it."""
        return await self.begin_cycle()

    async def _fetch(self, source: Source, token: CycleToken) -> tuple[Source, Any, str | None]:
        try:
            envelope = await self.client.fetch_source(source, token)
        except SourceError as e:
            return source, None, str(e)
        except Exception as e:
            logger.exception(f"Unexpected error fetching {source.value}")
            return source, None, f"[{source.value}] {type(e).__name__}: {e}"
        return source, envelope, None

    def _aborted(self, token: CycleToken, started: float) -> SyncResult:
        duration = time.monotonic() - started
        logger.info(f"Sync cycle {token.cycle_id} aborted")
        if self.event_log is not None:
            self.event_log.log_cycle_end(token.cycle_id, SyncPhase.ABORTED.value, duration)
        return SyncResult(
            phase=SyncPhase.ABORTED, cycle_id=token.cycle_id, duration_seconds=duration
        )

    async def _run_cycle(self, token: CycleToken) -> SyncResult:
        started = time.monotonic()
        if token.cancelled:
            return self._aborted(token, started)

        logger.info(f"Starting sync cycle {token.cycle_id}")
        if self.event_log is not None:
            self.event_log.log_cycle_start(token.cycle_id)
        self._publish(
            self._state.model_copy(update={"phase": SyncPhase.FETCHING, "cycle_id": token.cycle_id})
        )

        # Every request is issued before any is awaited
        tasks = [token.attach(asyncio.create_task(self._fetch(s, token))) for s in Source]
        try:
            outcomes = await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            if token.cancelled:
                return self._aborted(token, started)
            raise

        records: dict[Source, list[Any]] = {}
        degraded: list[str] = []
        errors: list[str] = []
        for source, envelope, error in outcomes:
            if error is not None:
                logger.warning(f"Source degraded: {error}")
                degraded.append(source.value)
                errors.append(error)
                records[source] = []
                if self.event_log is not None:
                    self.event_log.log_source_degraded(token.cycle_id, source.value, error)
            else:
                records[source] = normalize(envelope, SOURCE_KEYS[source])

        if len(degraded) == len(Source):
            return self._fail(token, started, degraded, errors)

        snapshot = await self._aggregate(records)
        if token.cancelled:
            return self._aborted(token, started)

        phase = SyncPhase.PARTIALLY_FAILED if degraded else SyncPhase.SUCCEEDED
        self._apply_snapshot(
            snapshot,
            phase=phase,
            from_cache=False,
            degraded_sources=tuple(degraded),
            failed=False,
            cycle_id=token.cycle_id,
        )
        self._check_first_notifications(len(snapshot.notifications))

        duration = time.monotonic() - started
        result = SyncResult(
            phase=phase,
            cycle_id=token.cycle_id,
            sources_synced=[s.value for s in Source if s.value not in degraded],
            degraded_sources=degraded,
            errors=errors,
            duration_seconds=duration,
            applied=True,
        )
        self.last_result = result
        logger.info(
            f"Sync cycle {token.cycle_id} {phase.value} in {duration:.2f}s: "
            f"{snapshot.person_count} students, {snapshot.teacher_count} staff, "
            f"{len(snapshot.notifications)} notifications"
        )
        if self.event_log is not None:
            self.event_log.log_cycle_end(token.cycle_id, phase.value, duration, degraded)
        return result

    def _fail(
        self, token: CycleToken, started: float, degraded: list[str], errors: list[str]
    ) -> SyncResult:
        # Keep whatever snapshot is showing; only flag the failure
        self._publish(
            self._state.model_copy(
                update={
                    "phase": SyncPhase.FAILED,
                    "degraded_sources": tuple(degraded),
                    "failed": True,
                    "cycle_id": token.cycle_id,
                }
            )
        )
        duration = time.monotonic() - started
        result = SyncResult(
            phase=SyncPhase.FAILED,
            cycle_id=token.cycle_id,
            degraded_sources=degraded,
            errors=errors,
            duration_seconds=duration,
        )
        self.last_result = result
        logger.error(f"Sync cycle {token.cycle_id} failed: every source is unavailable")
        if self.event_log is not None:
            self.event_log.log_error("; ".join(errors), error_type="all_sources_failed")
            self.event_log.log_cycle_end(token.cycle_id, SyncPhase.FAILED.value, duration, degraded)
        return result

    async def _aggregate(self, records: dict[Source, list[Any]]) -> AggregateSnapshot:
        students = records[Source.STUDENTS]
        try:
            people = classify(students)
        except Exception as e:
            logger.warning(f"Student classification failed: {e}")
            people = PeopleSummary(normalized=[], tally={}, issues=[])

        try:
            events = parse_events(records[Source.EVENTS])
        except Exception as e:
            logger.warning(f"Event parsing failed: {e}")
            events = []

        try:
            results = parse_results(records[Source.RESULTS])
        except Exception as e:
            logger.warning(f"Result parsing failed: {e}")
            results = []

        notifications = await self._format_notifications(records[Source.NOTIFICATIONS])

        return AggregateSnapshot(
            events=tuple(events),
            teacher_count=len(records[Source.STAFF]),
            person_count=len(students),
            group_tally=people.tally,
            issues=tuple(people.issues),
            notifications=tuple(notifications),
            results=tuple(results),
            result_count=len(results),
            synced_at=datetime.now(timezone.utc),
        )

    async def _format_notifications(self, raw: Sequence[Any]) -> list[NotificationView]:
        try:
            return await format_notifications(raw, self.config.chunk_size)
        except Exception as e:
            logger.warning(f"Notification formatting failed, using basic formatting: {e}")
            return format_notifications_basic(raw)

    # ------------------------------------------------------------------
    # Reload-once policy
    # ------------------------------------------------------------------

    def _check_first_notifications(self, count: int) -> None:
        previous = self._previous_notification_count
        self._previous_notification_count = count
        if previous != 0 or count == 0:
            return
        if not self.config.reload_on_first_notification or self.on_reload is None:
            return
        if self.cache is None or self._reload_handle is not None:
            return
        if self.cache.has_reloaded():
            return

        self.cache.mark_reloaded()
        delay = self.config.reload_delay_seconds
        self._reload_handle = asyncio.get_running_loop().call_later(delay, self._fire_reload)
        logger.info(f"First notifications arrived; reloading in {delay}s")
        if self.event_log is not None:
            self.event_log.log_reload_triggered(delay)

    def _fire_reload(self) -> None:
        self._reload_handle = None
        if self.on_reload is None:
            return
        try:
            self.on_reload()
        except Exception:
            logger.exception("Reload callback failed")

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def refresh_notifications(self) -> bool:
        """
        Re-fetch notifications and apply them if anything changed.

        Changes are detected on the ordered (id, read) pairs. An unchanged
        result leaves the current state object untouched. Skipped while a
        full cycle is running, so an older cycle fetch never overwrites a
        newer poll.

        Returns:
            True if a new state was published
        """
        snapshot = self._state.snapshot
        if snapshot is None:
            logger.debug("No snapshot yet; skipping notification refresh")
            return False
        if self._cycle_task is not None and not self._cycle_task.done():
            # The running cycle fetches notifications itself
            logger.debug("Sync cycle in flight; skipping notification refresh")
            return False

        if self._poll_token is not None:
            self._poll_token.cancel()
        token = CycleToken(self._state.cycle_id)
        self._poll_token = token

        fetch = token.attach(
            asyncio.create_task(self.client.fetch_source(Source.NOTIFICATIONS, token))
        )
        try:
            envelope = await fetch
        except asyncio.CancelledError:
            if token.cancelled and fetch.cancelled():
                return False
            raise
        except SourceError as e:
            logger.warning(f"Notification refresh failed: {e}")
            return False

        views = await self._format_notifications(
            normalize(envelope, SOURCE_KEYS[Source.NOTIFICATIONS])
        )
        if token.cancelled:
            return False

        current = self._state.snapshot
        if current is None:
            return False
        if [(v.id, v.read) for v in views] == current.notification_keys():
            return False

        updated = current.model_copy(update={"notifications": tuple(views)})
        self._apply_snapshot(updated, from_cache=False)
        logger.debug(f"Notifications changed: {len(views)} total, {updated.unread_count} unread")
        if self.event_log is not None:
            self.event_log.log_poll_applied(len(views), updated.unread_count)
        self._check_first_notifications(len(views))
        return True

    def start_polling(self, interval: float | None = None) -> NotificationPoller:
        """
        Start re-polling notifications on a fixed interval.

        Args:
            interval: Seconds between polls (default: config.poll_interval_seconds)

        Returns:
            The running poller
        """
        self.stop_polling()
        self._poller = NotificationPoller(
            self.refresh_notifications, interval or self.config.poll_interval_seconds
        )
        self._poller.start()
        return self._poller

    def stop_polling(self) -> None:
        """Stop the notification poller, if running."""
        if self._poller is not None:
            self._poller.stop()
            self._poller = None

    def mark_read(self, notification_id: str) -> bool:
        """
        Mark one notification as read.

        The local state is updated immediately and the server call runs in
        the background. A failed server call is logged and not rolled
        back; the next poll brings the server's view back.

        Returns:
            True if an unread notification with that id was found locally
        """
        found = self._mark_local({notification_id})
        self._spawn(self._send_mark_read([notification_id]))
        return found

    def mark_all_read(self) -> int:
        """
        Mark every unread notification as read.

        Returns:
            Number of notifications marked
        """
        snapshot = self._state.snapshot
        if snapshot is None:
            return 0
        ids = [n.id for n in snapshot.notifications if not n.read]
        if not ids:
            return 0
        self._mark_local(set(ids))
        self._spawn(self._send_mark_read(ids))
        return len(ids)

    def _mark_local(self, ids: set[str]) -> bool:
        snapshot = self._state.snapshot
        if snapshot is None:
            return False

        changed = False
        notifications = []
        for view in snapshot.notifications:
            if view.id in ids and not view.read:
                view = view.model_copy(update={"read": True})
                changed = True
            notifications.append(view)

        if changed:
            self._apply_snapshot(snapshot.model_copy(update={"notifications": tuple(notifications)}))
        return changed

    async def _send_mark_read(self, ids: list[str]) -> None:
        for notification_id in ids:
            try:
                await self.client.mark_read(notification_id)
            except SourceError as e:
                logger.warning(f"Ignoring mark-read failure for {notification_id}: {e}")

    def _spawn(self, coro: Any) -> None:
        task: asyncio.Task[None] = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def flush(self) -> None:
        """Wait for background mark-read calls to finish."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Cancel the current cycle, polling, the pending reload and background calls."""
        if self._token is not None:
            self._token.cancel()
        if self._poll_token is not None:
            self._poll_token.cancel()
        self.stop_polling()
        if self._reload_handle is not None:
            self._reload_handle.cancel()
            self._reload_handle = None
        for task in list(self._background):
            task.cancel()
        self._listeners.clear()
