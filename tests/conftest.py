"""
Pytest configuration and shared fixtures.

Provides fixtures for isolated XDG/config environments, session storage,
sample backend payloads, a scriptable fake backend client and httpx mock
transports used across the test suite.
"""

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from classboard.core.config import ApiConfig, SyncConfig, clear_cache
from classboard.core.dashboard.cache import SessionStore, SnapshotCache
from classboard.core.dashboard.client import DashboardClient
from classboard.core.dashboard.exceptions import NetworkError
from classboard.core.dashboard.models import Source
from classboard.core.dashboard.sync.cancellation import CycleToken

# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """
    Point every XDG directory at a temp dir and drop CLASSBOARD_* overrides.

    Also clears the process-wide config cache before and after each test.
    """
    for name in ("XDG_CONFIG_HOME", "XDG_DATA_HOME", "XDG_STATE_HOME"):
        path = tmp_path / "xdg" / name.lower()
        path.mkdir(parents=True)
        monkeypatch.setenv(name, str(path))
    for name in (
        "CLASSBOARD_API_URL",
        "CLASSBOARD_TIMEOUT",
        "CLASSBOARD_POLL_INTERVAL",
        "CLASSBOARD_CHUNK_SIZE",
        "CLASSBOARD_SESSION_ID",
        "CLASSBOARD_STATE_DIR",
    ):
        monkeypatch.delenv(name, raising=False)

    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def state_dir(tmp_path) -> Path:
    """Provide a temporary session state directory."""
    path = tmp_path / "state"
    path.mkdir()
    return path


# ==============================================================================
# Storage Fixtures
# ==============================================================================


@pytest.fixture
def store(state_dir) -> SessionStore:
    """Provide a session store for a fixed test session."""
    return SessionStore(state_dir, "test-session")


@pytest.fixture
def snapshot_cache(store) -> SnapshotCache:
    """Provide a snapshot cache on top of the test session store."""
    return SnapshotCache(store)


@pytest.fixture
def fast_sync_config() -> SyncConfig:
    """Sync settings with tiny delays so timer-driven tests stay quick."""
    return SyncConfig(chunk_size=2, poll_interval_seconds=0.05, reload_delay_seconds=0.01)


# ==============================================================================
# Sample Payload Fixtures
# ==============================================================================


@pytest.fixture
def students_payload() -> dict[str, Any]:
    """Students envelope with one complete record and several incomplete ones."""
    return {
        "success": True,
        "students": [
            {"id": "s1", "name": "Ada Obi", "email": "ada@example.com", "class": "JSS 1"},
            {"uid": "s2", "fullName": "Bola Ade", "phone": "0800", "className": " JSS 1 "},
            {"_id": "s3", "firstName": "Chi", "lastName": "Eze", "classroom": {"name": "JSS 2"}},
            {"studentId": "s4", "email": "dan@example.com", "grade": "   "},
        ],
    }


@pytest.fixture
def teachers_payload() -> dict[str, Any]:
    """Teachers envelope nested under a generic key."""
    return {"data": [{"id": "t1", "name": "Mrs. Okafor"}, {"id": "t2", "name": "Mr. Bello"}]}


@pytest.fixture
def notifications_payload() -> list[dict[str, Any]]:
    """Notifications as a bare list, deliberately out of order."""
    return [
        {"id": "n1", "title": "System Update", "message": "Maintenance", "createdAt": 1700000000},
        {
            "id": "n2",
            "title": "Student Created",
            "message": "A new student joined JSS 1",
            "createdAt": "2023-11-15T10:00:00Z",
            "read": True,
        },
        {"id": "n3", "title": "SMS not sent", "status": "failed"},
    ]


@pytest.fixture
def events_payload() -> dict[str, Any]:
    """Events envelope."""
    return {
        "events": [
            {"id": 2, "title": "Sports Day", "date": "2026-11-06", "forTeachers": False},
            {"id": 1, "title": "PTA Meeting", "date": "2026-10-30", "forTeachers": True},
        ]
    }


@pytest.fixture
def results_payload() -> dict[str, Any]:
    """Results envelope mixing published and pending records."""
    return {
        "results": [
            {"id": "r1", "studentName": "Ada Obi", "published": "yes", "subjects": []},
            {"id": "r2", "studentId": "s2", "published": "no"},
        ]
    }


@pytest.fixture
def full_responses(
    events_payload, teachers_payload, students_payload, notifications_payload, results_payload
) -> dict[Source, Any]:
    """Successful responses for all five sources."""
    return {
        Source.EVENTS: events_payload,
        Source.STAFF: teachers_payload,
        Source.STUDENTS: students_payload,
        Source.NOTIFICATIONS: notifications_payload,
        Source.RESULTS: results_payload,
    }


# ==============================================================================
# Fake Client
# ==============================================================================


class FakeDashboardClient:
    """
    Scriptable stand-in for DashboardClient.

    responses maps a source to a payload or to an exception instance to
    raise. A source with an asyncio.Event in gates blocks until the event
    is set, which lets tests hold a cycle in flight.
    """

    def __init__(self, responses: dict[Source, Any] | None = None) -> None:
        self.responses: dict[Source, Any] = dict(responses or {})
        self.gates: dict[Source, asyncio.Event] = {}
        self.calls: list[Source] = []
        self.tokens: list[CycleToken | None] = []
        self.cancelled: list[Source] = []
        self.mark_read_calls: list[str] = []
        self.mark_read_error: Exception | None = None
        self.closed = False

    async def __aenter__(self) -> "FakeDashboardClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self.closed = True

    async def fetch_source(self, source: Source, token: CycleToken | None = None) -> Any:
        self.calls.append(source)
        self.tokens.append(token)
        if token is not None:
            token.raise_if_cancelled()
        gate = self.gates.get(source)
        if gate is not None:
            try:
                await gate.wait()
            except asyncio.CancelledError:
                self.cancelled.append(source)
                raise
        response = self.responses.get(source, [])
        if isinstance(response, BaseException):
            raise response
        return response

    async def mark_read(self, notification_id: str) -> None:
        self.mark_read_calls.append(notification_id)
        if self.mark_read_error is not None:
            raise self.mark_read_error


@pytest.fixture
def fake_client(full_responses) -> FakeDashboardClient:
    """Provide a fake client answering every source successfully."""
    return FakeDashboardClient(full_responses)


@pytest.fixture
def failing_client() -> FakeDashboardClient:
    """Provide a fake client for which every source is unreachable."""
    return FakeDashboardClient(
        {source: NetworkError(source.value, "connection refused") for source in Source}
    )


# ==============================================================================
# HTTP Fixtures
# ==============================================================================


@pytest.fixture
def make_client() -> Callable[..., DashboardClient]:
    """
    Factory for DashboardClient instances backed by httpx.MockTransport.

    Usage:
        client = make_client(handler)                      # default ApiConfig
        client = make_client(handler, max_retries=0)       # ApiConfig overrides
    """

    def factory(handler: Callable[[httpx.Request], httpx.Response], **api: Any) -> DashboardClient:
        api.setdefault("retry_base_delay", 0.001)
        config = ApiConfig(base_url="http://school.test", **api)
        return DashboardClient(config, transport=httpx.MockTransport(handler))

    return factory
