"""
Tests for DashboardClient.

The backend is simulated with httpx.MockTransport handlers built by the
make_client fixture in conftest.
"""

import asyncio
import json
from datetime import date

import httpx
import pytest

from classboard.core.dashboard.exceptions import EventMutationError, NetworkError, ParseError
from classboard.core.dashboard.models import EventDraft, Source
from classboard.core.dashboard.sync.cancellation import CycleCancelledError, CycleToken


class TestFetchSource:
    """Collection fetches with path fallback."""

    @pytest.mark.asyncio
    async def test_returns_decoded_envelope(self, make_client) -> None:
        """A JSON body is returned as-is, whatever its shape."""
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json={"success": True, "students": [{"id": "s1"}]})

        async with make_client(handler) as client:
            envelope = await client.fetch_source(Source.STUDENTS)

        assert envelope == {"success": True, "students": [{"id": "s1"}]}
        assert seen == ["/api/students"]

    @pytest.mark.asyncio
    async def test_falls_back_to_second_path(self, make_client) -> None:
        """A 404 on the first results path moves on to the next."""
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            if request.url.path == "/api/results":
                return httpx.Response(404, json={"message": "not found"})
            return httpx.Response(200, json={"results": []})

        async with make_client(handler) as client:
            assert await client.fetch_source(Source.RESULTS) == {"results": []}
        assert seen == ["/api/results", "/results"]

    @pytest.mark.asyncio
    async def test_html_fallback_page_is_parse_error(self, make_client) -> None:
        """An HTML page on every path is a ParseError naming the content type."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, content=b"<html>app shell</html>", headers={"content-type": "text/html"}
            )

        async with make_client(handler) as client:
            with pytest.raises(ParseError) as exc_info:
                await client.fetch_source(Source.RESULTS)

        assert exc_info.value.source == "results"
        assert "text/html" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_html_then_json(self, make_client) -> None:
        """A non-JSON body on one path still tries the next."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/results":
                return httpx.Response(200, text="<html></html>")
            return httpx.Response(200, json=[{"id": "r1"}])

        async with make_client(handler) as client:
            assert await client.fetch_source(Source.RESULTS) == [{"id": "r1"}]

    @pytest.mark.asyncio
    async def test_json_body_with_plain_text_content_type(self, make_client) -> None:
        """A JSON body is used even when the server labels it text/plain."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, content=b'[{"id": 1}]', headers={"content-type": "text/plain"}
            )

        async with make_client(handler) as client:
            assert await client.fetch_source(Source.STUDENTS) == [{"id": 1}]

    @pytest.mark.asyncio
    async def test_invalid_json_body(self, make_client) -> None:
        """A JSON content type with a broken body is a ParseError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, content=b"{broken", headers={"content-type": "application/json"}
            )

        async with make_client(handler) as client:
            with pytest.raises(ParseError, match="Invalid JSON"):
                await client.fetch_source(Source.EVENTS)

    @pytest.mark.asyncio
    async def test_client_error_is_network_error(self, make_client) -> None:
        """4xx on the only path is a NetworkError, not retried."""
        attempts = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            return httpx.Response(403, json={"message": "forbidden"})

        async with make_client(handler) as client:
            with pytest.raises(NetworkError) as exc_info:
                await client.fetch_source(Source.STAFF)

        assert attempts == 1
        assert exc_info.value.context["status_code"] == 403
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self, make_client) -> None:
        """5xx responses are retried before succeeding."""
        attempts = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"events": []})

        async with make_client(handler, max_retries=2) as client:
            assert await client.fetch_source(Source.EVENTS) == {"events": []}
        assert attempts == 3

    @pytest.mark.asyncio
    async def test_connection_error(self, make_client) -> None:
        """Transport failures become NetworkError after retries."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler, max_retries=1) as client:
            with pytest.raises(NetworkError, match="ConnectError"):
                await client.fetch_source(Source.NOTIFICATIONS)

    @pytest.mark.asyncio
    async def test_unconfigured_source(self, make_client) -> None:
        """A source with no paths fails without a request."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async with make_client(handler, endpoints={"events": ["/api/events"]}) as client:
            with pytest.raises(NetworkError, match="No endpoint"):
                await client.fetch_source(Source.RESULTS)

    @pytest.mark.asyncio
    async def test_cancelled_token_issues_no_request(self, make_client) -> None:
        """A cancelled cycle does not start new attempts."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=[])

        token = CycleToken(1)
        token.cancel()
        async with make_client(handler) as client:
            with pytest.raises(CycleCancelledError):
                await client.fetch_source(Source.EVENTS, token)
        assert requests == []

    @pytest.mark.asyncio
    async def test_cancelling_task_interrupts_request(self, make_client) -> None:
        """Cancelling the fetch task aborts the in-flight request."""
        started = asyncio.Event()

        async def slow_handler(request: httpx.Request) -> httpx.Response:
            started.set()
            await asyncio.sleep(10)
            return httpx.Response(200, json=[])

        client = make_client(slow_handler)
        token = CycleToken(1)
        task = token.attach(asyncio.create_task(client.fetch_source(Source.STUDENTS, token)))
        await asyncio.wait_for(started.wait(), timeout=1)

        token.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await client.aclose()


class TestMarkRead:
    """Notification mark-read calls."""

    @pytest.mark.asyncio
    async def test_patch_path(self, make_client) -> None:
        """mark_read PATCHes the notification's read endpoint."""
        seen: list[tuple[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path))
            return httpx.Response(200, json={"success": True})

        async with make_client(handler) as client:
            await client.mark_read("n1")

        assert seen == [("PATCH", "/api/notifications/n1/read")]

    @pytest.mark.asyncio
    async def test_failure(self, make_client) -> None:
        """A failing mark-read raises NetworkError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        async with make_client(handler) as client:
            with pytest.raises(NetworkError, match="mark-read failed"):
                await client.mark_read("n1")


class TestEventMutations:
    """Calendar event create/delete."""

    @pytest.mark.asyncio
    async def test_create_event(self, make_client) -> None:
        """The draft is posted and the server's record returned."""
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(201, json={"success": True, "event": {"id": "e9"}})

        draft = EventDraft(title="Open Day", event_date=date(2026, 11, 20), description="Gates 9am")
        async with make_client(handler) as client:
            event = await client.create_event(draft)

        assert bodies == [
            {
                "title": "Open Day",
                "date": "2026-11-20",
                "description": "Gates 9am",
                "forTeachers": True,
            }
        ]
        assert event.id == "e9"
        assert event.title == "Open Day"
        assert event.event_date == date(2026, 11, 20)
        assert event.for_teachers is True

    @pytest.mark.asyncio
    async def test_create_event_server_message(self, make_client) -> None:
        """A rejection carries the server's message and status."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"message": "Date is in the past"})

        draft = EventDraft(title="Old", event_date=date(2020, 1, 1))
        async with make_client(handler) as client:
            with pytest.raises(EventMutationError) as exc_info:
                await client.create_event(draft)

        assert str(exc_info.value) == "Date is in the past"
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_create_is_not_retried(self, make_client) -> None:
        """Server errors on create are reported, not retried."""
        attempts = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            return httpx.Response(502, text="Bad Gateway")

        draft = EventDraft(title="Fair", event_date=date(2026, 12, 1))
        async with make_client(handler) as client:
            with pytest.raises(EventMutationError, match="HTTP 502"):
                await client.create_event(draft)
        assert attempts == 1

    @pytest.mark.asyncio
    async def test_delete_event(self, make_client) -> None:
        """Deletion targets the event's path."""
        seen: list[tuple[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path))
            return httpx.Response(200, json={"success": True})

        async with make_client(handler) as client:
            await client.delete_event("e9")
        assert seen == [("DELETE", "/api/events/e9")]

    @pytest.mark.asyncio
    async def test_delete_missing_event(self, make_client) -> None:
        """A 404 on delete uses the server's error field."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "Event not found"})

        async with make_client(handler) as client:
            with pytest.raises(EventMutationError, match="Event not found") as exc_info:
                await client.delete_event("nope")
        assert exc_info.value.status_code == 404
