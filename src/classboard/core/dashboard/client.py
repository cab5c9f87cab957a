"""
Async HTTP client for the school backend.

Wraps an httpx.AsyncClient configured from ApiConfig and exposes the calls
the sync engine needs:
- fetch_source(): GET a collection, trying each configured path in order
- mark_read(): PATCH a notification as read
- create_event() / delete_event(): calendar entry mutations

Collection fetches retry transient failures and check the cycle token
before every attempt, so a superseded cycle stops issuing requests.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from classboard.core.config.models import ApiConfig
from classboard.core.dashboard.exceptions import (
    EventMutationError,
    NetworkError,
    ParseError,
    SourceError,
)
from classboard.core.dashboard.http import retry_request
from classboard.core.dashboard.models import EventDraft, EventEntry, Source
from classboard.core.dashboard.sync.cancellation import CycleToken
from classboard.core.dashboard.sync.parsers.events import event_payload, parse_event

logger = logging.getLogger(__name__)

NOTIFICATION_READ_PATH = "/api/notifications/{id}/read"
EVENTS_PATH = "/api/events"


def _server_message(response: httpx.Response) -> str:
    """Error text from a failed response: its message/error field or the status."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for field in ("message", "error"):
            if isinstance(body.get(field), str) and body[field].strip():
                return body[field].strip()
    return f"HTTP {response.status_code}"


class DashboardClient:
    """
    Client for the five dashboard collections and their mutations.

    Example:
        >>> async with DashboardClient(ApiConfig(base_url="http://localhost:5000")) as client:
        ...     envelope = await client.fetch_source(Source.STUDENTS)
    """

    def __init__(
        self,
        config: ApiConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: API settings (base URL, paths, timeout, retries)
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        self.config = config or ApiConfig()
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            headers=self.config.headers,
            transport=transport,
        )

    async def __aenter__(self) -> DashboardClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    def paths_for(self, source: Source) -> list[str]:
        """Configured paths for a source, in fallback order."""
        return list(self.config.endpoints.get(source.value, []))

    async def fetch_source(self, source: Source, token: CycleToken | None = None) -> Any:
        """
        Fetch one collection's raw JSON body.

        Each configured path is tried in order. A non-success status or a
        body that does not decode as JSON moves on to the next path,
        whatever the response's content type says.

        Args:
            source: Collection to fetch
            token: Cycle token checked before every attempt

        Returns:
            The decoded JSON envelope (any shape)

        Raises:
            NetworkError: If the last failure was a transport or status error
            ParseError: If the last failure was an unusable body
            asyncio.CancelledError: If the cycle was cancelled
        """
        paths = self.paths_for(source)
        if not paths:
            raise NetworkError(source.value, "No endpoint configured")

        before_attempt = token.raise_if_cancelled if token is not None else None
        last_error: SourceError | None = None
        last_cause: BaseException | None = None

        for path in paths:
            try:
                response = await retry_request(
                    self._client,
                    "GET",
                    path,
                    max_retries=self.config.max_retries,
                    base_delay=self.config.retry_base_delay,
                    before_attempt=before_attempt,
                )
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                last_error = NetworkError(
                    source.value, f"HTTP {status} from {path}", url=path, status_code=status
                )
                last_cause = e
                logger.debug(f"{last_error}; trying next path")
                continue
            except httpx.HTTPError as e:
                last_error = NetworkError(
                    source.value, f"{type(e).__name__} from {path}: {e}", url=path
                )
                last_cause = e
                logger.debug(f"{last_error}; trying next path")
                continue

            # The body decides, not the content type
            try:
                return response.json()
            except ValueError as e:
                content_type = response.headers.get("content-type") or "no content type"
                last_error = ParseError(
                    source.value, f"Invalid JSON from {path} ({content_type}): {e}", url=path
                )
                last_cause = e
                logger.debug(f"{last_error}; trying next path")

        if last_error is None:
            last_error = NetworkError(source.value, "No response from any endpoint")
        raise last_error from last_cause

    async def mark_read(self, notification_id: str) -> None:
        """
        Mark a notification as read on the server.

        Raises:
            NetworkError: If the request fails
        """
        path = NOTIFICATION_READ_PATH.format(id=quote(str(notification_id), safe=""))
        try:
            response = await self._client.patch(path)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NetworkError(Source.NOTIFICATIONS.value, f"mark-read failed: {e}", url=path) from e

    async def create_event(self, draft: EventDraft) -> EventEntry:
        """
        Create a calendar event.

        Returns:
            The created event as stored by the server (falls back to the
            submitted fields when the server echoes less)

        Raises:
            EventMutationError: With the server's message or the HTTP status
        """
        payload = event_payload(draft)
        response = await self._mutate("POST", EVENTS_PATH, json=payload)

        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("event"), dict):
            body = body["event"]
        created = {**payload, **body} if isinstance(body, dict) else payload
        return parse_event(created)

    async def delete_event(self, event_id: str) -> None:
        """
        Delete a calendar event.

        Raises:
            EventMutationError: With the server's message or the HTTP status
        """
        await self._mutate("DELETE", f"{EVENTS_PATH}/{quote(str(event_id), safe='')}")

    async def _mutate(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        # Mutations are not retried: POST is not idempotent
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise EventMutationError(f"Request failed: {e}") from e

        if response.is_error:
            raise EventMutationError(_server_message(response), status_code=response.status_code)
        logger.info(f"{method} {path} -> {response.status_code}")
        return response
