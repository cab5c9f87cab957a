"""
Pydantic models for dashboard entities and sync state.

These models provide type-safe data structures for:
- NormalizedPerson/DataIssue: Students after tolerant field extraction
- NotificationView: Canonical display form of a notification
- EventEntry/ResultEntry: Calendar events and published results
- AggregateSnapshot: The full cacheable dashboard state
- DashboardState/SyncResult: Orchestrator state and per-cycle reports

Domain models are frozen. The orchestrator replaces them wholesale and
hands the same immutable objects to every listener.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

RawRecord = dict[str, Any]


class Source(str, Enum):
    """Backend collections that feed the dashboard."""

    EVENTS = "events"
    STAFF = "staff"
    STUDENTS = "students"
    NOTIFICATIONS = "notifications"
    RESULTS = "results"


class IssueProblem(str, Enum):
    """Data-quality problems detected on a student record."""

    MISSING_NAME = "missing-name"
    MISSING_CONTACT = "missing-contact"
    NO_GROUP_ASSIGNED = "no-group-assigned"


class NotificationVariant(str, Enum):
    """Semantic variant used to colour a notification."""

    DEFAULT = "default"
    CREATE = "create"
    DELETE = "delete"
    FAILED = "failed"


class SyncPhase(str, Enum):
    """Lifecycle of a sync cycle.

    idle -> cache_hydrated (optional) -> fetching -> one of
    succeeded / partially_failed / failed / aborted.
    """

    IDLE = "idle"
    CACHE_HYDRATED = "cache_hydrated"
    FETCHING = "fetching"
    SUCCEEDED = "succeeded"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"
    ABORTED = "aborted"


class NormalizedPerson(BaseModel):
    """Student record after tolerant field extraction.

    Example:
        >>> person = NormalizedPerson(
        ...     identity="stu-104",
        ...     display_name="Ada Obi",
        ...     contact="ada@example.com",
        ...     group="JSS 2A",
        ... )
    """

    identity: str = Field(..., min_length=1, description="Natural or synthesized identity")
    display_name: str | None = Field(default=None, description="Display name")
    contact: str | None = Field(default=None, description="Email or phone")
    group: str | None = Field(default=None, description="Class/group name, trimmed")

    model_config = ConfigDict(frozen=True)


class DataIssue(BaseModel):
    """One missing required field on one student."""

    identity: str = Field(..., description="Identity of the affected student")
    display_name: str | None = Field(default=None, description="Name, when known")
    problem: IssueProblem = Field(..., description="Which field is missing")
    source_record: RawRecord = Field(default_factory=dict, description="Raw record")

    model_config = ConfigDict(frozen=True)


class NotificationView(BaseModel):
    """Canonical display form of a notification."""

    id: str = Field(..., description="Identifier, stable across refreshes")
    title: str = Field(default="", description="Headline")
    message: str = Field(default="", description="Body text")
    display_time: str = Field(default="Just now", description="Formatted time label")
    timestamp_ms: int = Field(default=0, description="Resolved epoch millis, 0 if unknown")
    read: bool = Field(default=False, description="Whether the notification was read")
    variant: NotificationVariant = Field(
        default=NotificationVariant.DEFAULT, description="Semantic variant"
    )
    source_record: RawRecord = Field(default_factory=dict, description="Raw record")

    model_config = ConfigDict(frozen=True)


class EventEntry(BaseModel):
    """Calendar-style school event."""

    id: str = Field(..., description="Event identifier")
    title: str = Field(default="", description="Event title")
    event_date: date | None = Field(default=None, description="Event date")
    description: str = Field(default="", description="Optional description")
    for_teachers: bool = Field(default=False, description="Visible to teachers")
    source_record: RawRecord = Field(default_factory=dict, description="Raw record")

    model_config = ConfigDict(frozen=True)


class EventDraft(BaseModel):
    """Payload for creating a calendar event."""

    title: str = Field(..., min_length=1, description="Event title")
    event_date: date = Field(..., description="Event date")
    description: str = Field(default="", description="Optional description")
    for_teachers: bool = Field(default=True, description="Visible to teachers")


class ResultEntry(BaseModel):
    """A student's term result as listed on the dashboard."""

    id: str = Field(..., description="Result identifier")
    student_name: str = Field(default="Unknown", description="Student display name")
    student_id: str = Field(default="", description="Student identifier")
    group: str = Field(default="", description="Class name")
    session: str = Field(default="", description="Academic session")
    term: str = Field(default="", description="Term")
    subjects: tuple[RawRecord, ...] = Field(default=(), description="Subject scores")
    status: str = Field(default="pending", description="published / pending / raw status")
    last_updated: str = Field(default="", description="Publish or update timestamp")
    source_record: RawRecord = Field(default_factory=dict, description="Raw record")

    model_config = ConfigDict(frozen=True)

    @property
    def is_published(self) -> bool:
        """Check if the result has been published."""
        return self.status == "published"


class AggregateSnapshot(BaseModel):
    """The full cacheable dashboard state.

    Every field has a default, so a snapshot persisted by an older build
    with fewer fields still loads.
    """

    events: tuple[EventEntry, ...] = Field(default=(), description="Upcoming events")
    teacher_count: int = Field(default=0, ge=0, description="Number of staff records")
    person_count: int = Field(default=0, ge=0, description="Number of student records")
    group_tally: dict[str, int] = Field(default_factory=dict, description="Students per class")
    issues: tuple[DataIssue, ...] = Field(default=(), description="Student data issues")
    notifications: tuple[NotificationView, ...] = Field(
        default=(), description="Notifications, newest first"
    )
    results: tuple[ResultEntry, ...] = Field(default=(), description="Results")
    result_count: int = Field(default=0, ge=0, description="Number of results")
    synced_at: datetime | None = Field(default=None, description="When the sync completed")

    model_config = ConfigDict(frozen=True)

    @property
    def unread_count(self) -> int:
        """Number of unread notifications."""
        return sum(1 for n in self.notifications if not n.read)

    @property
    def group_count(self) -> int:
        """Number of distinct classes."""
        return len(self.group_tally)

    @property
    def published_result_count(self) -> int:
        """Number of published results."""
        return sum(1 for r in self.results if r.is_published)

    def notification_keys(self) -> list[tuple[str, bool]]:
        """Ordered (id, read) pairs used for change detection."""
        return [(n.id, n.read) for n in self.notifications]


class DashboardState(BaseModel):
    """What the UI renders: current snapshot plus sync status."""

    phase: SyncPhase = Field(default=SyncPhase.IDLE, description="Current sync phase")
    snapshot: AggregateSnapshot | None = Field(default=None, description="Latest snapshot")
    from_cache: bool = Field(default=False, description="Snapshot came from the session cache")
    degraded_sources: tuple[str, ...] = Field(
        default=(), description="Sources that returned no usable data in the last cycle"
    )
    failed: bool = Field(default=False, description="Every source failed in the last cycle")
    cycle_id: int = Field(default=0, ge=0, description="Cycle that produced this state")

    model_config = ConfigDict(frozen=True)

    @property
    def is_ready(self) -> bool:
        """Check if there is anything to render."""
        return self.snapshot is not None


class SyncResult(BaseModel):
    """Result of a sync cycle.

    Example:
        >>> result = SyncResult(
        ...     phase=SyncPhase.PARTIALLY_FAILED,
        ...     cycle_id=3,
        ...     sources_synced=["events", "staff", "students", "notifications"],
        ...     degraded_sources=["results"],
        ... )
    """

    phase: SyncPhase = Field(..., description="Terminal phase of the cycle")
    cycle_id: int = Field(default=0, ge=0, description="Cycle number")
    sources_synced: list[str] = Field(default_factory=list, description="Sources with data")
    degraded_sources: list[str] = Field(default_factory=list, description="Degraded sources")
    errors: list[str] = Field(default_factory=list, description="Error messages")
    duration_seconds: float = Field(default=0.0, ge=0.0, description="Cycle duration")
    applied: bool = Field(default=False, description="Whether state was updated")

    @property
    def success(self) -> bool:
        """A cycle succeeds when it produced a best-effort aggregate."""
        return self.phase in (SyncPhase.SUCCEEDED, SyncPhase.PARTIALLY_FAILED)
