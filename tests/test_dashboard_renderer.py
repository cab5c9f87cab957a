"""
Unit tests for the dashboard renderer.

Tests the Rich-based rendering of dashboard state: stat cards, degraded
sections and the aggregate failure banner.
"""

from datetime import date, datetime, timezone
from io import StringIO

import pytest
from rich.console import Console
from rich.layout import Layout
from rich.live import Live

from classboard.core.dashboard.models import (
    AggregateSnapshot,
    DashboardState,
    DataIssue,
    EventEntry,
    IssueProblem,
    NotificationVariant,
    NotificationView,
    ResultEntry,
    SyncPhase,
)
from classboard.dashboard.renderer import NO_DATA, DashboardRenderer

FAILURE_BANNER = "Unable to reach the school server"


class TestDashboardRenderer:
    """Test DashboardRenderer class."""

    @pytest.fixture
    def console(self) -> Console:
        """Create a recording console with string output."""
        return Console(file=StringIO(), width=120, legacy_windows=False, record=True)

    @pytest.fixture
    def renderer(self, console: Console) -> DashboardRenderer:
        """Create a test dashboard renderer."""
        return DashboardRenderer(console=console)

    @pytest.fixture
    def snapshot(self) -> AggregateSnapshot:
        """A populated snapshot."""
        return AggregateSnapshot(
            events=(
                EventEntry(
                    id="e1",
                    title="PTA Meeting",
                    event_date=date(2026, 10, 30),
                    description="Main hall",
                    for_teachers=True,
                ),
            ),
            teacher_count=12,
            person_count=1250,
            group_tally={"JSS 1": 2, "JSS 2": 1},
            issues=(
                DataIssue(identity="s3", display_name="Chi Eze", problem=IssueProblem.MISSING_CONTACT),
                DataIssue(identity="s4", problem=IssueProblem.MISSING_NAME),
                DataIssue(identity="s4", problem=IssueProblem.NO_GROUP_ASSIGNED),
            ),
            notifications=(
                NotificationView(
                    id="n2",
                    title="Student Created",
                    message="A new student joined JSS 1",
                    display_time="15 Nov 2023, 10:00",
                    variant=NotificationVariant.CREATE,
                ),
                NotificationView(id="n3", title="SMS [not] sent", variant=NotificationVariant.FAILED),
                NotificationView(id="n1", title="System Update", read=True),
            ),
            results=(
                ResultEntry(id="r1", status="published"),
                ResultEntry(id="r2", status="pending"),
            ),
            result_count=2,
            synced_at=datetime(2026, 10, 17, 8, 0, tzinfo=timezone.utc),
        )

    def output(self, console: Console, renderable) -> str:
        console.print(renderable)
        return console.export_text()

    def test_render_returns_layout(self, renderer, snapshot) -> None:
        """render() builds the full-screen layout."""
        layout = renderer.render(DashboardState(phase=SyncPhase.SUCCEEDED, snapshot=snapshot))
        assert isinstance(layout, Layout)
        for name in ("header", "stats", "groups", "issues", "notifications", "events"):
            assert layout[name] is not None

    def test_populated_dashboard(self, renderer, console, snapshot) -> None:
        """Every section shows its data."""
        text = self.output(
            console,
            renderer.render_static(DashboardState(phase=SyncPhase.SUCCEEDED, snapshot=snapshot)),
        )

        assert "SUCCEEDED" in text
        assert "1,250" in text
        assert "12" in text
        assert "JSS 2" in text
        assert "3 issues across 2 students" in text
        assert "missing contact" in text
        assert "Chi Eze" in text
        assert "(2 unread)" in text
        assert "SMS [not] sent" in text
        assert "PTA Meeting" in text
        assert "2026-10-30" in text
        assert NO_DATA not in text
        assert FAILURE_BANNER not in text

    def test_loading_state(self, renderer, console) -> None:
        """Before any data, stat cards show a placeholder and sections show no data."""
        text = self.output(console, renderer.render_static(DashboardState()))
        assert "IDLE" in text
        assert "…" in text
        assert text.count(NO_DATA) == 4
        assert FAILURE_BANNER not in text

    def test_degraded_sections_show_no_data(self, renderer, console) -> None:
        """Empty sections are neutral, with no error banner."""
        state = DashboardState(
            phase=SyncPhase.PARTIALLY_FAILED,
            snapshot=AggregateSnapshot(teacher_count=3),
            degraded_sources=("events", "notifications"),
        )
        text = self.output(console, renderer.render_static(state))
        assert "PARTIALLY FAILED" in text
        assert NO_DATA in text
        assert FAILURE_BANNER not in text

    def test_failure_banner(self, renderer, console, snapshot) -> None:
        """Total failure shows the banner above the last known data."""
        state = DashboardState(phase=SyncPhase.FAILED, snapshot=snapshot, failed=True)
        text = self.output(console, renderer.render_static(state))
        assert FAILURE_BANNER in text
        assert "1,250" in text

    def test_cached_indicator(self, renderer, console, snapshot) -> None:
        """A hydrated snapshot is marked as cached."""
        state = DashboardState(phase=SyncPhase.CACHE_HYDRATED, snapshot=snapshot, from_cache=True)
        assert "(cached)" in self.output(console, renderer.render_static(state))

    def test_max_rows(self, console) -> None:
        """Long lists are truncated to max_rows."""
        renderer = DashboardRenderer(console=console, max_rows=1)
        snapshot = AggregateSnapshot(
            notifications=(
                NotificationView(id="a", title="First"),
                NotificationView(id="b", title="Second"),
            )
        )
        text = self.output(console, renderer.render_static(DashboardState(snapshot=snapshot)))
        assert "First" in text
        assert "Second" not in text

    def test_phase_colors(self, renderer) -> None:
        """Every phase has a colour."""
        assert renderer._get_phase_color(SyncPhase.SUCCEEDED) == "green"
        assert renderer._get_phase_color(SyncPhase.FAILED) == "red"
        assert all(renderer._get_phase_color(phase) for phase in SyncPhase)

    def test_start_live(self, renderer) -> None:
        """start_live() returns an unstarted Live display."""
        live = renderer.start_live(DashboardState())
        assert isinstance(live, Live)
