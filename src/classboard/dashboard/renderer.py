"""
Rich-based dashboard renderer for classboard.

Provides the terminal UI for the school dashboard: stat cards, classes,
student data issues, notifications and upcoming events.
"""

from rich.columns import Columns
from rich.console import Console, Group, RenderableType
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from classboard.core.dashboard.models import (
    AggregateSnapshot,
    DashboardState,
    IssueProblem,
    NotificationVariant,
    SyncPhase,
)

NO_DATA = "No data"

VARIANT_STYLES = {
    NotificationVariant.DEFAULT: "blue",
    NotificationVariant.CREATE: "green",
    NotificationVariant.DELETE: "yellow",
    NotificationVariant.FAILED: "red",
}

PROBLEM_LABELS = {
    IssueProblem.MISSING_NAME: "missing name",
    IssueProblem.MISSING_CONTACT: "missing contact",
    IssueProblem.NO_GROUP_ASSIGNED: "no class assigned",
}


class DashboardRenderer:
    """
    Render the school dashboard from orchestrator state using Rich.

    The dashboard displays:
    - Header: sync phase, cache/degraded indicators, failure banner
    - Stats: teachers, students, classes, published results
    - Classes and data issues
    - Notifications (coloured by variant) and upcoming events

    Degraded sections show a neutral "No data" message. Only a cycle in
    which every source failed shows the failure banner.

    Example:
        >>> renderer = DashboardRenderer()
        >>> layout = renderer.render(orchestrator.state)
    """

    def __init__(self, console: Console | None = None, max_rows: int = 10):
        """
        Initialize the dashboard renderer.

        Args:
            console: Rich console for rendering. If None, creates a new one.
            max_rows: Maximum rows shown per list section
        """
        self.console = console or Console()
        self.max_rows = max_rows

    def render(self, state: DashboardState) -> Layout:
        """
        Render the full dashboard layout.

        Args:
            state: Current dashboard state

        Returns:
            Rich Layout containing all dashboard panels
        """
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=4),
            Layout(name="stats", size=5),
            Layout(name="body"),
        )
        layout["body"].split_row(
            Layout(name="left", ratio=1),
            Layout(name="right", ratio=2),
        )
        layout["left"].split_column(
            Layout(name="groups"),
            Layout(name="issues"),
        )
        layout["right"].split_column(
            Layout(name="notifications"),
            Layout(name="events"),
        )

        snapshot = state.snapshot
        layout["header"].update(self._render_header(state))
        layout["stats"].update(self._render_stats(snapshot))
        layout["groups"].update(self._render_groups(snapshot))
        layout["issues"].update(self._render_issues(snapshot))
        layout["notifications"].update(self._render_notifications(snapshot))
        layout["events"].update(self._render_events(snapshot))
        return layout

    def render_static(self, state: DashboardState) -> Group:
        """
        Render the dashboard as stacked panels for one-shot printing.

        Unlike render(), the result does not need a fixed screen height.
        """
        snapshot = state.snapshot
        return Group(
            self._render_header(state),
            self._render_stats(snapshot),
            self._render_groups(snapshot),
            self._render_issues(snapshot),
            self._render_notifications(snapshot),
            self._render_events(snapshot),
        )

    def _render_header(self, state: DashboardState) -> Panel:
        """Render the header with sync phase and the aggregate failure banner."""
        color = self._get_phase_color(state.phase)
        status_text = Text()
        status_text.append("Sync: ", style="bold")
        status_text.append(state.phase.value.replace("_", " ").upper(), style=f"bold {color}")
        if state.from_cache:
            status_text.append("  (cached)", style="dim")
        if state.snapshot is not None and state.snapshot.synced_at is not None:
            synced = state.snapshot.synced_at.astimezone().strftime("%H:%M:%S")
            status_text.append(f"  last synced {synced}", style="dim")

        lines: list[Text] = [Text("CLASSBOARD", style="bold cyan", justify="center"), status_text]
        if state.failed:
            lines.append(
                Text(
                    "Unable to reach the school server. Showing the last known data.",
                    style="bold red",
                )
            )

        return Panel(Group(*lines), border_style="red" if state.failed else color, padding=(0, 1))

    def _stat_card(self, name: str, value: int | None, color: str) -> Panel:
        shown = "…" if value is None else f"{value:,}"
        return Panel(
            Text(shown, style=f"bold {color}", justify="center"),
            title=name,
            border_style=color,
            padding=(0, 2),
        )

    def _render_stats(self, snapshot: AggregateSnapshot | None) -> Columns:
        """Render the stat cards."""
        cards = [
            self._stat_card("Teachers", snapshot.teacher_count if snapshot else None, "blue"),
            self._stat_card("Students", snapshot.person_count if snapshot else None, "green"),
            self._stat_card("Classes", snapshot.group_count if snapshot else None, "yellow"),
            self._stat_card(
                "Published Results",
                snapshot.published_result_count if snapshot else None,
                "magenta",
            ),
        ]
        return Columns(cards, expand=True, equal=True)

    def _no_data(self) -> Text:
        return Text(NO_DATA, style="dim italic", justify="center")

    def _render_groups(self, snapshot: AggregateSnapshot | None) -> Panel:
        """Render students per class."""
        if snapshot is None or not snapshot.group_tally:
            content: RenderableType = self._no_data()
        else:
            table = Table.grid(padding=(0, 2))
            table.add_column()
            table.add_column(justify="right", style="bold")
            for group, count in sorted(snapshot.group_tally.items()):
                table.add_row(group, str(count))
            content = table

        return Panel(content, title="[bold]Classes[/bold]", border_style="yellow", padding=(0, 1))

    def _render_issues(self, snapshot: AggregateSnapshot | None) -> Panel:
        """Render student data issues."""
        title = "[bold]Data Issues[/bold]"
        if snapshot is None or not snapshot.issues:
            return Panel(self._no_data(), title=title, border_style="dim", padding=(0, 1))

        students = len({issue.identity for issue in snapshot.issues})
        table = Table.grid(padding=(0, 1))
        table.add_column(style="dim")
        table.add_column()
        for issue in snapshot.issues[: self.max_rows]:
            table.add_row(issue.display_name or issue.identity, PROBLEM_LABELS[issue.problem])

        summary = Text(
            f"{len(snapshot.issues)} issues across {students} students", style="bold red"
        )
        return Panel(Group(summary, table), title=title, border_style="red", padding=(0, 1))

    def _render_notifications(self, snapshot: AggregateSnapshot | None) -> Panel:
        """Render notifications, newest first, coloured by variant."""
        if snapshot is None or not snapshot.notifications:
            content: RenderableType = self._no_data()
            title = "[bold]Notifications[/bold]"
        else:
            table = Table.grid(padding=(0, 1))
            table.add_column(width=1)
            table.add_column(style="dim", no_wrap=True)
            table.add_column()
            for view in snapshot.notifications[: self.max_rows]:
                style = VARIANT_STYLES.get(view.variant, "")
                marker = Text("•" if not view.read else " ", style=f"bold {style}")
                body = Text(view.title or "(untitled)", style=f"bold {style}" if not view.read else style)
                if view.message:
                    body.append(f"  {view.message}", style="" if not view.read else "dim")
                table.add_row(marker, view.display_time, body)
            content = table
            title = f"[bold]Notifications[/bold] ({snapshot.unread_count} unread)"

        return Panel(content, title=title, border_style="blue", padding=(0, 1))

    def _render_events(self, snapshot: AggregateSnapshot | None) -> Panel:
        """Render upcoming events."""
        if snapshot is None or not snapshot.events:
            content: RenderableType = self._no_data()
        else:
            table = Table.grid(padding=(0, 2))
            table.add_column(style="cyan", no_wrap=True)
            table.add_column()
            for event in snapshot.events[: self.max_rows]:
                when = event.event_date.isoformat() if event.event_date else "TBD"
                text = Text(event.title or "(untitled)", style="bold")
                if event.for_teachers:
                    text.append("  [teachers]", style="dim")
                if event.description:
                    text.append(f"\n{event.description}", style="dim")
                table.add_row(when, text)
            content = table

        return Panel(content, title="[bold]Upcoming Events[/bold]", border_style="cyan", padding=(0, 1))

    def _get_phase_color(self, phase: SyncPhase) -> str:
        """Get color for sync phase."""
        color_map = {
            SyncPhase.IDLE: "white",
            SyncPhase.CACHE_HYDRATED: "blue",
            SyncPhase.FETCHING: "blue",
            SyncPhase.SUCCEEDED: "green",
            SyncPhase.PARTIALLY_FAILED: "yellow",
            SyncPhase.FAILED: "red",
            SyncPhase.ABORTED: "yellow",
        }
        return color_map.get(phase, "white")

    def start_live(self, state: DashboardState) -> Live:
        """
        Start a Live display that auto-refreshes.

        Args:
            state: Initial dashboard state

        Returns:
            Live context manager for updating the display
        """
        return Live(
            self.render(state),
            console=self.console,
            refresh_per_second=2,
            screen=False,
        )
