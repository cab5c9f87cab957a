"""
Terminal dashboard for classboard.

Renders orchestrator state with Rich, either as a live view or as a
one-shot summary.
"""

from classboard.dashboard.renderer import DashboardRenderer

__all__ = ["DashboardRenderer"]
