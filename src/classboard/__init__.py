"""
Classboard - school dashboard synchronization engine.

Reconciles the events, staff, student, notification and result collections
of a school backend into a single cached view for terminal dashboards.
"""

__version__ = "0.4.0"

# Re-export core models for convenience
from classboard.core.config.models import ClassboardConfig
from classboard.core.dashboard.models import AggregateSnapshot, DashboardState, NotificationView

__all__ = [
    "AggregateSnapshot",
    "ClassboardConfig",
    "DashboardState",
    "NotificationView",
    "__version__",
]
