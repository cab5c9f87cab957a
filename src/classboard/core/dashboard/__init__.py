"""
Dashboard data layer for classboard.

Provides a unified, cacheable view of the school backend by aggregating
five collections:
- Events (/api/events)
- Staff (/api/teachers)
- Students (/api/students)
- Notifications (/api/notifications)
- Results (/api/results, falling back to /results)

The dashboard layer consists of:
- Client (client.py) - async HTTP access with retries and path fallback
- Cache (cache.py) - session-scoped snapshot storage
- Sync layer (sync/) - fetch orchestration, parsing and polling
- Models (models.py) - Pydantic models for dashboard entities
"""

__all__ = []
