"""
Session-scoped storage and the dashboard snapshot cache.

SessionStore is a small key/value text store living under
<state_dir>/sessions/<session_id>/. A session is the terminal the CLI runs
in: its id defaults to the parent process id, so data survives restarts of
the command (a "reload") but not the end of the terminal session.

SnapshotCache keeps the last good AggregateSnapshot in that store so a
new process can render immediately while the live sync runs.
"""

import json
import logging
import os
import re
import shutil
import tempfile
from pathlib import Path

from pydantic import ValidationError

from classboard.core.config.loader import get_xdg_state_home
from classboard.core.config.models import ClassboardConfig
from classboard.core.dashboard.exceptions import StoreError
from classboard.core.dashboard.models import AggregateSnapshot

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "classboard.dashboard.snapshot"
RELOAD_MARKER_KEY = "classboard.dashboard.reloaded-once"

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")

# Session dirs whose reload marker could not be written
_UNPERSISTED_MARKERS: set[str] = set()


def default_session_id() -> str:
    """Session id of the calling terminal (the parent process id)."""
    return str(os.getppid())


def default_state_dir() -> Path:
    """Default root for session storage."""
    return get_xdg_state_home() / "classboard"


class SessionStore:
    """
    Key/value text storage scoped to one terminal session.

    Values are written atomically (temp file + rename), so a crash never
    leaves a half-written value behind.

    Example:
        >>> store = SessionStore(Path("/tmp/classboard"), "4242")
        >>> store.set_item("greeting", "hello")
        >>> store.get_item("greeting")
        'hello'
    """

    def __init__(self, root: Path, session_id: str) -> None:
        if not session_id:
            raise ValueError("session_id must not be empty")
        self.root = Path(root)
        self.session_id = _UNSAFE_KEY_CHARS.sub("_", session_id)
        self.session_dir = self.root / "sessions" / self.session_id

    @classmethod
    def from_config(cls, config: ClassboardConfig) -> "SessionStore":
        """Build the store for the configured (or current) session."""
        root = config.session.state_dir or default_state_dir()
        return cls(root, config.session.session_id or default_session_id())

    def _path(self, key: str) -> Path:
        return self.session_dir / _UNSAFE_KEY_CHARS.sub("_", key)

    def get_item(self, key: str) -> str | None:
        """
        Read a value.

        Returns:
            Stored text, or None if the key is not set

        Raises:
            StoreError: If the value exists but cannot be read
        """
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StoreError(f"Failed to read {key}: {e}", key=key) from e

    def set_item(self, key: str, value: str) -> None:
        """
        Write a value atomically.

        Raises:
            StoreError: If the value cannot be written
        """
        path = self._path(key)
        try:
            self.session_dir.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=self.session_dir, prefix=".item_", suffix=".tmp")
        except OSError as e:
            raise StoreError(f"Failed to write {key}: {e}", key=key) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(temp_path, path)
        except OSError as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise StoreError(f"Failed to write {key}: {e}", key=key) from e

    def remove_item(self, key: str) -> None:
        """Remove a value; missing keys are ignored."""
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StoreError(f"Failed to remove {key}: {e}", key=key) from e

    def keys(self) -> list[str]:
        """Stored keys, sorted."""
        if not self.session_dir.is_dir():
            return []
        return sorted(
            p.name for p in self.session_dir.iterdir() if p.is_file() and not p.name.startswith(".")
        )

    def clear(self) -> None:
        """Remove every value of this session, keeping the session directory."""
        _UNPERSISTED_MARKERS.discard(str(self.session_dir))
        for key in self.keys():
            self.remove_item(key)

    def end_session(self) -> None:
        """Delete all storage of this session."""
        _UNPERSISTED_MARKERS.discard(str(self.session_dir))
        try:
            shutil.rmtree(self.session_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StoreError(f"Failed to end session {self.session_id}: {e}") from e
        logger.info(f"Ended session {self.session_id}")


class SnapshotCache:
    """
    Best-effort cache of the last aggregate snapshot.

    read() never raises and write() never surfaces a failure: a broken
    cache only costs the warm start.
    """

    def __init__(self, store: SessionStore) -> None:
        self.store = store

    def read(self) -> AggregateSnapshot | None:
        """
        Load the cached snapshot.

        Returns:
            The snapshot, or None if absent or unreadable
        """
        try:
            raw = self.store.get_item(SNAPSHOT_KEY)
        except StoreError as e:
            logger.warning(f"Snapshot cache unreadable: {e}")
            return None
        if raw is None:
            return None

        try:
            return AggregateSnapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding corrupt snapshot cache: {e.error_count()} error(s)")
            return None

    def write(self, snapshot: AggregateSnapshot) -> bool:
        """
        Replace the cached snapshot.

        Returns:
            True if the snapshot was stored
        """
        try:
            self.store.set_item(SNAPSHOT_KEY, snapshot.model_dump_json())
        except (StoreError, ValueError, TypeError) as e:
            logger.warning(f"Failed to cache snapshot: {e}")
            return False
        return True

    def clear(self) -> None:
        """Forget the cached snapshot."""
        try:
            self.store.remove_item(SNAPSHOT_KEY)
        except StoreError as e:
            logger.warning(f"Failed to clear snapshot cache: {e}")

    def has_reloaded(self) -> bool:
        """Whether the one-time reload already happened in this session."""
        if self._marker_id in _UNPERSISTED_MARKERS:
            return True
        try:
            return self.store.get_item(RELOAD_MARKER_KEY) is not None
        except StoreError as e:
            logger.warning(f"Reload marker unreadable: {e}")
            return False

    def mark_reloaded(self) -> bool:
        """
        Record that the one-time reload happened in this session.

        A marker that cannot be written is still remembered for the rest of
        this process, so remounts never reload twice.

        Returns:
            True if the marker was persisted to the session store
        """
        try:
            self.store.set_item(RELOAD_MARKER_KEY, json.dumps(True))
        except StoreError as e:
            logger.warning(f"Failed to set reload marker, keeping it in memory: {e}")
            _UNPERSISTED_MARKERS.add(self._marker_id)
            return False
        return True

    @property
    def _marker_id(self) -> str:
        return str(self.store.session_dir)
