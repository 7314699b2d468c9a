"""Pending local change tracking.

The tracker keeps exactly one ``Modification`` per path: the latest intent
recorded since the last drain.  A create followed by a delete before the
next push collapses to a delete, two updates collapse to one.
"""

from __future__ import annotations

import logging
import threading

from .models import Modification, ModificationKind

logger = logging.getLogger(__name__)


class ChangeTracker:
    """Record local intents and hand them over to a commit run.

    Safe to call from several host threads; every method takes the same
    lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: dict[str, Modification] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_create(self, path: str) -> None:
        self._set(path, ModificationKind.CREATE)

    def record_update(self, path: str) -> None:
        self._set(path, ModificationKind.UPDATE)

    def record_delete(self, path: str) -> None:
        self._set(path, ModificationKind.DELETE)

    def record_rename(self, path: str, previous_path: str) -> None:
        """Record a rename as a create of *path* and a delete of *previous_path*."""
        with self._lock:
            self._pending[path] = Modification(
                path=path, kind=ModificationKind.CREATE
            )
            self._pending[previous_path] = Modification(
                path=previous_path, kind=ModificationKind.DELETE
            )
        logger.debug("Recorded rename %s -> %s", previous_path, path)

    def record(
        self,
        path: str,
        kind: ModificationKind | str,
        previous_path: str | None = None,
    ) -> None:
        """Record *kind* for *path*; ``kind="rename"`` needs *previous_path*.

        Raises:
            ValueError: If *kind* is unknown or a rename lacks
                *previous_path*.
        """
        if kind == "rename":
            if not previous_path:
                raise ValueError("rename requires previous_path")
            self.record_rename(path, previous_path)
            return
        self._set(path, ModificationKind(kind))

    # ------------------------------------------------------------------
    # Hand-over
    # ------------------------------------------------------------------

    def drain(self) -> dict[str, Modification]:
        """Return the pending set and clear it in one step."""
        with self._lock:
            pending, self._pending = self._pending, {}
        return pending

    def peek(self) -> dict[str, Modification]:
        """Return a copy of the pending set without clearing it."""
        with self._lock:
            return dict(self._pending)

    def _set(self, path: str, kind: ModificationKind) -> None:
        with self._lock:
            self._pending[path] = Modification(path=path, kind=kind)
        logger.debug("Recorded %s %s", kind.value, path)
