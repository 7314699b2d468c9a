"""Engine state persistence layer.

Manages the JSON file that carries the engine's state across restarts:
whether the vault has been initialised, the last-known remote reference
and tree, and the repository settings.  The coordinator round-trips the
``reference``/``tree`` pair without interpreting anything else.

Key design choices:

* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Dict-based state** -- state is a plain ``dict`` rather than a Pydantic
  model so hosts can add their own keys and have them preserved.
"""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from .models import RemoteSnapshot

STATE_VERSION = 1


def default_state() -> dict:
    """Return the state of a vault that has never synced."""
    return {
        "version": STATE_VERSION,
        "initialised": False,
        "reference": "",
        "tree": {},
        "settings": {
            "owner": "",
            "repo": "",
            "branch": "main",
        },
        "last_sync": None,
    }


class StateStore:
    """Load and save engine state in a single JSON file.

    Args:
        path: Path to the state file (typically ``.obsync/state.json``).
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> dict:
        """Load state from disk.

        Returns:
            The state dict, with defaults filled in for missing keys.  If
            the file does not exist the default state is returned.
        """
        state = default_state()
        if not self._path.exists():
            return state
        with open(self._path, encoding="utf-8") as fh:
            loaded = json.load(fh)
        settings = {**state["settings"], **loaded.get("settings", {})}
        state.update(loaded)
        state["settings"] = settings
        return state

    def save(self, state: dict) -> None:
        """Persist state to disk atomically.

        Writes to a temporary file in the same directory then atomically
        replaces the target.  Creates the parent directory if needed.

        The ``last_sync`` field is set to the current UTC ISO 8601
        timestamp before writing.

        Args:
            state: The state dict to persist.
        """
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        state["last_sync"] = datetime.now(timezone.utc).isoformat()

        fd, tmp_path = tempfile.mkstemp(dir=str(directory), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(state, fh, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            # Clean up temp file on any failure.
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise


# ----------------------------------------------------------------------
# Snapshot helpers
# ----------------------------------------------------------------------


def snapshot_from_state(state: dict) -> RemoteSnapshot:
    """Return the snapshot recorded in *state*."""
    return RemoteSnapshot.from_state(
        state.get("reference", ""), state.get("tree", {})
    )


def apply_snapshot(state: dict, snapshot: RemoteSnapshot) -> None:
    """Record *snapshot* in *state*.  Mutates *state* in place."""
    state["reference"] = snapshot.reference
    state["tree"] = snapshot.to_tree_state()


def is_initialised(state: dict) -> bool:
    """Return ``True`` if *state* holds a completed first pull."""
    return bool(state.get("initialised")) and bool(state.get("reference"))
