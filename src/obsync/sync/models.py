"""Pydantic models for the sync engine.

Defines the core data contracts used across all sync modules:

- ``TreeEntry``: One path in a remote tree and its blob hash.
- ``RemoteSnapshot``: The last-known remote reference and tree.
- ``ModificationKind`` / ``Modification``: A pending local intent.
- ``CommitBatch``: Modifications captured for a single commit run.
- ``StagedEntry``: A tree entry or tombstone ready to be committed.
- ``ChangedFile``: A pulled blob or tombstone to apply locally.
- ``SyncError``: Failure payload carried by ``Err``.
- ``SyncAction`` / ``FileResult``: Outcome for one path.
- ``PullReport`` / ``PushReport``: Aggregate results for a run.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class TreeEntry(BaseModel):
    """A single blob in a remote tree.

    Attributes:
        path: Repository-relative POSIX path.
        hash: Git blob SHA-1.
        url: API URL of the blob, when the remote reported one.
    """

    path: str
    hash: str
    url: str | None = None

    model_config = {"frozen": True}


class RemoteSnapshot(BaseModel):
    """Cached copy of the remote reference and its flattened tree.

    A snapshot is only ever replaced as a whole; use ``layered()`` to
    derive a new one.
    """

    reference: str = ""
    tree: dict[str, TreeEntry] = {}

    model_config = {"frozen": True}

    @classmethod
    def from_state(
        cls, reference: str, tree_state: dict[str, dict]
    ) -> RemoteSnapshot:
        """Build a snapshot from the persisted ``{path: {hash, url}}`` form."""
        tree = {
            path: TreeEntry(
                path=path, hash=item["hash"], url=item.get("url")
            )
            for path, item in tree_state.items()
        }
        return cls(reference=reference, tree=tree)

    def to_tree_state(self) -> dict[str, dict]:
        """Return the tree in its persisted ``{path: {hash, url}}`` form."""
        state: dict[str, dict] = {}
        for path, entry in self.tree.items():
            item = {"hash": entry.hash}
            if entry.url:
                item["url"] = entry.url
            state[path] = item
        return state

    def hash_for(self, path: str) -> str | None:
        """Return the last-known blob hash for *path*, or ``None``."""
        entry = self.tree.get(path)
        return entry.hash if entry else None

    def paths(self) -> set[str]:
        return set(self.tree)

    def layered(
        self, reference: str, entries: list[StagedEntry]
    ) -> RemoteSnapshot:
        """Return a new snapshot with *entries* applied on top of this tree."""
        tree = dict(self.tree)
        for entry in entries:
            if entry.hash is None:
                tree.pop(entry.path, None)
            else:
                tree[entry.path] = TreeEntry(
                    path=entry.path, hash=entry.hash
                )
        return RemoteSnapshot(reference=reference, tree=tree)


class ModificationKind(str, Enum):
    """Local intents the tracker records.  Renames desugar to two of these."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Modification(BaseModel):
    """The most recent local intent for one path."""

    path: str
    kind: ModificationKind

    model_config = {"frozen": True}


class CommitBatch(BaseModel):
    """Modifications captured from the tracker at the start of a run."""

    modifications: tuple[Modification, ...] = ()

    model_config = {"frozen": True}

    @classmethod
    def from_changes(cls, changes: dict[str, Modification]) -> CommitBatch:
        return cls(modifications=tuple(changes.values()))

    @property
    def paths(self) -> list[str]:
        return [m.path for m in self.modifications]

    @property
    def is_empty(self) -> bool:
        return not self.modifications


class StagedEntry(BaseModel):
    """A tree entry ready to commit.  ``hash=None`` marks a tombstone."""

    path: str
    hash: str | None = None

    model_config = {"frozen": True}

    @property
    def is_tombstone(self) -> bool:
        return self.hash is None


class ChangedFile(BaseModel):
    """A file the pull engine found changed remotely.

    Attributes:
        path: Repository-relative path.
        content: Decoded file content (empty for tombstones).
        hash: Blob hash at the pulled reference (``None`` for tombstones).
        deleted: True if the path disappeared from the remote tree.
    """

    path: str
    content: str = ""
    hash: str | None = None
    deleted: bool = False

    model_config = {"frozen": True}


class SyncError(BaseModel):
    """Why a pull or push failed.

    Attributes:
        stage: The step that failed (``get_reference``, ``create_blob``, ...).
        message: The underlying transport or API message.
    """

    stage: str
    message: str

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"{self.stage}: {self.message}"


class SyncAction(str, Enum):
    """What happened to one path during a pull or push."""

    SKIP = "skip"
    WRITE_LOCAL = "write_local"
    CREATE_LOCAL = "create_local"
    DELETE_LOCAL = "delete_local"
    PUSH = "push"
    DELETE_REMOTE = "delete_remote"


class FileResult(BaseModel):
    """Result of applying one path.

    Attributes:
        path: Repository-relative path.
        action: Sync action that was performed.
        success: Whether the operation succeeded.
        error: Error message if the operation failed.
    """

    path: str
    action: SyncAction
    success: bool
    error: str | None = None

    model_config = {"frozen": True}


class PullReport(BaseModel):
    """Aggregate report for a pull.

    Attributes:
        reference: Remote reference after the pull.
        previous_reference: Reference the local snapshot was at before.
        results: Per-path results (local writes and fetch failures).
        started_at: ISO 8601 timestamp when the pull started.
        completed_at: ISO 8601 timestamp when the pull completed.
    """

    reference: str
    previous_reference: str = ""
    results: list[FileResult] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def written(self) -> list[FileResult]:
        """Existing local files overwritten with remote content."""
        return [
            r
            for r in self.results
            if r.success and r.action == SyncAction.WRITE_LOCAL
        ]

    @property
    def created(self) -> list[FileResult]:
        return [
            r
            for r in self.results
            if r.success and r.action == SyncAction.CREATE_LOCAL
        ]

    @property
    def deleted(self) -> list[FileResult]:
        return [
            r
            for r in self.results
            if r.success and r.action == SyncAction.DELETE_LOCAL
        ]

    @property
    def errors(self) -> list[FileResult]:
        """Results where success is False."""
        return [r for r in self.results if not r.success]

    @property
    def changed(self) -> bool:
        return self.reference != self.previous_reference

    def summary(self) -> str:
        """Format a short human-readable summary of the pull.

        Returns:
            Multi-line summary string with counts by action.
        """
        lines = [
            f"Pulled {_short(self.reference)}"
            + (
                f" (was {_short(self.previous_reference)})"
                if self.changed
                else " (unchanged)"
            ),
            f"  Written: {len(self.written)}",
            f"  Created: {len(self.created)}",
            f"  Deleted: {len(self.deleted)}",
            f"  Errors:  {len(self.errors)}",
        ]
        return "\n".join(lines)


class PushReport(BaseModel):
    """Aggregate report for a push.

    Attributes:
        reference: Remote reference after the push.
        previous_reference: Snapshot reference before the push.
        paths: Paths included in the commit (after no-op suppression).
        message: Commit message (empty when nothing was committed).
        committed: False for a no-op push.
        diverged: True if the remote reference had moved since the last
            snapshot and the commit was built on top of it anyway.
        started_at: ISO 8601 timestamp when the push started.
        completed_at: ISO 8601 timestamp when the push completed.
    """

    reference: str
    previous_reference: str = ""
    paths: list[str] = []
    message: str = ""
    committed: bool = False
    diverged: bool = False
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}


def _short(reference: str) -> str:
    return reference[:7] if reference else "(none)"
