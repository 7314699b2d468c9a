"""Commit pipeline: turn a captured batch into one remote commit.

Steps, in order:

1. Hash the current local content of every create/update and drop the
   entries that already match the snapshot (no-op suppression).  Deletes
   of paths the snapshot does not know are dropped as well.
2. Upload surviving contents as blobs; deletes become tombstones.
3. If nothing survived, return the snapshot unchanged without touching
   the network.
4. Re-read the branch reference, build a tree on top of it, create the
   commit and advance the reference.
5. Read the committed tree back as the new snapshot.

The reference update is the last mutating call, so a failure anywhere
before it leaves the remote history untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from obsync.core.result import Err, Ok, Result
from obsync.sync.hashing import content_hash
from obsync.sync.models import (
    CommitBatch,
    ModificationKind,
    RemoteSnapshot,
    StagedEntry,
    SyncError,
)
from obsync.sync.remote import RemoteStore

logger = logging.getLogger(__name__)

ReadLocal = Callable[[str], Awaitable[str | None]]

# Paths listed verbatim in a commit message before summarising
MESSAGE_PATH_LIMIT = 3


@dataclass
class CommitOutcome:
    """Result of a successful run.

    Attributes:
        reference: Branch head after the run.
        snapshot: Snapshot to install.
        paths: Paths that made it into the commit.
        message: Commit message, empty for a no-op.
        committed: False when suppression left nothing to commit.
        diverged: True if the branch had moved away from the snapshot.
    """

    reference: str
    snapshot: RemoteSnapshot
    paths: list[str] = field(default_factory=list)
    message: str = ""
    committed: bool = False
    diverged: bool = False


def summarize_paths(paths: list[str]) -> str:
    """Build a commit message from the affected paths.

    >>> summarize_paths(["a", "b", "c", "d"])
    'updated a, b, c and 1 more'
    """
    if not paths:
        return "no files"
    shown = ", ".join(paths[:MESSAGE_PATH_LIMIT])
    extra = len(paths) - MESSAGE_PATH_LIMIT
    if extra > 0:
        return f"updated {shown} and {extra} more"
    return f"updated {shown}"


class CommitPipeline:
    """Run one batch against the remote store.

    Args:
        store: Remote object store to write to.
    """

    def __init__(self, store: RemoteStore) -> None:
        self.store = store

    async def run_once(
        self,
        batch: CommitBatch,
        read_local: ReadLocal,
        snapshot: RemoteSnapshot,
    ) -> Result[CommitOutcome, SyncError]:
        """Commit *batch* on top of the current branch head.

        Args:
            batch: Modifications captured from the tracker.
            read_local: Returns a path's current local content, or
                ``None`` if the file no longer exists.
            snapshot: Last-known remote state, used for suppression.

        Returns:
            ``Ok(CommitOutcome)`` or ``Err(SyncError)`` naming the failed
            stage.
        """
        try:
            survivors = await self._suppress(batch, read_local, snapshot)
        except OSError as exc:
            logger.error("Reading local content failed: %s", exc)
            return Err(SyncError(stage="read_local", message=str(exc)))

        if not survivors:
            logger.info(
                "Nothing to commit: %d modification(s) were no-ops",
                len(batch.modifications),
            )
            return Ok(
                CommitOutcome(
                    reference=snapshot.reference, snapshot=snapshot
                )
            )

        stage = "create_blob"
        try:
            staged: list[StagedEntry] = []
            for path, content in survivors:
                if content is None:
                    staged.append(StagedEntry(path=path))
                    continue
                blob_hash = await self.store.create_blob(content)
                staged.append(StagedEntry(path=path, hash=blob_hash))

            stage = "get_reference"
            head = await self.store.get_reference()
            diverged = bool(snapshot.reference) and head != snapshot.reference
            if diverged:
                logger.warning(
                    "Remote branch moved from %s to %s outside this session; "
                    "committing on top of %s",
                    snapshot.reference[:7],
                    head[:7],
                    head[:7],
                )

            paths = [entry.path for entry in staged]
            message = summarize_paths(paths)

            stage = "create_tree"
            tree_id = await self.store.create_tree(head, staged)
            stage = "create_commit"
            commit_id = await self.store.create_commit(
                message, tree_id, head
            )
            stage = "update_reference"
            await self.store.update_reference(commit_id)
        except Exception as exc:
            logger.error("Commit failed at %s: %s", stage, exc)
            return Err(SyncError(stage=stage, message=str(exc)))

        logger.info("Committed %s: %s", commit_id[:7], message)
        new_snapshot = await self._read_back(commit_id, snapshot, staged)
        return Ok(
            CommitOutcome(
                reference=commit_id,
                snapshot=new_snapshot,
                paths=paths,
                message=message,
                committed=True,
                diverged=diverged,
            )
        )

    async def _suppress(
        self,
        batch: CommitBatch,
        read_local: ReadLocal,
        snapshot: RemoteSnapshot,
    ) -> list[tuple[str, str | None]]:
        """Return ``(path, content)`` pairs that really change the remote.

        ``content`` is ``None`` for deletes.
        """
        survivors: list[tuple[str, str | None]] = []
        for modification in batch.modifications:
            path = modification.path
            known_hash = snapshot.hash_for(path)

            if modification.kind == ModificationKind.DELETE:
                if known_hash is None:
                    logger.debug("Skipping delete of untracked %s", path)
                    continue
                survivors.append((path, None))
                continue

            content = await read_local(path)
            if content is None:
                logger.warning(
                    "Skipping %s of %s: file no longer exists locally",
                    modification.kind.value,
                    path,
                )
                continue
            if content_hash(content) == known_hash:
                logger.debug("Skipping unchanged %s", path)
                continue
            survivors.append((path, content))
        return survivors

    async def _read_back(
        self,
        commit_id: str,
        snapshot: RemoteSnapshot,
        staged: list[StagedEntry],
    ) -> RemoteSnapshot:
        """Fetch the committed tree, or derive it if the read fails.

        The reference has already moved at this point, so a failed read
        must not turn the run into an error.
        """
        try:
            tree = await self.store.get_tree(commit_id)
        except Exception as exc:
            logger.warning(
                "Could not read back tree of %s (%s); deriving snapshot locally",
                commit_id[:7],
                exc,
            )
            return snapshot.layered(commit_id, staged)
        return RemoteSnapshot(reference=commit_id, tree=tree)
