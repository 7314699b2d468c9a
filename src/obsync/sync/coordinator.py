"""Sync coordinator: the facade a host drives.

The ``SyncCoordinator`` owns the remote snapshot and the change tracker
for one vault/repository pairing and exposes four operations:

- ``pull()`` -- fetch what changed remotely and apply it to the vault.
- ``record_change()`` -- note a local edit; never commits by itself.
- ``push()`` -- commit everything recorded so far through the queue.
- ``scan()`` -- record edits found by comparing the vault to the snapshot.

Every public operation returns ``Ok``/``Err`` rather than raising.  The
snapshot is guarded by an ``asyncio.Lock`` held across a pull's whole
read-fetch-apply-replace sequence and across each commit run, so pulls
and pushes never interleave on it.  Local write failures during a pull
are reported per file; the snapshot still advances because the remote
really did change.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable

from obsync.core.async_utils import run_sync
from obsync.core.result import Err, Ok, Result
from obsync.file_handler import LocalVault
from obsync.sync.models import (
    ChangedFile,
    CommitBatch,
    FileResult,
    ModificationKind,
    PullReport,
    PushReport,
    RemoteSnapshot,
    SyncAction,
    SyncError,
)
from obsync.sync.pipeline import CommitOutcome, CommitPipeline
from obsync.sync.puller import PullEngine
from obsync.sync.queue import CommitQueue
from obsync.sync.remote import RemoteStore
from obsync.sync.scanner import scan_local_changes
from obsync.sync.tracker import ChangeTracker

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[RemoteSnapshot], None]


class SyncCoordinator:
    """Drive pulls and pushes for one vault.

    Args:
        store: Remote object store for the repository.
        vault: Local vault adapter.
        snapshot: Last-known remote state (empty on first run).
        on_snapshot: Called with every installed snapshot, typically to
            persist it.  Exceptions it raises are logged, not propagated.
    """

    def __init__(
        self,
        store: RemoteStore,
        vault: LocalVault,
        snapshot: RemoteSnapshot | None = None,
        on_snapshot: SnapshotListener | None = None,
    ) -> None:
        self.store = store
        self.vault = vault
        self.tracker = ChangeTracker()
        self.puller = PullEngine(store)
        self.pipeline = CommitPipeline(store)
        self.queue = CommitQueue(self._run_batch)

        self._snapshot = snapshot or RemoteSnapshot()
        self._lock = asyncio.Lock()
        self._on_snapshot = on_snapshot

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> RemoteSnapshot:
        return self._snapshot

    @property
    def reference(self) -> str:
        return self._snapshot.reference

    @property
    def tree(self) -> dict[str, dict]:
        """The snapshot tree in its persisted ``{path: {hash, url}}`` form."""
        return self._snapshot.to_tree_state()

    def export_state(self) -> dict:
        """Return the reference/tree pair for host persistence."""
        return {"reference": self.reference, "tree": self.tree}

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------

    async def pull(self) -> Result[PullReport, SyncError]:
        """Fetch remote changes and apply them to the vault."""
        started_at = _now()
        async with self._lock:
            previous = self._snapshot
            try:
                outcome = await self.puller.pull(previous)
            except Exception as exc:
                logger.error("Pull failed: %s", exc)
                return Err(SyncError(stage="pull", message=str(exc)))

            results = list(outcome.failures)
            for changed in outcome.changed_files:
                results.append(await self._apply(changed))

            self._install(outcome.snapshot)

        errors = [r for r in results if not r.success]
        if errors:
            logger.warning(
                "Pull finished with %d error(s) out of %d file(s)",
                len(errors),
                len(results),
            )
        return Ok(
            PullReport(
                reference=outcome.snapshot.reference,
                previous_reference=previous.reference,
                results=results,
                started_at=started_at,
                completed_at=_now(),
            )
        )

    async def _apply(self, changed: ChangedFile) -> FileResult:
        """Write one pulled file (or tombstone) to the vault."""
        path = changed.path
        action = SyncAction.DELETE_LOCAL
        try:
            if changed.deleted:
                await run_sync(self.vault.delete_file, path)
            elif await run_sync(self.vault.file_exists, path):
                action = SyncAction.WRITE_LOCAL
                await run_sync(self.vault.write_file, path, changed.content)
            else:
                action = SyncAction.CREATE_LOCAL
                await run_sync(self.vault.create_file, path, changed.content)
        except (OSError, ValueError) as exc:
            logger.error("Failed to apply %s locally: %s", path, exc)
            return FileResult(
                path=path, action=action, success=False, error=str(exc)
            )
        return FileResult(path=path, action=action, success=True)

    # ------------------------------------------------------------------
    # Local changes
    # ------------------------------------------------------------------

    def record_change(
        self,
        path: str,
        kind: ModificationKind | str,
        previous_path: str | None = None,
    ) -> Result[None, SyncError]:
        """Record a local edit for the next push.

        ``kind`` is ``create``, ``update``, ``delete`` or ``rename`` (which
        needs *previous_path*).
        """
        try:
            self.tracker.record(path, kind, previous_path)
        except ValueError as exc:
            return Err(SyncError(stage="record_change", message=str(exc)))
        return Ok(None)

    async def scan(self) -> Result[int, SyncError]:
        """Record every difference between the vault and the snapshot.

        Returns:
            Number of modifications recorded.
        """
        try:
            changes = await run_sync(
                scan_local_changes, self.vault, self._snapshot
            )
        except (OSError, ValueError) as exc:
            logger.error("Local scan failed: %s", exc)
            return Err(SyncError(stage="scan", message=str(exc)))
        for change in changes:
            self.tracker.record(change.path, change.kind)
        return Ok(len(changes))

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    async def push(self) -> Result[PushReport, SyncError]:
        """Commit everything recorded since the last push.

        Drained intents are not restored if the commit fails.
        """
        started_at = _now()
        batch = CommitBatch.from_changes(self.tracker.drain())
        if batch.is_empty:
            return Ok(
                PushReport(
                    reference=self.reference,
                    previous_reference=self.reference,
                    started_at=started_at,
                    completed_at=_now(),
                )
            )

        previous_reference = self.reference
        result = await self.queue.push(batch)
        match result:
            case Ok(CommitOutcome() as outcome):
                return Ok(
                    PushReport(
                        reference=outcome.reference,
                        previous_reference=previous_reference,
                        paths=outcome.paths,
                        message=outcome.message,
                        committed=outcome.committed,
                        diverged=outcome.diverged,
                        started_at=started_at,
                        completed_at=_now(),
                    )
                )
            case _:
                logger.error(
                    "Push of %d path(s) failed: %s",
                    len(batch.modifications),
                    result.error,
                )
                return result

    async def _run_batch(
        self, batch: CommitBatch
    ) -> Result[CommitOutcome, SyncError]:
        """Queue runner: one pipeline run against the current snapshot."""
        async with self._lock:
            result = await self.pipeline.run_once(
                batch, self._read_local, self._snapshot
            )
            if isinstance(result, Ok) and result.value.committed:
                self._install(result.value.snapshot)
        return result

    async def _read_local(self, path: str) -> str | None:
        try:
            return await run_sync(self.vault.read_file, path)
        except ValueError as exc:
            logger.warning("Ignoring invalid path %s: %s", path, exc)
            return None

    # ------------------------------------------------------------------
    # Snapshot management
    # ------------------------------------------------------------------

    async def reset(self) -> None:
        """Forget the snapshot; the next pull re-fetches every file."""
        async with self._lock:
            self._install(RemoteSnapshot())

    def _install(self, snapshot: RemoteSnapshot) -> None:
        self._snapshot = snapshot
        if self._on_snapshot is None:
            return
        try:
            self._on_snapshot(snapshot)
        except Exception:
            logger.exception("Snapshot listener failed")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
