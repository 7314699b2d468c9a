"""Remote tree diffing and selective blob fetching.

``PullEngine.pull`` compares the current remote tree against the
last-known snapshot and fetches only the blobs whose hash changed:

1. Read the branch reference and its flattened tree.
2. Every path whose hash differs from the snapshot (or is new) is fetched
   at that exact reference, concurrently.
3. Every snapshot path missing from the new tree becomes a tombstone.
4. A path whose fetch fails is reported and skipped; the new snapshot
   keeps its last-known entry so the next pull tries again.

A failure reading the reference or the tree aborts the whole pull and
propagates to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from obsync.core.async_utils import gather_limited
from obsync.sync.models import (
    ChangedFile,
    FileResult,
    RemoteSnapshot,
    SyncAction,
    TreeEntry,
)
from obsync.sync.remote import RemoteStore

logger = logging.getLogger(__name__)


@dataclass
class PullOutcome:
    """What a pull found.

    Attributes:
        changed_files: Fetched blobs and tombstones, in tree order.
        snapshot: Snapshot to install once the files are applied.
        failures: Paths that could not be fetched.
    """

    changed_files: list[ChangedFile]
    snapshot: RemoteSnapshot
    failures: list[FileResult] = field(default_factory=list)


class PullEngine:
    """Diff a remote tree against a snapshot and fetch what changed.

    Args:
        store: Remote object store to read from.
    """

    def __init__(self, store: RemoteStore) -> None:
        self.store = store

    async def pull(self, last_known: RemoteSnapshot) -> PullOutcome:
        reference = await self.store.get_reference()
        remote_tree = await self.store.get_tree(reference)

        changed = [
            entry
            for path, entry in remote_tree.items()
            if last_known.hash_for(path) != entry.hash
        ]
        removed = sorted(last_known.paths() - set(remote_tree))

        logger.info(
            "Pull %s: %d changed, %d removed (last known %s)",
            reference[:7],
            len(changed),
            len(removed),
            last_known.reference[:7] or "(none)",
        )

        fetched = await gather_limited(
            [self.store.get_content(e.path, reference) for e in changed]
        )

        changed_files: list[ChangedFile] = []
        failures: list[FileResult] = []
        tree: dict[str, TreeEntry] = dict(remote_tree)

        for entry, result in zip(changed, fetched):
            if isinstance(result, BaseException):
                logger.warning(
                    "Skipping %s: fetch failed: %s", entry.path, result
                )
                failures.append(
                    FileResult(
                        path=entry.path,
                        action=SyncAction.SKIP,
                        success=False,
                        error=str(result),
                    )
                )
                previous = last_known.tree.get(entry.path)
                if previous is None:
                    tree.pop(entry.path, None)
                else:
                    tree[entry.path] = previous
                continue

            content, blob_hash = result
            changed_files.append(
                ChangedFile(path=entry.path, content=content, hash=blob_hash)
            )

        for path in removed:
            changed_files.append(ChangedFile(path=path, deleted=True))

        snapshot = RemoteSnapshot(reference=reference, tree=tree)
        return PullOutcome(
            changed_files=changed_files,
            snapshot=snapshot,
            failures=failures,
        )
