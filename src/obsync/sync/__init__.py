"""Local vault to GitHub repository sync engine.

Public API for keeping a directory of text files in step with one branch
of a GitHub repository through the git data API.

Architecture
------------
Change detection is **content-addressed**: every file is identified by its
git blob hash, and the engine keeps a snapshot of the last-known remote
reference and tree.  A pull compares the remote tree against that snapshot
and fetches only paths whose hash differs; a push hashes local files
against it and commits only what actually changed.

Modules:

- ``hashing``     -- ``content_hash``: git blob SHA-1 of text content.
- ``models``      -- ``RemoteSnapshot``, ``Modification``, ``CommitBatch``,
  ``PullReport``, ``PushReport`` and friends: core data contracts.
- ``remote``      -- ``RemoteStore`` protocol and ``GitHubRemoteStore``.
- ``tracker``     -- ``ChangeTracker``: last-intent-wins local edit log.
- ``puller``      -- ``PullEngine``: diff the remote tree and fetch changes.
- ``pipeline``    -- ``CommitPipeline``: blobs, tree, commit, reference.
- ``queue``       -- ``CommitQueue``: serialises pipeline runs.
- ``coordinator`` -- ``SyncCoordinator``: the facade hosts drive.
- ``scanner``     -- ``scan_local_changes``: vault versus snapshot.
- ``state``       -- ``StateStore``: load/save the JSON state file.
- ``reporter``    -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from obsync.core import Err, Ok
    from obsync.session import create_coordinator
    from obsync.sync import format_pull_report

    coordinator = create_coordinator(config)
    match await coordinator.pull():
        case Ok(report):
            print(format_pull_report(report))
        case Err(error):
            print(f"Pull failed: {error}")

    coordinator.record_change("notes/today.md", "update")
    await coordinator.push()
"""

from .coordinator import SyncCoordinator
from .hashing import content_hash
from .models import (
    CommitBatch,
    FileResult,
    Modification,
    ModificationKind,
    PullReport,
    PushReport,
    RemoteSnapshot,
    SyncAction,
    SyncError,
    TreeEntry,
)
from .remote import GitHubRemoteStore, RemoteStore
from .reporter import format_pull_report, format_push_report, report_to_json
from .state import StateStore
from .tracker import ChangeTracker

__all__ = [
    "ChangeTracker",
    "CommitBatch",
    "FileResult",
    "GitHubRemoteStore",
    "Modification",
    "ModificationKind",
    "PullReport",
    "PushReport",
    "RemoteSnapshot",
    "RemoteStore",
    "StateStore",
    "SyncAction",
    "SyncCoordinator",
    "SyncError",
    "TreeEntry",
    "content_hash",
    "format_pull_report",
    "format_push_report",
    "report_to_json",
]
