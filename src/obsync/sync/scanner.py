"""Discover local edits by comparing the vault against a snapshot.

Hosts without a file watcher call this at startup (or before a push) to
catch edits made while nothing was listening.
"""

from __future__ import annotations

import logging

from obsync.file_handler import LocalVault
from obsync.sync.hashing import content_hash
from obsync.sync.models import Modification, ModificationKind, RemoteSnapshot

logger = logging.getLogger(__name__)


def scan_local_changes(
    vault: LocalVault, snapshot: RemoteSnapshot
) -> list[Modification]:
    """Return the modifications that would bring the remote to the vault.

    - a local file absent from the snapshot is a create,
    - a local file whose hash differs from the snapshot is an update,
    - a snapshot path with no local file is a delete.
    """
    changes: list[Modification] = []
    local_paths = vault.list_files()

    for path in local_paths:
        known_hash = snapshot.hash_for(path)
        if known_hash is None:
            changes.append(
                Modification(path=path, kind=ModificationKind.CREATE)
            )
            continue
        content = vault.read_file(path)
        if content is not None and content_hash(content) != known_hash:
            changes.append(
                Modification(path=path, kind=ModificationKind.UPDATE)
            )

    for path in sorted(snapshot.paths() - set(local_paths)):
        if vault.ignore.intersection(path.split("/")):
            continue
        changes.append(Modification(path=path, kind=ModificationKind.DELETE))

    logger.info("Scan found %d local change(s)", len(changes))
    return changes
