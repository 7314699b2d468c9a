"""Async remote object-store interface consumed by the sync engine.

``RemoteStore`` is the contract; ``GitHubRemoteStore`` satisfies it by
running the blocking ``GitHubClient`` calls in worker threads, bounded by
the shared request semaphore.  Tests substitute an in-memory store.

Every method is a suspension point; none of them touches engine state.
"""

from __future__ import annotations

from typing import Protocol

from obsync.core.async_utils import run_sync_limited
from obsync.core.client import GitHubClient
from obsync.sync.models import StagedEntry, TreeEntry


class RemoteStore(Protocol):
    async def get_reference(self) -> str: ...

    async def get_tree(self, commit_id: str) -> dict[str, TreeEntry]: ...

    async def get_content(
        self, path: str, ref: str | None = None
    ) -> tuple[str, str]: ...

    async def create_blob(self, content: str) -> str: ...

    async def create_tree(
        self, base_commit_id: str, entries: list[StagedEntry]
    ) -> str: ...

    async def create_commit(
        self, message: str, tree_id: str, parent_commit_id: str
    ) -> str: ...

    async def update_reference(self, commit_id: str) -> bool: ...


class GitHubRemoteStore:
    """``RemoteStore`` backed by a ``GitHubClient``.

    Args:
        client: Configured client for the target repository.
    """

    def __init__(self, client: GitHubClient) -> None:
        self.client = client

    async def get_reference(self) -> str:
        return await run_sync_limited(self.client.get_reference)

    async def get_tree(self, commit_id: str) -> dict[str, TreeEntry]:
        listing = await run_sync_limited(self.client.get_tree, commit_id)
        return {
            path: TreeEntry(path=path, hash=item["hash"], url=item.get("url"))
            for path, item in listing.items()
        }

    async def get_content(
        self, path: str, ref: str | None = None
    ) -> tuple[str, str]:
        return await run_sync_limited(self.client.get_content, path, ref)

    async def create_blob(self, content: str) -> str:
        return await run_sync_limited(self.client.create_blob, content)

    async def create_tree(
        self, base_commit_id: str, entries: list[StagedEntry]
    ) -> str:
        payload = [{"path": e.path, "sha": e.hash} for e in entries]
        return await run_sync_limited(
            self.client.create_tree, base_commit_id, payload
        )

    async def create_commit(
        self, message: str, tree_id: str, parent_commit_id: str
    ) -> str:
        return await run_sync_limited(
            self.client.create_commit, message, tree_id, parent_commit_id
        )

    async def update_reference(self, commit_id: str) -> bool:
        return await run_sync_limited(
            self.client.update_reference, commit_id
        )
