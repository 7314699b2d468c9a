"""Shared pytest fixtures for obsync tests."""

from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path

import pytest

from obsync.config import Config
from obsync.core.client import NotFoundError
from obsync.file_handler import LocalVault
from obsync.sync.coordinator import SyncCoordinator
from obsync.sync.hashing import content_hash
from obsync.sync.models import StagedEntry, TreeEntry

MUTATIONS = frozenset(
    {"create_blob", "create_tree", "create_commit", "update_reference"}
)


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live GitHub repository",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a live GitHub repository"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


class FakeRemoteStore:
    """In-memory ``RemoteStore`` that behaves like a single-branch git repo.

    Every call is appended to ``calls``.  Set ``fail`` to make a method
    raise, ``missing`` to make content fetches 404, or ``gate`` to park
    ``create_blob`` until the event is set.
    """

    def __init__(self) -> None:
        self.blobs: dict[str, str] = {}
        self.trees: dict[str, dict[str, str]] = {}
        self.commits: dict[str, tuple[str, str, str]] = {}
        self.head = ""
        self.calls: list[str] = []
        self.fail: dict[str, Exception] = {}
        self.missing: set[str] = set()
        self.gate: asyncio.Event | None = None
        self._counter = 0

    # -- helpers -------------------------------------------------------

    def _id(self, kind: str) -> str:
        self._counter += 1
        return hashlib.sha1(f"{kind}{self._counter}".encode()).hexdigest()

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail:
            raise self.fail[name]

    @property
    def mutations(self) -> list[str]:
        return [c for c in self.calls if c in MUTATIONS]

    def seed(self, files: dict[str, str], message: str = "seed") -> str:
        """Commit *files* as the whole tree and move the head, unrecorded."""
        tree = {}
        for path, content in files.items():
            blob_hash = content_hash(content)
            self.blobs[blob_hash] = content
            tree[path] = blob_hash
        tree_id = self._id("tree")
        self.trees[tree_id] = tree
        commit_id = self._id("commit")
        self.commits[commit_id] = (message, tree_id, self.head)
        self.head = commit_id
        return commit_id

    def files_at(self, commit_id: str) -> dict[str, str]:
        _, tree_id, _ = self.commits[commit_id]
        return {
            path: self.blobs[blob_hash]
            for path, blob_hash in self.trees[tree_id].items()
        }

    def parent_of(self, commit_id: str) -> str:
        return self.commits[commit_id][2]

    def message_of(self, commit_id: str) -> str:
        return self.commits[commit_id][0]

    # -- RemoteStore ---------------------------------------------------

    async def get_reference(self) -> str:
        self._record("get_reference")
        return self.head

    async def get_tree(self, commit_id: str) -> dict[str, TreeEntry]:
        self._record("get_tree")
        if commit_id not in self.commits:
            return {}
        _, tree_id, _ = self.commits[commit_id]
        return {
            path: TreeEntry(path=path, hash=blob_hash)
            for path, blob_hash in self.trees[tree_id].items()
        }

    async def get_content(
        self, path: str, ref: str | None = None
    ) -> tuple[str, str]:
        self._record("get_content")
        if path in self.missing:
            raise NotFoundError(f"{path} not found", 404)
        _, tree_id, _ = self.commits[ref or self.head]
        blob_hash = self.trees[tree_id][path]
        return self.blobs[blob_hash], blob_hash

    async def create_blob(self, content: str) -> str:
        if self.gate is not None:
            await self.gate.wait()
        self._record("create_blob")
        blob_hash = content_hash(content)
        self.blobs[blob_hash] = content
        return blob_hash

    async def create_tree(
        self, base_commit_id: str, entries: list[StagedEntry]
    ) -> str:
        self._record("create_tree")
        tree: dict[str, str] = {}
        if base_commit_id in self.commits:
            tree = dict(self.trees[self.commits[base_commit_id][1]])
        for entry in entries:
            if entry.hash is None:
                tree.pop(entry.path, None)
            else:
                tree[entry.path] = entry.hash
        tree_id = self._id("tree")
        self.trees[tree_id] = tree
        return tree_id

    async def create_commit(
        self, message: str, tree_id: str, parent_commit_id: str
    ) -> str:
        self._record("create_commit")
        commit_id = self._id("commit")
        self.commits[commit_id] = (message, tree_id, parent_commit_id)
        return commit_id

    async def update_reference(self, commit_id: str) -> bool:
        self._record("update_reference")
        self.head = commit_id
        return True


@pytest.fixture
def mock_config(tmp_path: Path) -> Config:
    """Create a Config instance pointing at a temporary vault."""
    return Config(
        owner="octo",
        repo="notes",
        credential="ghp_testtoken",
        vault_root=str(tmp_path / "vault"),
        state_file=str(tmp_path / "vault" / ".obsync" / "state.json"),
        insecure=False,
    )


@pytest.fixture
def fake_store() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def vault(tmp_path: Path) -> LocalVault:
    root = tmp_path / "vault"
    root.mkdir()
    return LocalVault(root)


@pytest.fixture
def coordinator(fake_store, vault) -> SyncCoordinator:
    return SyncCoordinator(fake_store, vault)
