"""Session wiring shared by the CLI and the MCP server.

Turns a validated ``Config`` into a running ``SyncCoordinator`` whose
snapshot is persisted to the state file after every pull and push, and
adds the two vault-level operations that sit above the coordinator:
first-time initialisation and clearing the stored state.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .config import Config, load_config, validate_config
from .config_loader import discover_config_files, load_hierarchical_config
from .config_schema import LoggingConfig, build_config
from .core.async_utils import init_semaphore
from .core.client import GitHubClient
from .core.result import Ok, Result
from .file_handler import LocalVault
from .sync.coordinator import SyncCoordinator
from .sync.models import PullReport, RemoteSnapshot, SyncError
from .sync.remote import GitHubRemoteStore, RemoteStore
from .sync.state import (
    StateStore,
    apply_snapshot,
    is_initialised,
    snapshot_from_state,
)

logger = logging.getLogger(__name__)


def load_logging_config() -> LoggingConfig:
    """Return the ``logging`` section of the config files.

    Called before logging is set up, so it stays silent on success.
    """
    load_dotenv()
    if not discover_config_files():
        return LoggingConfig()
    return build_config(load_hierarchical_config()).logging


def resolve_config(overrides: dict[str, Any] | None = None) -> Config:
    """Load configuration from every source.

    Precedence: CLI overrides > env vars (.env loaded first) > YAML > defaults.

    Args:
        overrides: CLI values keyed like ``load_config()`` arguments.

    Raises:
        ValueError: If a required setting is missing or malformed.
    """
    # .env first so ${VAR} interpolation in YAML can see its values
    load_dotenv()

    yaml_fallbacks: dict[str, Any] | None = None
    config_files = discover_config_files()
    if config_files:
        unified = build_config(load_hierarchical_config())
        yaml_fallbacks = unified.fallbacks()
        logger.info("Configuration file: %s", config_files[0])

    overrides = overrides or {}
    return load_config(
        owner=overrides.get("owner"),
        repo=overrides.get("repo"),
        credential=overrides.get("credential"),
        branch=overrides.get("branch"),
        vault_root=overrides.get("vault_root"),
        insecure=overrides.get("insecure", False),
        debug=overrides.get("debug", False),
        yaml_fallbacks=yaml_fallbacks,
    )


class SyncSession:
    """A coordinator bound to one config and its state file.

    Args:
        config: Session configuration.  Validated on construction.
        store: Remote store override; defaults to a ``GitHubRemoteStore``
            built from *config*.
        vault: Vault override; defaults to ``config.vault_root``.
    """

    def __init__(
        self,
        config: Config,
        store: RemoteStore | None = None,
        vault: LocalVault | None = None,
    ) -> None:
        validate_config(config)
        self.config = config
        self.client: GitHubClient | None = None
        if store is None:
            self.client = GitHubClient(config)
            store = GitHubRemoteStore(self.client)
        self.vault = vault or LocalVault(Path(config.vault_root))
        self.state_store = StateStore(Path(config.state_file))
        self.state = self.state_store.load()
        self._check_settings()

        self.coordinator = SyncCoordinator(
            store,
            self.vault,
            snapshot=snapshot_from_state(self.state),
            on_snapshot=self._persist,
        )

    @property
    def initialised(self) -> bool:
        return is_initialised(self.state)

    def _check_settings(self) -> None:
        """Record repository settings; forget the snapshot if they changed."""
        settings = self.state["settings"]
        current = {
            "owner": self.config.owner,
            "repo": self.config.repo,
            "branch": self.config.branch,
        }
        known = {key: settings.get(key, "") for key in current}
        if (known["owner"] or known["repo"]) and known != current:
            logger.warning(
                "Repository changed from %s/%s@%s to %s/%s@%s; "
                "clearing stored snapshot",
                known["owner"],
                known["repo"],
                known["branch"],
                current["owner"],
                current["repo"],
                current["branch"],
            )
            apply_snapshot(self.state, RemoteSnapshot())
            self.state["initialised"] = False
        settings.update(current)

    def _persist(self, snapshot: RemoteSnapshot) -> None:
        apply_snapshot(self.state, snapshot)
        self.state_store.save(self.state)

    async def initialise(self) -> Result[PullReport, SyncError]:
        """Pull every remote file into the vault and mark it initialised.

        Local files with the same path are overwritten.
        """
        await self.coordinator.reset()
        result = await self.coordinator.pull()
        if isinstance(result, Ok):
            self.state["initialised"] = True
            self.state_store.save(self.state)
            logger.info(
                "Vault initialised at %s", result.value.reference
            )
        return result

    async def reset_state(self) -> None:
        """Forget the stored reference and tree."""
        await self.coordinator.reset()
        self.state["initialised"] = False
        self.state_store.save(self.state)
        logger.info("Sync state cleared")

    def status(self) -> dict[str, Any]:
        """Summarise the session for display."""
        return {
            "repository": f"{self.config.owner}/{self.config.repo}",
            "branch": self.config.branch,
            "vault": str(self.vault.root),
            "initialised": self.initialised,
            "reference": self.coordinator.reference,
            "tracked_files": len(self.coordinator.snapshot.tree),
            "pending_changes": len(self.coordinator.tracker),
            "push_in_progress": self.coordinator.queue.active,
            "last_sync": self.state.get("last_sync"),
        }


def open_session(config: Config) -> SyncSession:
    """Build a session and size the request semaphore from *config*."""
    session = SyncSession(config)
    init_semaphore(config.max_parallel_requests)
    return session


def create_coordinator(config: Config) -> SyncCoordinator:
    """Build a coordinator for *config* that persists its own state."""
    return open_session(config).coordinator
