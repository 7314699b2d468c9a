"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import yaml

from ..core.async_utils import run_sync
from ..session import open_session, resolve_config

logger = logging.getLogger(__name__)

_SETTINGS_HINT = "Ensure OBSYNC_OWNER, OBSYNC_REPO, OBSYNC_TOKEN are set."


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Merge all config sources via resolve_config(): CLI > env vars > .env > YAML > defaults
    - Open the sync session (state file, vault, GitHub client)
    - Validate repository access by reading the branch reference
    - Fail fast if GitHub is unreachable or the credential is rejected

    On shutdown:
    - Wait for any in-flight commit run to finish

    Args:
        config_overrides: Optional dict with config values from CLI (owner, repo, credential, branch, vault_root, insecure)

    Yields:
        Dict with 'session' key containing the initialized SyncSession

    Raises:
        RuntimeError: If configuration is invalid or GitHub connection fails.
    """
    logger.info("MCP server starting...")
    _stderr_print("obsync MCP server starting...")

    try:
        config = resolve_config(config_overrides)
        session = open_session(config)
        logger.info(
            "Repository: %s/%s@%s", config.owner, config.repo, config.branch
        )
        _stderr_print(
            f"  Repository: {config.owner}/{config.repo}@{config.branch}"
        )
        _stderr_print(f"  Vault: {session.vault.root}")
    except (ValueError, OSError, yaml.YAMLError) as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print(f"  {_SETTINGS_HINT}")
        raise RuntimeError(
            f"Configuration error: {e}. {_SETTINGS_HINT}"
        ) from e

    logger.info("Validating GitHub connection...")
    _stderr_print("  Validating GitHub connection...")
    try:
        head = await run_sync(
            session.client.validate_connection  # type: ignore[union-attr]
        )
        logger.info("Branch %s is at %s", config.branch, head)
        _stderr_print(f"  Branch head: {head[:7]}")
        _stderr_print(
            f"  Parallel requests: {config.max_parallel_requests}"
        )
        if not session.initialised:
            _stderr_print(
                "  Vault not initialised yet; the first sync_pull fetches every file."
            )
        _stderr_print(
            "Server ready. Waiting for MCP client connection..."
        )
    except Exception as e:
        logger.error("Failed to connect to GitHub: %s", e)
        _stderr_print("ERROR: GitHub connection failed.")
        _stderr_print(f"  {e}")
        _stderr_print(f"  {_SETTINGS_HINT}")
        raise RuntimeError(
            f"GitHub connection failed: {e}. {_SETTINGS_HINT}"
        ) from e

    try:
        yield {"session": session}
    finally:
        await session.coordinator.queue.join()
        logger.info("MCP server shutting down")
        _stderr_print("obsync MCP server shutting down.")
