"""Unified configuration schema for obsync.

Defines Pydantic models for the unified config structure with dedicated
sections for the GitHub repository, the local vault, and logging.
``UnifiedConfig.fallbacks()`` flattens the repository and vault sections
into the fallback dict that ``config.load_config()`` consumes.

Usage:
    from obsync.config_schema import build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(owner="me", yaml_fallbacks=unified.fallbacks())
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class GitHubConfig(BaseModel):
    """GitHub repository settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    owner: str | None = Field(default=None, description="Repository owner")
    repo: str | None = Field(default=None, description="Repository name")
    branch: str = Field(default="main", description="Branch to sync with")
    credential: str | None = Field(
        default=None, description="Access token for the repository"
    )
    api_url: str = Field(
        default="https://api.github.com", description="GitHub API base URL"
    )
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )
    max_parallel_requests: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Maximum concurrent requests to GitHub (1-100)",
    )

    model_config = {"frozen": True}


class VaultConfig(BaseModel):
    """Local vault settings.

    Attributes:
        root: Vault directory.
        state_file: Engine state file, relative to the working directory.
        push_delay: Seconds without edits before a scheduled push runs.
    """

    root: str = Field(default=".", description="Vault directory")
    state_file: str = Field(
        default=".obsync/state.json", description="Engine state file"
    )
    push_delay: float = Field(
        default=3.0,
        ge=0,
        description="Quiet period in seconds before pushing recorded edits",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Unset means the mode default (INFO for the CLI, WARNING for MCP).
        file: Optional log file path.
    """

    level: str | None = Field(default=None, description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    vault: VaultConfig = Field(default_factory=VaultConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}

    def fallbacks(self) -> dict:
        """Flatten the github and vault sections for ``load_config()``.

        ``None`` values are dropped so they never shadow a default.
        """
        merged = {
            **self.vault.model_dump(),
            **self.github.model_dump(),
        }
        return {k: v for k, v in merged.items() if v is not None}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully -- anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


