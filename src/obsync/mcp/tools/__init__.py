"""MCP tool handlers for sync operations.

This package contains MCP tool implementations that wrap the sync
coordinator with async handlers and structured error responses.
"""

from .errors import (
    build_error_response,
    translate_github_error,
    translate_sync_error,
)
from .registry import (
    SYNC_READ,
    SYNC_WRITE,
    ToolRegistry,
    ToolSpec,
    load_permissions_file,
)
from .sync import SYNC_SPECS, SYNC_TOOLS

ALL_SPECS: list[ToolSpec] = list(SYNC_SPECS)

__all__ = [
    "build_error_response",
    "translate_github_error",
    "translate_sync_error",
    # Registry
    "SYNC_READ",
    "SYNC_WRITE",
    "ToolSpec",
    "ToolRegistry",
    "load_permissions_file",
    # Spec lists
    "ALL_SPECS",
    "SYNC_SPECS",
    "SYNC_TOOLS",
]
