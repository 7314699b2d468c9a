"""Error response builders for MCP tool handlers.

This module provides structured error responses with corrective actions
to help AI agents recover from errors without human intervention.
"""

import mcp.types as types

from ...core.client import (
    AuthenticationError,
    GitHubError,
    NotFoundError,
    WrongContentTypeError,
)
from ...sync.models import SyncError


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, permission_denied, validation_error, not_initialised, sync_failed, server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("validation_error", "path is required", "Provide the 'path' parameter.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


# ---------------------------------------------------------------------------
# Stage-specific corrective action messages
# ---------------------------------------------------------------------------

_STAGE_ACTIONS: dict[str, str] = {
    "pull": "Check repository access with ping, then retry sync_pull.",
    "read_local": "Check that the vault directory is readable, then retry sync_push.",
    "create_blob": "The file may exceed the blob size limit; fix it and record the change again.",
    "get_reference": "Check that the branch exists, then retry sync_push.",
    "update_reference": "The branch moved during the push; run sync_pull, record the changes again and retry.",
    "record_change": "Use kind create, update, delete, or rename with previous_path.",
    "scan": "Check that the vault directory is readable, then retry sync_scan.",
}


def translate_sync_error(error: SyncError) -> types.CallToolResult:
    """Translate a failed pull/push into a structured error response."""
    action = _STAGE_ACTIONS.get(
        error.stage,
        "Retry later; the recorded changes of a failed push must be recorded again.",
    )
    return build_error_response("sync_failed", str(error), action)


def translate_github_error(error: GitHubError) -> types.CallToolResult:
    """Translate a GitHub client exception to a structured error response."""
    match error:
        case AuthenticationError():
            return build_error_response(
                "permission_denied",
                str(error),
                "Check OBSYNC_TOKEN and that it grants contents access to the repository.",
            )
        case NotFoundError():
            return build_error_response(
                "not_found",
                str(error),
                "Check OBSYNC_OWNER, OBSYNC_REPO and OBSYNC_BRANCH.",
            )
        case WrongContentTypeError():
            return build_error_response(
                "validation_error",
                str(error),
                "Only regular files are synced; remove the path from the request.",
            )
        case _:
            return build_error_response(
                "server_error", str(error), "Retry later."
            )
