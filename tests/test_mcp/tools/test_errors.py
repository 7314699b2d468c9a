"""Tests for MCP tool error response builders."""

import mcp.types as types
import pytest

from obsync.core.client import (
    AuthenticationError,
    GitHubError,
    NotFoundError,
    WrongContentTypeError,
)
from obsync.mcp.tools.errors import (
    build_error_response,
    translate_github_error,
    translate_sync_error,
)
from obsync.sync.models import SyncError


class TestBuildErrorResponse:
    def test_structure(self):
        result = build_error_response(
            "validation_error", "path is required", "Provide the 'path' parameter."
        )
        assert isinstance(result, types.CallToolResult)
        assert result.isError is True
        assert len(result.content) == 1
        assert result.content[0].text == (
            "Error (validation_error): path is required\n\n"
            "Action: Provide the 'path' parameter."
        )


class TestTranslateGitHubError:
    @pytest.mark.parametrize(
        "error, error_type, hint",
        [
            (AuthenticationError("Bad credentials", 401), "permission_denied", "OBSYNC_TOKEN"),
            (NotFoundError("Not Found", 404), "not_found", "OBSYNC_BRANCH"),
            (WrongContentTypeError("dir is a directory, not a file"), "validation_error", "regular files"),
            (GitHubError("Server Error", 500), "server_error", "Retry later"),
        ],
    )
    def test_mapping(self, error, error_type, hint):
        text = translate_github_error(error).content[0].text
        assert text.startswith(f"Error ({error_type}): {error}")
        assert hint in text


class TestTranslateSyncError:
    def test_known_stage_gets_specific_action(self):
        error = SyncError(stage="update_reference", message="Reference update failed")
        text = translate_sync_error(error).content[0].text
        assert text.startswith("Error (sync_failed):")
        assert "Reference update failed" in text
        assert "run sync_pull" in text

    def test_unknown_stage_falls_back(self):
        error = SyncError(stage="create_commit", message="boom")
        text = translate_sync_error(error).content[0].text
        assert "must be recorded again" in text
