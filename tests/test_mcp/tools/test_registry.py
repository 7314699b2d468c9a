"""Tests for ToolSpec, ToolRegistry, and load_permissions_file.

Covers:
- ToolSpec immutability
- ToolRegistry filtering (no filter, permission filter, empty permissions)
- ToolRegistry call_tool dispatch and error translation
- load_permissions_file parsing, validation, and error cases
"""

import dataclasses
from unittest.mock import MagicMock

import mcp.types as types
import pytest

from obsync.core.client import AuthenticationError
from obsync.mcp.tools.registry import (
    SYNC_READ,
    SYNC_WRITE,
    ToolRegistry,
    ToolSpec,
    load_permissions_file,
)


def _make_spec(name, permissions=frozenset(), handler=None) -> ToolSpec:
    if handler is None:

        async def handler(session, args):
            return types.CallToolResult(
                content=[types.TextContent(type="text", text=f"ok:{name}:{args}")]
            )

    return ToolSpec(
        tool=types.Tool(
            name=name,
            description=f"Test tool {name}",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        permissions=permissions,
        handler=handler,
    )


def _raising(exc):
    async def handler(session, args):
        raise exc

    return handler


@pytest.fixture
def specs():
    return [
        _make_spec("ping"),
        _make_spec("sync_pull", frozenset({SYNC_READ})),
        _make_spec("sync_push", frozenset({SYNC_WRITE})),
        _make_spec("both", frozenset({SYNC_READ, SYNC_WRITE})),
    ]


class TestToolSpec:
    def test_frozen(self):
        spec = _make_spec("x")
        with pytest.raises(dataclasses.FrozenInstanceError):
            spec.permissions = frozenset({SYNC_WRITE})  # type: ignore[misc]


class TestFiltering:
    def test_no_filter_registers_everything(self, specs):
        assert ToolRegistry(specs).tool_count() == 4

    def test_read_only(self, specs):
        registry = ToolRegistry(specs, frozenset({SYNC_READ}))
        names = [t.name for t in registry.list_tools()]
        assert names == ["ping", "sync_pull"]

    def test_subset_required(self, specs):
        registry = ToolRegistry(specs, frozenset({SYNC_READ, SYNC_WRITE}))
        assert registry.tool_count() == 4

    def test_permissionless_tools_always_included(self, specs):
        registry = ToolRegistry(specs, frozenset({"OTHER"}))
        assert [t.name for t in registry.list_tools()] == ["ping"]


class TestCallTool:
    async def test_dispatches_with_empty_args_for_none(self, specs):
        result = await ToolRegistry(specs).call_tool("ping", None, MagicMock())
        assert result.content[0].text == "ok:ping:{}"

    async def test_unknown_tool_raises(self, specs):
        with pytest.raises(ValueError, match="Unknown tool: nope"):
            await ToolRegistry(specs).call_tool("nope", {}, MagicMock())

    async def test_filtered_tool_raises(self, specs):
        registry = ToolRegistry(specs, frozenset({SYNC_READ}))
        with pytest.raises(ValueError, match="Unknown tool"):
            await registry.call_tool("sync_push", {}, MagicMock())

    @pytest.mark.parametrize(
        "exc, error_type",
        [
            (AuthenticationError("Bad credentials", 401), "permission_denied"),
            (ValueError("path is required"), "validation_error"),
            (RuntimeError("boom"), "server_error"),
        ],
    )
    async def test_exceptions_translated(self, exc, error_type):
        registry = ToolRegistry([_make_spec("t", handler=_raising(exc))])
        result = await registry.call_tool("t", {}, MagicMock())
        assert result.isError
        assert result.content[0].text.startswith(f"Error ({error_type}):")


class TestLoadPermissionsFile:
    def test_comments_blanks_and_duplicates(self, tmp_path):
        path = tmp_path / "read-only.permissions"
        path.write_text("# pull only\n\nSYNC_READ\n  SYNC_READ  \n")
        assert load_permissions_file(path) == frozenset({SYNC_READ})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_permissions_file(tmp_path / "absent")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty"
        path.write_text("# nothing\n")
        with pytest.raises(ValueError, match="No permissions found"):
            load_permissions_file(path)

    @pytest.mark.parametrize("line", ["sync_read", "SYNC-READ", "SYNC READ2"])
    def test_invalid_permission(self, tmp_path, line):
        path = tmp_path / "bad"
        path.write_text(f"SYNC_WRITE\n{line}\n")
        with pytest.raises(ValueError, match="line 2"):
            load_permissions_file(path)
