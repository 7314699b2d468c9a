"""Tests for MCP server globals, ping and tool dispatch."""

from unittest.mock import MagicMock

import pytest

from obsync.mcp import server
from obsync.mcp.tools import ALL_SPECS, ToolRegistry
from obsync.mcp.tools.sync import reset_push_debouncer
from obsync.session import SyncSession


@pytest.fixture
def session(mock_config, fake_store, vault):
    session = SyncSession(mock_config, store=fake_store, vault=vault)
    session.client = MagicMock()
    return session


@pytest.fixture
def installed(session):
    server.set_session(session)
    server.set_registry(ToolRegistry([server.PING_SPEC] + ALL_SPECS))
    yield session
    reset_push_debouncer()
    server.set_session(None)
    server.set_registry(None)


def test_accessors_require_startup():
    with pytest.raises(RuntimeError, match="lifespan"):
        server.get_session()
    with pytest.raises(RuntimeError, match="ToolRegistry"):
        server.get_registry()


async def test_ping_reports_branch_head(session):
    session.client.validate_connection.return_value = "abc123"
    result = await server._handle_ping(session, {})
    assert not result.isError
    assert result.content[0].text == (
        "Connected to octo/notes. Branch main is at abc123."
    )


async def test_ping_failure(session):
    session.client.validate_connection.side_effect = ConnectionError("refused")
    result = await server._handle_ping(session, {})
    assert result.isError
    assert "refused" in result.content[0].text
    assert "OBSYNC_TOKEN" in result.content[0].text


async def test_ping_needs_no_permission():
    registry = ToolRegistry([server.PING_SPEC] + ALL_SPECS, frozenset())
    assert [t.name for t in registry.list_tools()] == ["ping"]


async def test_list_tools(installed):
    names = {t.name for t in await server.handle_list_tools()}
    assert names == {
        "ping",
        "sync_pull",
        "sync_push",
        "sync_record_change",
        "sync_scan",
        "sync_status",
    }


async def test_call_tool_dispatches(installed):
    result = await server.handle_call_tool("sync_status", {})
    assert result.structuredContent["repository"] == "octo/notes"


async def test_call_unknown_tool(installed):
    result = await server.handle_call_tool("wiki_get", {})
    assert result.isError
    assert result.content[0].text.startswith("Error (unknown_tool):")
