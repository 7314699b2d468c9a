"""MCP Server for vault/repository sync using stdio transport.

This module implements the Model Context Protocol server that lets AI
agents pull repository changes into a local vault and push local edits
back as commits.

Transport: stdio (for Claude Desktop/Code integration)
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import yaml
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..core.async_utils import run_sync
from ..logger import DEFAULT_LOG_FILE, setup_logging
from ..session import SyncSession, load_logging_config
from .lifespan import server_lifespan
from .tools import (
    ALL_SPECS,
    ToolRegistry,
    build_error_response,
    load_permissions_file,
)
from .tools.registry import ToolSpec
from .tools.sync import get_push_debouncer, reset_push_debouncer

logger = logging.getLogger(__name__)

# Initialize server instance
server = Server("obsync")

# Global session instance (initialized in lifespan)
_session: SyncSession | None = None

# Global registry instance (initialized in main)
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Ping tool (always available, no sync permission required)
# ---------------------------------------------------------------------------


async def _handle_ping(
    session: SyncSession, args: dict
) -> types.CallToolResult:
    """Handle ping tool -- test GitHub connectivity."""
    config = session.config
    try:
        head = await run_sync(
            session.client.validate_connection  # type: ignore[union-attr]
        )
        return types.CallToolResult(
            content=[
                types.TextContent(
                    type="text",
                    text=(
                        f"Connected to {config.owner}/{config.repo}. "
                        f"Branch {config.branch} is at {head}."
                    ),
                )
            ]
        )
    except Exception as e:
        return types.CallToolResult(
            content=[
                types.TextContent(
                    type="text",
                    text=f"GitHub connection failed: {e}. Check OBSYNC_OWNER, OBSYNC_REPO, OBSYNC_TOKEN.",
                )
            ],
            isError=True,
        )


PING_SPEC = ToolSpec(
    tool=types.Tool(
        name="ping",
        description="Test GitHub connectivity and return the branch head",
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
    permissions=frozenset(),
    handler=_handle_ping,
)


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_session() -> SyncSession:
    """Get the global SyncSession instance.

    Raises:
        RuntimeError: If session is not initialized
    """
    if _session is None:
        raise RuntimeError(
            "SyncSession not initialized. Server lifespan not started."
        )
    return _session


def set_session(session: SyncSession | None) -> None:
    """Set the global SyncSession instance, or None to clear."""
    global _session
    _session = session


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    """Set the global ToolRegistry instance, or None to clear."""
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List available sync tools.

    Returns all registered (and permitted) tools from the ToolRegistry.
    """
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch.

    Args:
        name: The name of the tool to execute.
        arguments: Tool arguments (optional).

    Returns:
        CallToolResult with tool output content and optional isError flag.
    """
    session = get_session()
    try:
        return await get_registry().call_tool(name, arguments, session)
    except ValueError as e:
        # Unknown or filtered-out tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    This function sets up logging for MCP mode (file only, never stdout),
    validates the repository connection via the lifespan manager, and
    starts the server with stdio transport for JSON-RPC communication.

    Args:
        config_overrides: Optional dict with config values to override
            (owner, repo, credential, branch, vault_root, insecure,
            log_file, permissions_file)
    """
    overrides = dict(config_overrides or {})
    log_file = overrides.pop("log_file", None)
    permissions_file = overrides.pop("permissions_file", None)

    try:
        log_settings = load_logging_config()
    except (ValueError, OSError, yaml.YAMLError) as e:
        print(f"Error: invalid configuration file: {e}", file=sys.stderr)
        raise RuntimeError(str(e)) from e

    # Must run before stdio_server so nothing reaches stdout during
    # protocol negotiation
    setup_logging(
        mode="mcp",
        debug=overrides.get("debug", False),
        log_file=log_file or log_settings.file,
        level=log_settings.level,
    )

    allowed_permissions = None
    if permissions_file:
        allowed_permissions = load_permissions_file(permissions_file)
        logger.info(
            "Loaded %d permissions from %s",
            len(allowed_permissions),
            permissions_file,
        )

    all_specs = [PING_SPEC] + ALL_SPECS
    registry = ToolRegistry(all_specs, allowed_permissions)
    logger.info(
        "Registered %d tools (of %d total)",
        registry.tool_count(),
        len(all_specs),
    )

    if permissions_file:
        print(
            f"Permissions file: {permissions_file} "
            f"({registry.tool_count()} of {len(all_specs)} tools enabled)",
            file=sys.stderr,
        )

    set_registry(registry)

    # set_session() is called here rather than in the lifespan so that
    # running this file as __main__ installs the session into this module
    # and not into a second imported copy of it.
    async with server_lifespan(config_overrides=overrides or None) as ctx:
        session = ctx["session"]
        set_session(session)
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="obsync",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(
                    read_stream, write_stream, init_options
                )
        finally:
            # Edits recorded in the last push_delay seconds still go out
            await get_push_debouncer(session).flush()
            reset_push_debouncer()
            set_session(None)
            set_registry(None)


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    parser = argparse.ArgumentParser(
        description="obsync MCP server - sync a local vault with a GitHub repository",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .obsync/config.yml)
  obsync-mcp

  # Override the repository
  obsync-mcp --owner me --repo notes --branch main

  # Serve a vault somewhere else
  obsync-mcp --vault ~/Notes

  # Pull-only server
  obsync-mcp --permissions-file /etc/obsync/read-only.permissions

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr. Do not pipe stdin/stdout manually.
        """,
    )

    parser.add_argument(
        "--owner",
        help="Override repository owner (takes precedence over OBSYNC_OWNER and config files)",
    )
    parser.add_argument(
        "--repo",
        help="Override repository name (takes precedence over OBSYNC_REPO and config files)",
    )
    parser.add_argument(
        "--branch",
        help="Override branch (default: main)",
    )
    parser.add_argument(
        "--token",
        help="Override access token"
        " (visible in process list -- prefer OBSYNC_TOKEN env var for security)",
    )
    parser.add_argument(
        "--vault",
        help="Vault directory (takes precedence over OBSYNC_VAULT)",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path (default: logging.file from the config file, "
        f"then LOG_FILE, then {DEFAULT_LOG_FILE})",
    )
    parser.add_argument(
        "--permissions-file",
        help="Path to permissions file restricting available tools. "
        "Format: one permission per line (SYNC_READ, SYNC_WRITE), # for comments. "
        "If not specified, all tools are available.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"obsync version {__version__}",
    )

    args = parser.parse_args()

    config_overrides: dict = {}
    if args.owner:
        config_overrides["owner"] = args.owner
    if args.repo:
        config_overrides["repo"] = args.repo
    if args.branch:
        config_overrides["branch"] = args.branch
    if args.token:
        config_overrides["credential"] = args.token
    if args.vault:
        config_overrides["vault_root"] = args.vault
    if args.insecure:
        config_overrides["insecure"] = True
    if args.debug:
        config_overrides["debug"] = True
    if args.log_file:
        config_overrides["log_file"] = args.log_file
    if args.permissions_file:
        config_overrides["permissions_file"] = args.permissions_file

    override_keys = [
        k
        for k in config_overrides
        if k not in ("credential", "log_file")
    ]
    if override_keys:
        print(
            f"Config overrides from CLI: {', '.join(override_keys)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides or None))
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
