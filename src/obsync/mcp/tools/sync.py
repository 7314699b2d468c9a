"""MCP tool handlers for vault/repository sync.

Defines five tools:

- ``sync_pull`` -- apply remote changes to the vault.
- ``sync_push`` -- commit recorded (and optionally scanned) local changes.
- ``sync_record_change`` -- record a local edit and schedule a push.
- ``sync_scan`` -- record every difference between vault and snapshot.
- ``sync_status`` -- show the session's sync state.

Pushes scheduled by ``sync_record_change`` are debounced: each recorded
edit restarts a ``push_delay`` second quiet period, so a burst of edits
becomes one commit.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import mcp.types as types

from ...core.debounce import Debouncer
from ...core.result import Err, Ok
from ...sync.reporter import (
    format_pull_report,
    format_push_report,
    report_to_json,
)
from .errors import build_error_response, translate_sync_error
from .registry import SYNC_READ, SYNC_WRITE, ToolSpec

if TYPE_CHECKING:
    from ...session import SyncSession

logger = logging.getLogger(__name__)

# (session, debouncer) for the session the server is currently serving
_push_debouncer: tuple[SyncSession, Debouncer] | None = None


def get_push_debouncer(session: SyncSession) -> Debouncer:
    """Return the debounced push for *session*, creating it on first use."""
    global _push_debouncer
    if _push_debouncer is None or _push_debouncer[0] is not session:
        if _push_debouncer is not None:
            _push_debouncer[1].cancel()

        async def _scheduled_push() -> None:
            match await session.coordinator.push():
                case Ok(report):
                    logger.info(
                        "Scheduled push: %s",
                        format_push_report(report).splitlines()[0],
                    )
                case Err(error):
                    logger.error("Scheduled push failed: %s", error)

        _push_debouncer = (
            session,
            Debouncer(session.config.push_delay, _scheduled_push),
        )
    return _push_debouncer[1]


def reset_push_debouncer() -> None:
    """Cancel and forget the scheduled push (server shutdown, tests)."""
    global _push_debouncer
    if _push_debouncer is not None:
        _push_debouncer[1].cancel()
    _push_debouncer = None


def _not_initialised(tool: str) -> types.CallToolResult:
    """Refuse *tool* until the first pull has filled the snapshot."""
    return build_error_response(
        "not_initialised",
        f"Vault is not initialised; {tool} needs a completed first pull.",
        "Run sync_pull first, then retry.",
    )


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


async def _handle_sync_pull(
    session: SyncSession, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``sync_pull`` tool.

    The first pull into an uninitialised vault fetches every file.
    """
    if session.initialised:
        result = await session.coordinator.pull()
    else:
        result = await session.initialise()
    match result:
        case Ok(report):
            return types.CallToolResult(
                content=[
                    types.TextContent(
                        type="text", text=format_pull_report(report)
                    )
                ],
                structuredContent=report_to_json(report),
            )
        case Err(error):
            return translate_sync_error(error)


async def _handle_sync_push(
    session: SyncSession, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``sync_push`` tool."""
    # Remote files never pulled would look like local deletes
    if not session.initialised:
        return _not_initialised("sync_push")

    # An explicit push supersedes the scheduled one
    get_push_debouncer(session).cancel()

    if args.get("scan", True):
        scanned = await session.coordinator.scan()
        if isinstance(scanned, Err):
            return translate_sync_error(scanned.error)

    match await session.coordinator.push():
        case Ok(report):
            return types.CallToolResult(
                content=[
                    types.TextContent(
                        type="text", text=format_push_report(report)
                    )
                ],
                structuredContent=report_to_json(report),
            )
        case Err(error):
            return translate_sync_error(error)


async def _handle_sync_record_change(
    session: SyncSession, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``sync_record_change`` tool."""
    path = args.get("path")
    kind = args.get("kind")
    if not path or not kind:
        return build_error_response(
            "validation_error",
            "path and kind are required",
            "Provide 'path' and 'kind' (create, update, delete or rename).",
        )
    if not session.initialised:
        return _not_initialised("sync_record_change")

    result = session.coordinator.record_change(
        path, kind, args.get("previous_path")
    )
    if isinstance(result, Err):
        return translate_sync_error(result.error)

    debouncer = get_push_debouncer(session)
    debouncer.trigger()
    text = (
        f"Recorded {kind} of {path}. "
        f"Push scheduled in {debouncer.delay:g}s."
    )
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent={
            "path": path,
            "kind": kind,
            "pending_changes": len(session.coordinator.tracker),
            "push_delay": debouncer.delay,
        },
    )


async def _handle_sync_scan(
    session: SyncSession, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``sync_scan`` tool."""
    if not session.initialised:
        return _not_initialised("sync_scan")
    match await session.coordinator.scan():
        case Ok(count):
            pending = session.coordinator.tracker.peek()
            lines = [f"Found {count} local change(s)."]
            lines.extend(
                f"  [{m.kind.value}] {m.path}"
                for m in sorted(pending.values(), key=lambda m: m.path)
            )
            return types.CallToolResult(
                content=[types.TextContent(type="text", text="\n".join(lines))],
                structuredContent={
                    "found": count,
                    "pending": {
                        path: m.kind.value for path, m in pending.items()
                    },
                },
            )
        case Err(error):
            return translate_sync_error(error)


async def _handle_sync_status(
    session: SyncSession, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``sync_status`` tool."""
    status = session.status()
    status["push_scheduled"] = get_push_debouncer(session).pending

    lines = [
        f"Sync status for {status['repository']}@{status['branch']}",
        f"  Vault:          {status['vault']}",
        f"  Initialised:    {status['initialised']}",
        f"  Reference:      {status['reference'] or '(none)'}",
        f"  Tracked files:  {status['tracked_files']}",
        f"  Pending:        {status['pending_changes']}",
        f"  Push scheduled: {status['push_scheduled']}",
        f"  Last sync:      {status['last_sync'] or 'never'}",
    ]
    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent=status,
    )


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


SYNC_TOOLS: list[types.Tool] = [
    types.Tool(
        name="sync_pull",
        description=(
            "Fetch files that changed in the repository since the last "
            "sync and write them into the vault. Files removed remotely "
            "are deleted locally."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="sync_push",
        description=(
            "Commit local changes to the repository as a single commit. "
            "By default the vault is scanned first so edits made outside "
            "sync_record_change are included."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "scan": {
                    "type": "boolean",
                    "default": True,
                    "description": "Scan the vault for changes before pushing",
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name="sync_record_change",
        description=(
            "Record a local file edit. A push runs automatically once no "
            "further edits are recorded for the configured push delay."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Vault-relative path, e.g. notes/today.md",
                },
                "kind": {
                    "type": "string",
                    "enum": ["create", "update", "delete", "rename"],
                    "description": "What happened to the file",
                },
                "previous_path": {
                    "type": "string",
                    "description": "Old path (required when kind is rename)",
                },
            },
            "required": ["path", "kind"],
        },
    ),
    types.Tool(
        name="sync_scan",
        description=(
            "Compare the vault with the last-known repository tree and "
            "record every created, updated and deleted file for the next push."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="sync_status",
        description=(
            "Show sync state: repository, reference, tracked file count, "
            "pending changes and last sync time."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
]

_TOOLS = {tool.name: tool for tool in SYNC_TOOLS}

SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=_TOOLS["sync_pull"],
        permissions=frozenset({SYNC_READ}),
        handler=_handle_sync_pull,
    ),
    ToolSpec(
        tool=_TOOLS["sync_push"],
        permissions=frozenset({SYNC_WRITE}),
        handler=_handle_sync_push,
    ),
    ToolSpec(
        tool=_TOOLS["sync_record_change"],
        permissions=frozenset({SYNC_WRITE}),
        handler=_handle_sync_record_change,
    ),
    ToolSpec(
        tool=_TOOLS["sync_scan"],
        permissions=frozenset({SYNC_WRITE}),
        handler=_handle_sync_scan,
    ),
    ToolSpec(
        tool=_TOOLS["sync_status"],
        permissions=frozenset({SYNC_READ}),
        handler=_handle_sync_status,
    ),
]
