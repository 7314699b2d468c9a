"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync operations:

- ``format_pull_report`` -- post-pull summary with per-file sections.
- ``format_push_report`` -- post-push summary.
- ``report_to_json`` -- structured dict for MCP tool output.
"""

from __future__ import annotations

from .models import PullReport, PushReport, SyncAction

# ------------------------------------------------------------------
# Human-readable reports
# ------------------------------------------------------------------

_PULL_SECTIONS = (
    (SyncAction.WRITE_LOCAL, "Updated locally:"),
    (SyncAction.CREATE_LOCAL, "Created locally:"),
    (SyncAction.DELETE_LOCAL, "Deleted locally:"),
)


def format_pull_report(report: PullReport) -> str:
    """Format a completed pull as human-readable text.

    Sections are only included when they contain at least one result.

    Args:
        report: The completed pull report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = [report.summary()]
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    for action, title in _PULL_SECTIONS:
        paths = [
            r.path for r in report.results if r.success and r.action == action
        ]
        if not paths:
            continue
        lines.append(title)
        lines.extend(f"  {path}" for path in paths)
        lines.append("")

    if report.errors:
        lines.append("Errors:")
        for r in report.errors:
            lines.append(f"  {r.path}: {r.error}")
        lines.append("")

    if not report.results:
        lines.append("No files changed.")

    return "\n".join(lines).rstrip()


def format_push_report(report: PushReport) -> str:
    """Format a completed push as human-readable text."""
    if not report.committed:
        return f"Nothing to push; remote is at {_short(report.reference)}."

    lines = [
        f"Pushed {_short(report.reference)} "
        f"(was {_short(report.previous_reference)})",
        f"Message: {report.message}",
    ]
    if report.diverged:
        lines.append(
            "Warning: remote had moved since the last sync; "
            "the commit was built on the newer reference."
        )
    lines.append("")
    lines.append("Paths:")
    lines.extend(f"  {path}" for path in report.paths)
    return "\n".join(lines)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: PullReport | PushReport) -> dict:
    """Convert a pull or push report to a structured dict.

    Suitable for MCP ``structuredContent`` output.
    """
    match report:
        case PullReport():
            results = []
            for r in report.results:
                entry: dict = {
                    "path": r.path,
                    "action": r.action.value,
                    "success": r.success,
                }
                if r.error:
                    entry["error"] = r.error
                results.append(entry)
            return {
                "kind": "pull",
                "reference": report.reference,
                "previous_reference": report.previous_reference,
                "started_at": report.started_at,
                "completed_at": report.completed_at,
                "counts": {
                    "written": len(report.written),
                    "created": len(report.created),
                    "deleted": len(report.deleted),
                    "errors": len(report.errors),
                },
                "results": results,
            }
        case PushReport():
            return {
                "kind": "push",
                "reference": report.reference,
                "previous_reference": report.previous_reference,
                "committed": report.committed,
                "diverged": report.diverged,
                "message": report.message,
                "paths": list(report.paths),
                "started_at": report.started_at,
                "completed_at": report.completed_at,
            }
        case _:
            raise TypeError(
                f"Unsupported report type: {type(report).__name__}"
            )


def _short(reference: str) -> str:
    return reference[:7] if reference else "(none)"
