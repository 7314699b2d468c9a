"""Tests for sync reporter formatting functions.

Covers:
- format_pull_report sections, errors and the empty case
- format_push_report for no-op, normal and diverged pushes
- report_to_json structure for both report kinds
"""

from __future__ import annotations

import pytest

from obsync.sync.models import FileResult, PullReport, PushReport, SyncAction
from obsync.sync.reporter import (
    format_pull_report,
    format_push_report,
    report_to_json,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_T0 = "2026-01-01T00:00:00+00:00"
_T1 = "2026-01-01T00:00:02+00:00"


def _pull(results=(), reference="bbbbbbb1111", previous="aaaaaaa0000") -> PullReport:
    return PullReport(
        reference=reference,
        previous_reference=previous,
        results=list(results),
        started_at=_T0,
        completed_at=_T1,
    )


def _ok(path: str, action: SyncAction) -> FileResult:
    return FileResult(path=path, action=action, success=True)


# ---------------------------------------------------------------------------
# format_pull_report
# ---------------------------------------------------------------------------


class TestFormatPullReport:
    def test_sections_only_when_populated(self):
        report = _pull(
            [
                _ok("a.md", SyncAction.WRITE_LOCAL),
                _ok("new/b.md", SyncAction.CREATE_LOCAL),
            ]
        )
        text = format_pull_report(report)

        assert text.startswith("Pulled bbbbbbb (was aaaaaaa)")
        assert "Updated locally:\n  a.md" in text
        assert "Created locally:\n  new/b.md" in text
        assert "Deleted locally:" not in text
        assert f"Completed: {_T1}" in text

    def test_errors_listed(self):
        report = _pull(
            [
                FileResult(
                    path="q.md",
                    action=SyncAction.DELETE_LOCAL,
                    success=False,
                    error="permission denied",
                )
            ]
        )
        text = format_pull_report(report)
        assert "Errors:\n  q.md: permission denied" in text
        assert "Deleted locally:" not in text

    def test_unchanged_pull(self):
        text = format_pull_report(_pull(reference="same123", previous="same123"))
        assert text.startswith("Pulled same123 (unchanged)")
        assert text.endswith("No files changed.")

    def test_first_pull_has_no_previous(self):
        text = format_pull_report(_pull(previous=""))
        assert "(was (none))" in text


# ---------------------------------------------------------------------------
# format_push_report
# ---------------------------------------------------------------------------


class TestFormatPushReport:
    def test_noop(self):
        report = PushReport(reference="abcdef123", started_at=_T0)
        assert format_push_report(report) == "Nothing to push; remote is at abcdef1."

    def test_committed(self):
        report = PushReport(
            reference="2222222abc",
            previous_reference="1111111abc",
            paths=["a.md", "b.md"],
            message="updated a.md, b.md",
            committed=True,
            started_at=_T0,
        )
        assert format_push_report(report).splitlines() == [
            "Pushed 2222222 (was 1111111)",
            "Message: updated a.md, b.md",
            "",
            "Paths:",
            "  a.md",
            "  b.md",
        ]

    def test_diverged_warning(self):
        report = PushReport(
            reference="2222222",
            previous_reference="1111111",
            paths=["a.md"],
            message="updated a.md",
            committed=True,
            diverged=True,
            started_at=_T0,
        )
        assert "remote had moved" in format_push_report(report)


# ---------------------------------------------------------------------------
# report_to_json
# ---------------------------------------------------------------------------


class TestReportToJson:
    def test_pull(self):
        report = _pull(
            [
                _ok("a.md", SyncAction.WRITE_LOCAL),
                _ok("c.md", SyncAction.DELETE_LOCAL),
                FileResult(
                    path="x.md", action=SyncAction.SKIP, success=False, error="404"
                ),
            ]
        )
        data = report_to_json(report)

        assert data["kind"] == "pull"
        assert data["reference"] == "bbbbbbb1111"
        assert data["counts"] == {"written": 1, "created": 0, "deleted": 1, "errors": 1}
        assert data["results"][0] == {
            "path": "a.md",
            "action": "write_local",
            "success": True,
        }
        assert data["results"][2]["error"] == "404"

    def test_push(self):
        report = PushReport(
            reference="r2",
            previous_reference="r1",
            paths=["a.md"],
            message="updated a.md",
            committed=True,
            started_at=_T0,
            completed_at=_T1,
        )
        assert report_to_json(report) == {
            "kind": "push",
            "reference": "r2",
            "previous_reference": "r1",
            "committed": True,
            "diverged": False,
            "message": "updated a.md",
            "paths": ["a.md"],
            "started_at": _T0,
            "completed_at": _T1,
        }

    def test_other_types_rejected(self):
        with pytest.raises(TypeError, match="dict"):
            report_to_json({"kind": "pull"})  # type: ignore[arg-type]
