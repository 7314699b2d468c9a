"""
Input validation functions for obsync.

Provides validation for vault-relative paths and file content so that
bad input is rejected before any local I/O or GitHub call is made.
"""

from pathlib import PurePosixPath

# GitHub rejects blobs above 100 MB
MAX_CONTENT_BYTES = 100 * 1024 * 1024


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Path")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_path(path: str) -> tuple[bool, str]:
    """
    Validate a vault-relative file path.

    Args:
        path: The path to validate

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty or whitespace-only
        - Must be relative and use forward slashes
        - Cannot contain '..' segments (path traversal protection)
        - Cannot have empty path segments (e.g., 'notes//a.md')
    """
    if not path or not path.strip():
        return (False, format_validation_error("Path", "cannot be empty"))

    if "\\" in path:
        return (
            False,
            format_validation_error("Path", "must use forward slashes"),
        )

    if PurePosixPath(path).is_absolute():
        return (False, format_validation_error("Path", "must be relative"))

    segments = path.split("/")
    if ".." in segments:
        return (False, format_validation_error("Path", "cannot contain '..'"))

    if "" in segments:
        return (
            False,
            format_validation_error("Path", "cannot have empty path segments"),
        )

    return (True, "")


def validate_content(
    content: str, max_size: int = MAX_CONTENT_BYTES
) -> tuple[bool, str]:
    """
    Validate file content before upload.

    Args:
        content: The content to validate
        max_size: Maximum size in bytes (default: 100 MB)

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Empty content is valid: an empty file is a legitimate blob.
    """
    content_bytes = len(content.encode("utf-8"))
    if content_bytes > max_size:
        return (
            False,
            format_validation_error(
                "Content", f"exceeds maximum size of {max_size} bytes"
            ),
        )

    return (True, "")
