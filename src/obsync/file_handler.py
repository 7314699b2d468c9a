"""File handler module: the local vault adapter.

``LocalVault`` maps vault-relative POSIX paths onto a root directory and
provides the read/write/create/delete/list operations the sync engine
needs.  All methods are blocking; the coordinator calls them through
``run_sync()``.

Errors follow the usual split: an invalid or escaping path raises
``ValueError``, an I/O problem raises ``OSError``.  ``read_file`` returns
``None`` for a missing file instead of raising.
"""

from __future__ import annotations

import logging
from pathlib import Path

from charset_normalizer import from_bytes

from obsync.validators import validate_path

logger = logging.getLogger(__name__)

DEFAULT_IGNORE = (".git", ".obsync")


# =============================================================================
# Encoding-aware read/write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Tries strict UTF-8 first so byte-exact UTF-8 files always round-trip
    (their blob hashes must match the remote).  Otherwise uses
    charset-normalizer to detect the encoding, falling back to UTF-8 with
    replacement characters when detection fails.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    try:
        return (raw.decode("utf-8"), "utf-8")
    except UnicodeDecodeError:
        pass

    result = from_bytes(raw).best()
    if result is None:
        # Detection failed, fall back to utf-8
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        content = str(result)
    logger.debug("Read %s as %s", path, encoding)
    return (content, encoding)


def write_file(path: Path, content: str, encoding: str = "utf-8") -> int:
    """Write content to a file, creating parent directories as needed.

    Args:
        path: Path to the output file.
        content: String content to write.
        encoding: Encoding to use (default: utf-8).

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    path.write_bytes(encoded)
    return len(encoded)


# =============================================================================
# Vault adapter
# =============================================================================


class LocalVault:
    """A directory of text files addressed by vault-relative paths.

    Args:
        root: Vault root directory.
        ignore: Path segments whose subtrees are never listed.
    """

    def __init__(
        self, root: Path, ignore: tuple[str, ...] = DEFAULT_IGNORE
    ) -> None:
        self.root = Path(root).resolve()
        self.ignore = frozenset(ignore)

    def resolve(self, path: str) -> Path:
        """Validate *path* and return its absolute location.

        Raises:
            ValueError: If the path is invalid or escapes the vault root.
        """
        is_valid, error = validate_path(path)
        if not is_valid:
            raise ValueError(error)
        resolved = (self.root / path).resolve()
        if not resolved.is_relative_to(self.root):
            raise ValueError(
                f"Path is outside the vault: {path} not under {self.root}"
            )
        return resolved

    def file_exists(self, path: str) -> bool:
        return self.resolve(path).is_file()

    def read_file(self, path: str) -> str | None:
        """Return the content of *path*, or ``None`` if it is not a file."""
        target = self.resolve(path)
        if not target.is_file():
            return None
        content, _ = read_file_with_encoding(target)
        return content

    def write_file(self, path: str, content: str) -> int:
        """Overwrite an existing file.

        Raises:
            FileNotFoundError: If *path* does not exist.
        """
        target = self.resolve(path)
        if not target.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        return write_file(target, content)

    def create_file(self, path: str, content: str) -> int:
        """Create a new file, including missing parent directories."""
        target = self.resolve(path)
        if target.exists():
            raise FileExistsError(f"File already exists: {path}")
        return write_file(target, content)

    def delete_file(self, path: str) -> bool:
        """Delete *path* and prune directories it leaves empty.

        Returns:
            False if the file was already gone.
        """
        target = self.resolve(path)
        if not target.exists():
            return False
        target.unlink()
        parent = target.parent
        while parent != self.root and not any(parent.iterdir()):
            parent.rmdir()
            parent = parent.parent
        return True

    def list_files(self) -> list[str]:
        """Return every file in the vault as a sorted relative POSIX path."""
        files: list[str] = []
        for candidate in self.root.rglob("*"):
            relative = candidate.relative_to(self.root)
            if self.ignore.intersection(relative.parts):
                continue
            if candidate.is_file():
                files.append(relative.as_posix())
        return sorted(files)
