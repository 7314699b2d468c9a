import base64
import logging
import threading
from typing import Any
from urllib.parse import quote

import requests

from ..config import Config
from ..validators import validate_content, validate_path

logger = logging.getLogger(__name__)

# Regular (non-executable) file mode for created tree entries
FILE_MODE = "100644"


class GitHubError(Exception):
    """A GitHub API call failed.

    Attributes:
        status: HTTP status code, or ``None`` for connection-level failures.
        message: Human-readable description from the API or transport.
    """

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"{self.message} (HTTP {self.status})"


class NotFoundError(GitHubError):
    """The requested path, ref or object does not exist."""


class WrongContentTypeError(GitHubError):
    """The path resolved to something other than a regular file."""


class AuthenticationError(GitHubError):
    """The credential was rejected (401) or lacks access (403)."""


class GitHubClient:
    """Blocking client for the GitHub git data API of one repository.

    All methods raise ``GitHubError`` (or a subclass) on failure.  Use
    ``GitHubRemoteStore`` for the async interface the sync engine consumes.
    """

    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self.repo_url = self._get_repo_url()

    @property
    def session(self) -> requests.Session:
        """Accessor for the current thread's session."""
        return self._get_session()

    @property
    def branch(self) -> str:
        return self.config.branch or "main"

    def _get_repo_url(self) -> str:
        return (
            f"{self.config.api_url.rstrip('/')}/repos/"
            f"{self.config.owner}/{self.config.repo}"
        )

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {self.config.credential}",
                "X-GitHub-Api-Version": "2022-11-28",
            }
        )
        session.verify = not self.config.insecure
        return session

    def _request(
        self, method: str, endpoint: str, **kwargs: Any
    ) -> Any:
        """
        Make a REST request relative to the repository URL and return the JSON body.
        """
        url = f"{self.repo_url}/{endpoint.lstrip('/')}"
        session = self._get_session()
        try:
            response = session.request(
                method, url, timeout=(10, 60), **kwargs
            )
        except requests.RequestException as e:
            raise GitHubError(f"{method} {endpoint} failed: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            match response.status_code:
                case 401 | 403:
                    raise AuthenticationError(message, response.status_code)
                case 404:
                    raise NotFoundError(message, response.status_code)
                case _:
                    raise GitHubError(message, response.status_code)

        if not response.content:
            return None
        return response.json()

    def get_reference(self) -> str:
        """
        Return the commit SHA the configured branch points at.
        """
        data = self._request(
            "GET", f"git/ref/heads/{quote(self.branch)}"
        )
        return data["object"]["sha"]

    def get_commit_tree_sha(self, commit_sha: str) -> str:
        """
        Return the root tree SHA of a commit.
        """
        data = self._request("GET", f"git/commits/{commit_sha}")
        return data["tree"]["sha"]

    def get_tree(self, commit_sha: str) -> dict[str, dict[str, str]]:
        """
        Return the flattened blob listing of a commit as {path: {hash, url}}.

        Sub-tree and submodule entries are left out; only blobs are files.
        """
        tree_sha = self.get_commit_tree_sha(commit_sha)
        data = self._request(
            "GET", f"git/trees/{tree_sha}", params={"recursive": "1"}
        )
        if data.get("truncated"):
            logger.warning(
                "Tree %s was truncated by the API; listing is incomplete",
                tree_sha,
            )
        return {
            item["path"]: {"hash": item["sha"], "url": item.get("url")}
            for item in data.get("tree", [])
            if item.get("type") == "blob"
        }

    def get_content(
        self, path: str, ref: str | None = None
    ) -> tuple[str, str]:
        """
        Get a file's decoded content and blob SHA.

        Args:
            path: Repository-relative file path
            ref: Commit SHA or branch to read at (default: configured branch)

        Returns:
            Tuple of (content, sha)

        Raises:
            ValueError: If the path is invalid
            NotFoundError: If the path does not exist at ref
            WrongContentTypeError: If the path is a directory, symlink or submodule
        """
        is_valid, error = validate_path(path)
        if not is_valid:
            raise ValueError(error)

        data = self._request(
            "GET",
            f"contents/{quote(path)}",
            params={"ref": ref or self.branch},
        )
        if isinstance(data, list) or data.get("type") != "file":
            kind = "directory" if isinstance(data, list) else data.get("type")
            raise WrongContentTypeError(
                f"{path} is a {kind}, not a file"
            )

        raw = data.get("content")
        if raw is None or data.get("encoding") != "base64":
            # Files over 1MB come back without inline content
            return self.get_blob(data["sha"]), data["sha"]
        return _decode(raw), data["sha"]

    def get_blob(self, sha: str) -> str:
        """
        Get the decoded content of a blob by SHA.
        """
        data = self._request("GET", f"git/blobs/{sha}")
        return _decode(data["content"])

    def create_blob(self, content: str) -> str:
        """
        Upload content as a blob and return its SHA.

        Raises:
            ValueError: If content exceeds the blob size limit
        """
        is_valid, error = validate_content(content)
        if not is_valid:
            raise ValueError(error)

        encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")
        data = self._request(
            "POST",
            "git/blobs",
            json={"content": encoded, "encoding": "base64"},
        )
        return data["sha"]

    def create_tree(
        self, base_commit_sha: str, entries: list[dict[str, Any]]
    ) -> str:
        """
        Create a tree layered on the tree of base_commit_sha.

        Args:
            base_commit_sha: Commit whose tree the new tree starts from
            entries: Dicts with path and sha; sha None removes the path

        Returns:
            SHA of the new tree
        """
        tree = [
            {
                "path": entry["path"],
                "mode": entry.get("mode", FILE_MODE),
                "type": entry.get("type", "blob"),
                "sha": entry["sha"],
            }
            for entry in entries
        ]
        payload: dict[str, Any] = {"tree": tree}
        if base_commit_sha:
            payload["base_tree"] = self.get_commit_tree_sha(
                base_commit_sha
            )
        data = self._request("POST", "git/trees", json=payload)
        return data["sha"]

    def create_commit(
        self, message: str, tree_sha: str, parent_sha: str
    ) -> str:
        """
        Create a commit object and return its SHA.
        """
        payload = {
            "message": message,
            "tree": tree_sha,
            "parents": [parent_sha] if parent_sha else [],
        }
        data = self._request("POST", "git/commits", json=payload)
        return data["sha"]

    def update_reference(self, commit_sha: str) -> bool:
        """
        Move the configured branch to commit_sha (fast-forward only).
        """
        self._request(
            "PATCH",
            f"git/refs/heads/{quote(self.branch)}",
            json={"sha": commit_sha, "force": False},
        )
        return True

    def validate_connection(self) -> str:
        """
        Validate credentials and repository access.
        Returns the branch head SHA if successful.
        """
        return self.get_reference()


def _decode(raw: str) -> str:
    return base64.b64decode(raw).decode("utf-8")


def _error_message(response: requests.Response) -> str:
    """Extract the API's error message, falling back to the reason phrase."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason or f"HTTP {response.status_code}"
