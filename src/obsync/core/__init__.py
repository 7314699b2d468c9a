"""Core GitHub client functionality shared between CLI and MCP server."""

from .async_utils import run_sync
from .client import GitHubClient
from .result import Err, Ok, Result

__all__ = ["Err", "GitHubClient", "Ok", "Result", "run_sync"]
