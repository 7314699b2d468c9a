"""obsync - keep a local vault in sync with a GitHub repository."""

__version__ = "0.1.0"
