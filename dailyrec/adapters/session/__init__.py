"""Session persistence adapters for the CLI."""

from .json_file import JsonSessionStore

__all__ = ["JsonSessionStore"]
