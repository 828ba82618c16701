"""Event log adapters."""

from .file import FileEventLog

__all__ = ["FileEventLog"]
