"""JSON-file session persistence for the CLI.

Remembers the last created room and the last started recording between
CLI invocations, as two small JSON files in a session directory.
"""

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any

from dailyrec.core.models import RecordingSession, RoomSession

logger = logging.getLogger(__name__)

ROOM_FILE = "room-info.json"
RECORDING_FILE = "recording-info.json"
WEBHOOK_FILE = "webhook-info.json"


class JsonSessionStore:
    """Stores CLI session state as JSON files."""

    def __init__(self, session_dir: str | Path = "."):
        """Initialize the session store.

        Args:
            session_dir: Directory holding the session files.
        """
        self.base_dir = Path(session_dir)

    @property
    def room_path(self) -> Path:
        return self.base_dir / ROOM_FILE

    @property
    def recording_path(self) -> Path:
        return self.base_dir / RECORDING_FILE

    @property
    def webhook_path(self) -> Path:
        return self.base_dir / WEBHOOK_FILE

    def _write(self, path: Path, data: dict[str, Any]) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def _read(self, path: Path) -> dict[str, Any] | None:
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Corrupt session file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Corrupt session file {path}: expected an object")
        return data

    def save_room(self, room: RoomSession) -> None:
        """Persist the current room."""
        self._write(self.room_path, asdict(room))
        logger.debug(f"Saved room session to {self.room_path}")

    def load_room(self) -> RoomSession | None:
        """Load the current room, or None if no room was created."""
        data = self._read(self.room_path)
        if data is None:
            return None
        try:
            return RoomSession(**data)
        except TypeError as e:
            raise ValueError(f"Corrupt session file {self.room_path}: {e}") from e

    def save_recording(self, recording: RecordingSession) -> None:
        """Persist the most recently started recording."""
        self._write(self.recording_path, asdict(recording))

    def load_recording(self) -> RecordingSession | None:
        """Load the most recently started recording, if any."""
        data = self._read(self.recording_path)
        if data is None:
            return None
        try:
            return RecordingSession(**data)
        except TypeError as e:
            raise ValueError(f"Corrupt session file {self.recording_path}: {e}") from e

    def save_webhook(self, info: dict[str, Any]) -> None:
        """Persist details of the webhook subscription created by setup."""
        self._write(self.webhook_path, info)

    def clear(self) -> None:
        """Forget the room and recording sessions."""
        self.room_path.unlink(missing_ok=True)
        self.recording_path.unlink(missing_ok=True)


__all__ = ["JsonSessionStore"]
