"""Domain models for the dailyrec webhook receiver.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, TypeAlias

NOT_AVAILABLE = "Not available"


class EventKind(Enum):
    """Webhook event kinds delivered by the provider.

    UNKNOWN covers every event type this receiver does not handle
    explicitly. The raw type string is kept on the WebhookEvent so
    new provider events are logged verbatim.
    """

    RECORDING_STARTED = "recording.started"
    RECORDING_READY = "recording.ready-to-download"
    RECORDING_ERROR = "recording.error"
    UNKNOWN = "unknown"

    @classmethod
    def from_wire(cls, value: str) -> "EventKind":
        """Map a wire event type to a kind. Never raises."""
        for kind in cls:
            if kind is not cls.UNKNOWN and kind.value == value:
                return kind
        return cls.UNKNOWN


@dataclass(frozen=True)
class RecordingStartedPayload:
    """Payload of a recording.started event."""

    room_name: str | None
    recording_id: str | None
    started_by: str | None
    start_ts: float | None


@dataclass(frozen=True)
class RecordingReadyPayload:
    """Payload of a recording.ready-to-download event."""

    room_name: str | None
    recording_id: str | None
    duration: float | None  # seconds
    start_ts: float | None
    s3_key: str | None = None


@dataclass(frozen=True)
class RecordingErrorPayload:
    """Payload of a recording.error event."""

    room_name: str | None
    recording_id: str | None
    error_msg: str | None


EventPayload: TypeAlias = (
    RecordingStartedPayload
    | RecordingReadyPayload
    | RecordingErrorPayload
    | Mapping[str, Any]
    | None
)


@dataclass(frozen=True)
class WebhookEvent:
    """A classified webhook delivery.

    payload is None when a known kind arrived without a payload object,
    and the raw (read-only) mapping when the kind is UNKNOWN.
    """

    kind: EventKind
    event_type: str  # raw wire value, e.g. "recording.started"
    payload: EventPayload

    def __post_init__(self) -> None:
        """Convert a raw payload dict to a read-only proxy."""
        if isinstance(self.payload, dict):
            object.__setattr__(self, "payload", MappingProxyType(self.payload))


def format_epoch(ts: float | None) -> str:
    """Render seconds since epoch as an ISO-8601 UTC string."""
    if ts is None:
        return "Unknown"
    try:
        return datetime.fromtimestamp(ts, UTC).isoformat()
    except (OverflowError, OSError, ValueError):
        return f"Invalid timestamp ({ts})"


@dataclass(frozen=True)
class EnrichedLogRecord:
    """One processed event, ready to be appended to the event log.

    download_url and access_url are only ever set for Ready events, and
    stay None when the upstream lookup failed or had no link yet.
    """

    event: WebhookEvent
    verified: bool
    download_url: str | None = None
    access_url: str | None = None

    def render(self) -> str:
        """Render the record as a single log line."""
        payload = self.event.payload
        if isinstance(payload, RecordingStartedPayload):
            fields = [
                "RECORDING STARTED",
                f"Room: {payload.room_name}",
                f"Recording ID: {payload.recording_id}",
                f"Started by: {payload.started_by or 'Unknown'}",
                f"Start time: {format_epoch(payload.start_ts)}",
            ]
        elif isinstance(payload, RecordingReadyPayload):
            if payload.duration is None:
                duration = "Unknown"
            else:
                duration = f"{round(payload.duration / 60, 2)} minutes"
            fields = [
                "RECORDING STOPPED & READY",
                f"Room: {payload.room_name}",
                f"Recording ID: {payload.recording_id}",
                f"Duration: {duration}",
                f"Started: {format_epoch(payload.start_ts)}",
                f"S3 Key: {payload.s3_key or NOT_AVAILABLE}",
                f"Download URL: {self.download_url or NOT_AVAILABLE}",
                f"Streaming URL: {self.access_url or NOT_AVAILABLE}",
            ]
        elif isinstance(payload, RecordingErrorPayload):
            fields = [
                "RECORDING ERROR",
                f"Room: {payload.room_name}",
                f"Recording ID: {payload.recording_id}",
                f"Error: {payload.error_msg or 'Unknown error'}",
            ]
        else:
            fields = [f"WEBHOOK: Received event type: {self.event.event_type}"]

        fields.append(f"Signature: {'verified' if self.verified else 'unverified'}")
        return " | ".join(fields)


@dataclass(frozen=True)
class RecordingInfo:
    """Recording metadata as returned by the provider."""

    id: str
    room_name: str | None = None
    status: str | None = None
    duration: float | None = None
    start_ts: float | None = None
    share_token: str | None = None
    s3_key: str | None = None
    download_link: str | None = None


@dataclass(frozen=True)
class AccessLink:
    """A time-limited link granting read access to a stored recording."""

    download_link: str | None
    expires: float | None = None


@dataclass(frozen=True)
class Room:
    """A provider room."""

    name: str
    id: str | None = None
    url: str | None = None
    privacy: str | None = None
    created_at: str | None = None
    config: Mapping[str, Any] = field(default_factory=dict)


class SubscriptionState(Enum):
    """Lifecycle states the provider reports for a webhook subscription."""

    ACTIVE = "ACTIVE"
    FAILED = "FAILED"
    INACTIVE = "INACTIVE"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class WebhookSubscription:
    """A provider-owned webhook subscription.

    The receiver never manages this entity, it only verifies signatures
    produced with its secret. The CLI lists, creates and deletes them.
    """

    id: str
    url: str
    event_types: tuple[str, ...]
    state: SubscriptionState = SubscriptionState.UNKNOWN
    failed_count: int = 0
    created_at: str | None = None


@dataclass(frozen=True)
class RoomSession:
    """Room details remembered between CLI invocations."""

    room_name: str
    domain_id: str
    owner_token: str | None = None
    participant_token: str | None = None
    owner_url: str | None = None
    participant_url: str | None = None


@dataclass(frozen=True)
class RecordingSession:
    """The recording most recently started from the CLI."""

    recording_id: str
    room_name: str


__all__ = [
    "NOT_AVAILABLE",
    "AccessLink",
    "EnrichedLogRecord",
    "EventKind",
    "EventPayload",
    "RecordingErrorPayload",
    "RecordingInfo",
    "RecordingReadyPayload",
    "RecordingSession",
    "RecordingStartedPayload",
    "Room",
    "RoomSession",
    "SubscriptionState",
    "WebhookEvent",
    "WebhookSubscription",
    "format_epoch",
]
