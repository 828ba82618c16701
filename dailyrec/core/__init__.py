"""Core domain logic for the dailyrec webhook receiver.

This package contains zero external dependencies and represents
the pure business logic of the application. All adapters and
external integrations are handled by the adapters package.
"""

from .errors import (
    AuthenticationFailure,
    ConfigurationError,
    DailyRecError,
    EnrichmentFailure,
    MalformedPayload,
)
from .models import (
    AccessLink,
    EnrichedLogRecord,
    EventKind,
    RecordingErrorPayload,
    RecordingInfo,
    RecordingReadyPayload,
    RecordingSession,
    RecordingStartedPayload,
    Room,
    RoomSession,
    SubscriptionState,
    WebhookEvent,
    WebhookSubscription,
)

__all__ = [
    "AccessLink",
    "AuthenticationFailure",
    "ConfigurationError",
    "DailyRecError",
    "EnrichedLogRecord",
    "EnrichmentFailure",
    "EventKind",
    "MalformedPayload",
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
]
