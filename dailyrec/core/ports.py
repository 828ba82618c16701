"""Port interfaces for the dailyrec webhook receiver.

These abstract base classes define the boundaries between core
domain logic and external adapters. Implementations live in the
adapters/ package.

Port Interface Categories:

1. **Driven Ports** (core calls out to adapters)
   - RecordingLookupPort: Read-only recording metadata and access links
   - EventLogPort: Append-only event log

2. **Driving Ports** (adapters/external systems call into core)
   - WebhookPort: Entry point for inbound webhook deliveries
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from .models import AccessLink, RecordingInfo

if TYPE_CHECKING:
    from .webhook_service import DeliveryResult


# ============================================================================
# DRIVEN PORTS (Core calls out to adapters)
# ============================================================================


class RecordingLookupPort(ABC):
    """Port for looking up recordings on the provider.

    The receiver only ever reads through this port. Implementations
    must not retry: a failed lookup is reported by raising and the
    caller records the field as unavailable.
    """

    @abstractmethod
    async def get_recording(self, recording_id: str) -> RecordingInfo:
        """Fetch recording metadata by id.

        Args:
            recording_id: Provider recording id.

        Returns:
            RecordingInfo. download_link is None while the recording
            is still processing.

        Raises:
            Exception: If the provider is unreachable or returns an error.
        """

    @abstractmethod
    async def get_access_link(
        self, recording_id: str, valid_for_secs: int = 3600
    ) -> AccessLink:
        """Fetch a time-limited access link for a recording.

        Args:
            recording_id: Provider recording id.
            valid_for_secs: Validity window of the link in seconds.

        Returns:
            AccessLink with the signed URL and its expiry.

        Raises:
            Exception: If the provider is unreachable or returns an error.
        """


class EventLogPort(ABC):
    """Port for the append-only event log.

    Implementations must never raise from log(): a logging failure is
    reported out of band and the request path carries on.
    """

    @abstractmethod
    def log(self, message: str) -> None:
        """Append a timestamped line for message."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable location of the log (e.g. a file path)."""


# ============================================================================
# DRIVING PORTS (External systems call into core)
# ============================================================================


class WebhookPort(ABC):
    """Port for inbound webhook deliveries."""

    @abstractmethod
    async def handle_delivery(
        self, raw_body: bytes, signature_header: str | None
    ) -> "DeliveryResult":
        """Authenticate, classify, dispatch and acknowledge one delivery.

        Args:
            raw_body: Request body exactly as received.
            signature_header: Value of the signature header, if any.

        Returns:
            DeliveryResult carrying the HTTP status and JSON body.
        """


__all__ = ["EventLogPort", "RecordingLookupPort", "WebhookPort"]
