"""Per-request handling of inbound webhook deliveries.

Each delivery moves through:

    Received -> (Unauthenticated | Authenticated)
             -> (Malformed | Classified) -> Dispatched -> Acknowledged

Unauthenticated deliveries are answered with 401 and malformed ones
with 500. Everything that classifies is acknowledged with 200,
including event types this receiver does not know about.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import AuthenticationFailure, MalformedPayload
from .events import parse_event
from .models import EventKind, WebhookEvent
from .ports import EventLogPort, WebhookPort
from .recording_service import RecordingEventService
from .signature import verify_signature

logger = logging.getLogger(__name__)


class DeliveryState(Enum):
    """Terminal state reached by a delivery."""

    UNAUTHENTICATED = "unauthenticated"
    MALFORMED = "malformed"
    ACKNOWLEDGED = "acknowledged"


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of a delivery: the HTTP status and JSON body to send."""

    state: DeliveryState
    status: int
    body: dict[str, Any] = field(default_factory=dict)
    event: WebhookEvent | None = None


class WebhookDeliveryService(WebhookPort):
    """Authenticates, classifies and dispatches webhook deliveries.

    When no secret is configured, verification is bypassed and events
    are logged as unverified.
    """

    def __init__(
        self,
        event_service: RecordingEventService,
        event_log: EventLogPort,
        secret: str | bytes | None = None,
        defer_enrichment: bool = False,
    ):
        """Initialize the delivery service.

        Args:
            event_service: Dispatcher for classified events.
            event_log: Event log for authentication and payload errors.
            secret: Webhook signing secret. None or empty disables verification.
            defer_enrichment: If True, Ready events are acknowledged before
                enrichment runs in a background task.
        """
        self.event_service = event_service
        self.event_log = event_log
        self.secret = secret or None
        self.defer_enrichment = defer_enrichment
        self._pending: set[asyncio.Task[Any]] = set()

    @property
    def verification_enabled(self) -> bool:
        """Whether deliveries must carry a valid signature."""
        return self.secret is not None

    async def handle_delivery(
        self, raw_body: bytes, signature_header: str | None
    ) -> DeliveryResult:
        """Authenticate, classify, dispatch and acknowledge one delivery."""
        try:
            verified = self._authenticate(raw_body, signature_header)
        except AuthenticationFailure as e:
            self.event_log.log(f"WEBHOOK ERROR: {e}")
            return DeliveryResult(
                state=DeliveryState.UNAUTHENTICATED,
                status=401,
                body={"error": "Invalid signature"},
            )

        try:
            event = parse_event(raw_body)
        except MalformedPayload as e:
            self.event_log.log(f"WEBHOOK ERROR: Malformed payload: {e}")
            return DeliveryResult(
                state=DeliveryState.MALFORMED,
                status=500,
                body={"error": "Malformed payload"},
            )

        logger.debug(
            "Webhook event classified",
            extra={"event_type": event.event_type, "verified": verified},
        )

        if self.defer_enrichment and event.kind is EventKind.RECORDING_READY:
            self._schedule(event, verified)
        else:
            await self.event_service.process(event, verified)

        return DeliveryResult(
            state=DeliveryState.ACKNOWLEDGED,
            status=200,
            body={"status": "received"},
            event=event,
        )

    def _authenticate(self, raw_body: bytes, signature_header: str | None) -> bool:
        """Check the delivery signature.

        Returns:
            True if the signature was verified, False if verification is off.

        Raises:
            AuthenticationFailure: If a secret is set and the signature is
                missing or does not match.
        """
        if not self.verification_enabled:
            return False
        if not verify_signature(raw_body, signature_header, self.secret):
            raise AuthenticationFailure("Invalid signature")
        return True

    def _schedule(self, event: WebhookEvent, verified: bool) -> None:
        task = asyncio.create_task(self.event_service.process(event, verified))
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: "asyncio.Task[Any]") -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Deferred event processing failed: {exc}", exc_info=exc)
            self.event_log.log(f"WEBHOOK ERROR: {exc}")

    @property
    def pending_count(self) -> int:
        """Number of deferred events still being processed."""
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for all deferred event processing to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = ["DeliveryResult", "DeliveryState", "WebhookDeliveryService"]
