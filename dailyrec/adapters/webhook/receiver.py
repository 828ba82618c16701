"""HTTP webhook receiver for provider callbacks.

Bridges the HTTP server and the core WebhookPort, and owns the small
probe endpoints (verification, health, test) the provider and operators
use. Every method returns a (status, JSON body) pair.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from dailyrec.core.ports import EventLogPort, WebhookPort

logger = logging.getLogger(__name__)

SIGNATURE_HEADERS = ("x-daily-signature", "x-signature")


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


class WebhookReceiver:
    """Receives provider webhooks and forwards them to the WebhookPort."""

    def __init__(self, webhook_port: WebhookPort, event_log: EventLogPort):
        """Initialize the webhook receiver.

        Args:
            webhook_port: Core delivery handler.
            event_log: Event log for probe markers and internal faults.
        """
        self.webhook_port = webhook_port
        self.event_log = event_log

    async def handle_delivery(
        self, raw_body: bytes, signature_header: str | None
    ) -> tuple[int, dict[str, Any]]:
        """Handle a POSTed webhook event.

        Returns:
            HTTP status and JSON body.
        """
        result = await self.webhook_port.handle_delivery(raw_body, signature_header)
        logger.info(
            "Webhook delivery handled",
            extra={"state": result.state.value, "status": result.status},
        )
        return result.status, result.body

    def handle_verification(self, path: str) -> tuple[int, dict[str, Any]]:
        """Answer the provider's unsigned setup probe. Always 200."""
        self.event_log.log(
            f"VERIFICATION: Daily.co webhook verification request received on {path}"
        )
        return 200, {
            "message": "Daily.co webhook endpoint verified",
            "timestamp": _timestamp(),
        }

    def handle_health(self) -> tuple[int, dict[str, Any]]:
        """Liveness probe."""
        return 200, {
            "status": "healthy",
            "timestamp": _timestamp(),
            "logFile": self.event_log.location,
        }

    def handle_test(self) -> tuple[int, dict[str, Any]]:
        """Diagnostic probe that appends a marker line."""
        self.event_log.log("TEST: Webhook server test endpoint accessed")
        return 200, {
            "message": "Webhook server is running",
            "logFile": self.event_log.location,
            "timestamp": _timestamp(),
        }

    def handle_fault(self, error: Exception) -> tuple[int, dict[str, Any]]:
        """Record an unexpected exception raised while handling a request."""
        logger.error(f"Error handling webhook request: {error}", exc_info=error)
        self.event_log.log(f"WEBHOOK ERROR: {error}")
        return 500, {"error": "Internal server error"}


__all__ = ["SIGNATURE_HEADERS", "WebhookReceiver"]
