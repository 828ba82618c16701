"""Recording event dispatch and enrichment.

Maps each classified event kind to a handler, enriches Ready events
with best-effort lookups, and appends exactly one line per event to
the event log.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .models import (
    EnrichedLogRecord,
    EventKind,
    RecordingReadyPayload,
    WebhookEvent,
)
from .ports import EventLogPort, RecordingLookupPort

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ACCESS_LINK_VALID_FOR_SECS = 3600


async def _optional(call: Awaitable[T], what: str, recording_id: str) -> T | None:
    """Await a lookup, turning any failure into None."""
    try:
        return await call
    except Exception as e:
        logger.warning(
            f"Could not fetch {what} for recording {recording_id}: {e}",
            extra={"recording_id": recording_id},
        )
        return None


class RecordingEventService:
    """Dispatches webhook events to per-kind handlers.

    Enrichment never propagates errors: a failed lookup leaves the
    corresponding field as None and the event is still logged.
    """

    def __init__(
        self,
        lookup: RecordingLookupPort,
        event_log: EventLogPort,
        access_link_valid_for_secs: int = DEFAULT_ACCESS_LINK_VALID_FOR_SECS,
    ):
        """Initialize the service.

        Args:
            lookup: Recording lookup used to enrich Ready events.
            event_log: Append-only log receiving one line per event.
            access_link_valid_for_secs: Validity window for access links.
        """
        if access_link_valid_for_secs <= 0:
            raise ValueError("access_link_valid_for_secs must be positive")
        self.lookup = lookup
        self.event_log = event_log
        self.access_link_valid_for_secs = access_link_valid_for_secs
        self._handlers: dict[
            EventKind, Callable[[WebhookEvent, bool], Awaitable[EnrichedLogRecord]]
        ] = {
            EventKind.RECORDING_STARTED: self._handle_plain,
            EventKind.RECORDING_READY: self._handle_ready,
            EventKind.RECORDING_ERROR: self._handle_plain,
            EventKind.UNKNOWN: self._handle_plain,
        }

    async def process(
        self, event: WebhookEvent, verified: bool
    ) -> EnrichedLogRecord | None:
        """Handle one event and append its log line.

        Args:
            event: Classified event.
            verified: Whether the delivery passed signature verification.

        Returns:
            The logged record, or None when a known event arrived without
            a payload (an INVALID EVENT line is logged instead).
        """
        if event.kind is not EventKind.UNKNOWN and event.payload is None:
            self.event_log.log(
                f"INVALID EVENT: Missing payload in {event.event_type} event"
            )
            return None

        record = await self._handlers[event.kind](event, verified)
        self.event_log.log(record.render())
        return record

    async def _handle_plain(
        self, event: WebhookEvent, verified: bool
    ) -> EnrichedLogRecord:
        return EnrichedLogRecord(event=event, verified=verified)

    async def _handle_ready(
        self, event: WebhookEvent, verified: bool
    ) -> EnrichedLogRecord:
        payload = event.payload
        assert isinstance(payload, RecordingReadyPayload)

        download_url, access_url = await self.enrich(payload.recording_id)
        return EnrichedLogRecord(
            event=event,
            verified=verified,
            download_url=download_url,
            access_url=access_url,
        )

    async def enrich(self, recording_id: str | None) -> tuple[str | None, str | None]:
        """Look up the download URL and a time-limited access URL.

        Both lookups run concurrently, once each. Either result is None
        if its lookup failed or the provider had no link.
        """
        if not recording_id:
            logger.warning("Ready event has no recording_id, skipping enrichment")
            return None, None

        recording, access_link = await asyncio.gather(
            _optional(
                self.lookup.get_recording(recording_id),
                "recording details",
                recording_id,
            ),
            _optional(
                self.lookup.get_access_link(
                    recording_id, self.access_link_valid_for_secs
                ),
                "access link",
                recording_id,
            ),
        )
        download_url = recording.download_link if recording else None
        access_url = access_link.download_link if access_link else None
        return download_url, access_url


__all__ = ["DEFAULT_ACCESS_LINK_VALID_FOR_SECS", "RecordingEventService"]
