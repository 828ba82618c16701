"""Decoding of raw webhook bodies into classified events.

The body is decoded exactly once, after authenticity is established.
Known kinds get a typed payload; anything else is kept as a raw mapping
so new provider event types pass through untouched.
"""

import json
from collections.abc import Mapping
from typing import Any

from .errors import MalformedPayload
from .models import (
    EventKind,
    EventPayload,
    RecordingErrorPayload,
    RecordingReadyPayload,
    RecordingStartedPayload,
    WebhookEvent,
)


def _str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    return str(value)


def _number(data: Mapping[str, Any], key: str) -> float | None:
    value = data.get(key)
    # bool is an int subclass but never a meaningful timestamp or duration
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        return float(value)
    except (OverflowError, ValueError):
        return None


def _decode_payload(kind: EventKind, raw: Any) -> EventPayload:
    if kind is EventKind.UNKNOWN:
        return raw if isinstance(raw, dict) else None
    if not isinstance(raw, dict):
        return None

    if kind is EventKind.RECORDING_STARTED:
        return RecordingStartedPayload(
            room_name=_str(raw, "room_name"),
            recording_id=_str(raw, "recording_id"),
            started_by=_str(raw, "started_by"),
            start_ts=_number(raw, "start_ts"),
        )
    if kind is EventKind.RECORDING_READY:
        return RecordingReadyPayload(
            room_name=_str(raw, "room_name"),
            recording_id=_str(raw, "recording_id"),
            duration=_number(raw, "duration"),
            start_ts=_number(raw, "start_ts"),
            s3_key=_str(raw, "s3_key"),
        )
    return RecordingErrorPayload(
        room_name=_str(raw, "room_name"),
        recording_id=_str(raw, "recording_id"),
        error_msg=_str(raw, "error_msg") or _str(raw, "error"),
    )


def parse_event(raw_body: bytes) -> WebhookEvent:
    """Decode a raw webhook body into a WebhookEvent.

    Args:
        raw_body: Request body exactly as received.

    Returns:
        The classified event.

    Raises:
        MalformedPayload: If the body is not a UTF-8 JSON object with a
            string "type" field.
    """
    try:
        document = json.loads(raw_body.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise MalformedPayload(f"Body is not valid UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise MalformedPayload(f"Body is not valid JSON: {e.msg}") from e
    except ValueError as e:
        # e.g. integer literals beyond the int string conversion limit
        raise MalformedPayload(f"Body is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise MalformedPayload("Body must be a JSON object")

    event_type = document.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise MalformedPayload("Body is missing the 'type' field")

    kind = EventKind.from_wire(event_type)
    return WebhookEvent(
        kind=kind,
        event_type=event_type,
        payload=_decode_payload(kind, document.get("payload")),
    )


__all__ = ["parse_event"]
