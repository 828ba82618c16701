"""Unit tests for webhook event classification."""

import json

import pytest

from dailyrec.core.errors import MalformedPayload
from dailyrec.core.events import parse_event
from dailyrec.core.models import (
    EventKind,
    RecordingErrorPayload,
    RecordingReadyPayload,
    RecordingStartedPayload,
)


def _body(document: object) -> bytes:
    return json.dumps(document).encode()


class TestEventKind:
    """Tests for the wire-to-kind mapping."""

    @pytest.mark.parametrize(
        "wire,kind",
        [
            ("recording.started", EventKind.RECORDING_STARTED),
            ("recording.ready-to-download", EventKind.RECORDING_READY),
            ("recording.error", EventKind.RECORDING_ERROR),
            ("meeting.ended", EventKind.UNKNOWN),
            ("unknown", EventKind.UNKNOWN),
            ("", EventKind.UNKNOWN),
        ],
    )
    def test_from_wire_is_total(self, wire, kind):
        assert EventKind.from_wire(wire) is kind


class TestParseEvent:
    """Tests for parse_event."""

    def test_recording_started(self):
        event = parse_event(
            _body(
                {
                    "type": "recording.started",
                    "payload": {
                        "room_name": "demo",
                        "recording_id": "r1",
                        "started_by": "alice",
                        "start_ts": 1700000000,
                    },
                }
            )
        )
        assert event.kind is EventKind.RECORDING_STARTED
        assert event.event_type == "recording.started"
        assert event.payload == RecordingStartedPayload(
            room_name="demo", recording_id="r1", started_by="alice", start_ts=1700000000
        )

    def test_recording_ready(self):
        event = parse_event(
            _body(
                {
                    "type": "recording.ready-to-download",
                    "payload": {
                        "room_name": "demo",
                        "recording_id": "r2",
                        "duration": 95,
                        "start_ts": 1700000000,
                        "s3_key": "domain/demo/1700000000",
                    },
                }
            )
        )
        assert isinstance(event.payload, RecordingReadyPayload)
        assert event.payload.duration == 95
        assert event.payload.s3_key == "domain/demo/1700000000"

    def test_recording_ready_without_s3_key(self):
        event = parse_event(
            _body(
                {
                    "type": "recording.ready-to-download",
                    "payload": {"room_name": "demo", "recording_id": "r2"},
                }
            )
        )
        assert event.payload.s3_key is None
        assert event.payload.duration is None

    def test_recording_error(self):
        event = parse_event(
            _body(
                {
                    "type": "recording.error",
                    "payload": {
                        "room_name": "demo",
                        "recording_id": "r3",
                        "error_msg": "encoder crashed",
                    },
                }
            )
        )
        assert event.payload == RecordingErrorPayload(
            room_name="demo", recording_id="r3", error_msg="encoder crashed"
        )

    def test_unknown_type_keeps_raw_payload(self):
        event = parse_event(
            _body({"type": "meeting.ended", "payload": {"meeting_id": "m1"}})
        )
        assert event.kind is EventKind.UNKNOWN
        assert event.event_type == "meeting.ended"
        assert event.payload["meeting_id"] == "m1"

    def test_unknown_payload_is_read_only(self):
        event = parse_event(_body({"type": "meeting.ended", "payload": {"a": 1}}))
        with pytest.raises(TypeError):
            event.payload["a"] = 2

    def test_known_type_without_payload(self):
        event = parse_event(_body({"type": "recording.started"}))
        assert event.kind is EventKind.RECORDING_STARTED
        assert event.payload is None

    def test_known_type_with_non_object_payload(self):
        event = parse_event(_body({"type": "recording.error", "payload": "oops"}))
        assert event.payload is None

    def test_numeric_strings_are_accepted(self):
        event = parse_event(
            _body(
                {
                    "type": "recording.started",
                    "payload": {"recording_id": "r1", "start_ts": "1700000000"},
                }
            )
        )
        assert event.payload.start_ts == 1700000000.0

    def test_boolean_timestamp_is_ignored(self):
        event = parse_event(
            _body({"type": "recording.started", "payload": {"start_ts": True}})
        )
        assert event.payload.start_ts is None

    @pytest.mark.parametrize(
        "raw",
        [
            b"",
            b"not json",
            b"{\"type\": ",
            b"\xff\xfe\x00",
            b"[]",
            b"\"recording.started\"",
            b"{}",
            b"{\"payload\": {}}",
            b"{\"type\": 42}",
            b"{\"type\": \"\"}",
        ],
    )
    def test_malformed_bodies_raise(self, raw):
        with pytest.raises(MalformedPayload):
            parse_event(raw)

    def test_integer_too_large_for_float_is_ignored(self):
        event = parse_event(
            _body(
                {
                    "type": "recording.ready-to-download",
                    "payload": {"recording_id": "r2", "duration": 10**400},
                }
            )
        )
        assert event.payload.duration is None

    def test_integers_are_converted_to_float(self):
        event = parse_event(
            _body({"type": "recording.started", "payload": {"start_ts": 1700000000}})
        )
        assert isinstance(event.payload.start_ts, float)

    def test_integer_literal_over_digit_limit_is_malformed(self):
        raw = b'{"type": "recording.started", "payload": {"start_ts": ' + b"9" * 5000 + b"}}"
        with pytest.raises(MalformedPayload):
            parse_event(raw)
