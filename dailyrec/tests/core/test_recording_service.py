"""Unit tests for recording event dispatch, enrichment and rendering."""

import asyncio

import pytest

from dailyrec.core.models import (
    EnrichedLogRecord,
    EventKind,
    RecordingErrorPayload,
    RecordingReadyPayload,
    RecordingStartedPayload,
    WebhookEvent,
    format_epoch,
)
from dailyrec.core.recording_service import RecordingEventService
from dailyrec.tests.fakes import FakeEventLogPort, FakeRecordingLookupPort

# ============================================================================
# Test Fixtures
# ============================================================================


@pytest.fixture
def lookup() -> FakeRecordingLookupPort:
    return FakeRecordingLookupPort()


@pytest.fixture
def event_log() -> FakeEventLogPort:
    return FakeEventLogPort()


@pytest.fixture
def service(lookup, event_log) -> RecordingEventService:
    return RecordingEventService(lookup=lookup, event_log=event_log)


@pytest.fixture
def ready_event() -> WebhookEvent:
    return WebhookEvent(
        kind=EventKind.RECORDING_READY,
        event_type="recording.ready-to-download",
        payload=RecordingReadyPayload(
            room_name="demo",
            recording_id="r2",
            duration=150,
            start_ts=1700000000,
            s3_key="acme/demo/1700000000",
        ),
    )


@pytest.fixture
def started_event() -> WebhookEvent:
    return WebhookEvent(
        kind=EventKind.RECORDING_STARTED,
        event_type="recording.started",
        payload=RecordingStartedPayload(
            room_name="demo", recording_id="r1", started_by="alice", start_ts=1700000000
        ),
    )


# ============================================================================
# Rendering
# ============================================================================


class TestEnrichedLogRecordRender:
    """Tests for the single-line rendering of processed events."""

    def test_started(self, started_event):
        line = EnrichedLogRecord(event=started_event, verified=True).render()
        assert line.startswith("RECORDING STARTED")
        assert "Room: demo" in line
        assert "Recording ID: r1" in line
        assert "Started by: alice" in line
        assert "Start time: 2023-11-14T22:13:20+00:00" in line
        assert "Signature: verified" in line
        assert "\n" not in line

    def test_started_by_defaults_to_unknown(self):
        event = WebhookEvent(
            kind=EventKind.RECORDING_STARTED,
            event_type="recording.started",
            payload=RecordingStartedPayload(
                room_name="demo", recording_id="r1", started_by=None, start_ts=None
            ),
        )
        line = EnrichedLogRecord(event=event, verified=False).render()
        assert "Started by: Unknown" in line
        assert "Start time: Unknown" in line
        assert "Signature: unverified" in line

    def test_ready_with_links(self, ready_event):
        line = EnrichedLogRecord(
            event=ready_event,
            verified=True,
            download_url="https://dl.example/r2.mp4",
            access_url="https://stream.example/r2",
        ).render()
        assert line.startswith("RECORDING STOPPED & READY")
        assert "Duration: 2.5 minutes" in line
        assert "S3 Key: acme/demo/1700000000" in line
        assert "Download URL: https://dl.example/r2.mp4" in line
        assert "Streaming URL: https://stream.example/r2" in line

    def test_ready_without_links(self, ready_event):
        line = EnrichedLogRecord(event=ready_event, verified=True).render()
        assert "Download URL: Not available" in line
        assert "Streaming URL: Not available" in line

    def test_error(self):
        event = WebhookEvent(
            kind=EventKind.RECORDING_ERROR,
            event_type="recording.error",
            payload=RecordingErrorPayload(
                room_name="demo", recording_id="r3", error_msg=None
            ),
        )
        line = EnrichedLogRecord(event=event, verified=True).render()
        assert line.startswith("RECORDING ERROR")
        assert "Error: Unknown error" in line

    def test_unknown(self):
        event = WebhookEvent(
            kind=EventKind.UNKNOWN, event_type="meeting.ended", payload={"x": 1}
        )
        line = EnrichedLogRecord(event=event, verified=True).render()
        assert "WEBHOOK: Received event type: meeting.ended" in line

    def test_format_epoch_invalid(self):
        assert format_epoch(1e20).startswith("Invalid timestamp")

    def test_huge_duration_renders(self):
        event = WebhookEvent(
            kind=EventKind.RECORDING_READY,
            event_type="recording.ready-to-download",
            payload=RecordingReadyPayload(
                room_name="demo", recording_id="r2", duration=float("inf"), start_ts=None
            ),
        )
        line = EnrichedLogRecord(event=event, verified=True).render()
        assert line.startswith("RECORDING STOPPED & READY")


# ============================================================================
# Dispatch and enrichment
# ============================================================================


class TestRecordingEventService:
    """Tests for RecordingEventService."""

    def test_rejects_non_positive_validity(self, lookup, event_log):
        with pytest.raises(ValueError):
            RecordingEventService(lookup, event_log, access_link_valid_for_secs=0)

    async def test_started_is_logged_without_lookups(
        self, service, lookup, event_log, started_event
    ):
        record = await service.process(started_event, verified=True)

        assert record is not None
        assert len(event_log.lines) == 1
        assert "RECORDING STARTED" in event_log.lines[0]
        assert lookup.get_recording_calls == []
        assert lookup.get_access_link_calls == []

    async def test_ready_is_enriched(self, service, lookup, event_log, ready_event):
        lookup.add_recording(
            "r2",
            download_link="https://dl.example/r2.mp4",
            access_link="https://stream.example/r2",
        )

        record = await service.process(ready_event, verified=True)

        assert record.download_url == "https://dl.example/r2.mp4"
        assert record.access_url == "https://stream.example/r2"
        assert lookup.get_access_link_calls == [("r2", 3600)]
        assert len(event_log.lines) == 1
        assert "Download URL: https://dl.example/r2.mp4" in event_log.lines[0]

    async def test_ready_with_both_lookups_failing(
        self, service, lookup, event_log, ready_event
    ):
        lookup.set_should_fail(True)

        record = await service.process(ready_event, verified=True)

        assert record.download_url is None
        assert record.access_url is None
        assert len(event_log.lines) == 1
        assert "Download URL: Not available" in event_log.lines[0]
        assert "Streaming URL: Not available" in event_log.lines[0]
        # single attempt each
        assert lookup.get_recording_calls == ["r2"]
        assert len(lookup.get_access_link_calls) == 1

    async def test_ready_with_one_lookup_failing(
        self, service, lookup, event_log, ready_event
    ):
        lookup.add_recording(
            "r2", download_link="https://dl.example/r2.mp4", access_link="https://s/r2"
        )
        lookup.fail_access_link = True

        record = await service.process(ready_event, verified=True)

        assert record.download_url == "https://dl.example/r2.mp4"
        assert record.access_url is None

    async def test_recording_still_processing(
        self, service, lookup, event_log, ready_event
    ):
        lookup.add_recording("r2", download_link=None, access_link=None)

        record = await service.process(ready_event, verified=True)

        assert record.download_url is None
        assert record.access_url is None

    async def test_lookups_run_concurrently(self, lookup, event_log, ready_event):
        lookup.add_recording("r2", download_link="d", access_link="a")
        lookup.delay_seconds = 0.2
        service = RecordingEventService(lookup=lookup, event_log=event_log)

        loop = asyncio.get_running_loop()
        started = loop.time()
        await service.process(ready_event, verified=True)
        elapsed = loop.time() - started

        assert elapsed < 0.35

    async def test_custom_access_link_validity(self, lookup, event_log, ready_event):
        lookup.add_recording("r2", download_link="d", access_link="a")
        service = RecordingEventService(
            lookup=lookup, event_log=event_log, access_link_valid_for_secs=600
        )

        await service.process(ready_event, verified=True)

        assert lookup.get_access_link_calls == [("r2", 600)]

    async def test_ready_without_recording_id_skips_lookups(
        self, service, lookup, event_log
    ):
        event = WebhookEvent(
            kind=EventKind.RECORDING_READY,
            event_type="recording.ready-to-download",
            payload=RecordingReadyPayload(
                room_name="demo", recording_id=None, duration=None, start_ts=None
            ),
        )

        record = await service.process(event, verified=True)

        assert record.download_url is None
        assert lookup.get_recording_calls == []
        assert len(event_log.lines) == 1

    async def test_known_event_without_payload(self, service, event_log):
        event = WebhookEvent(
            kind=EventKind.RECORDING_ERROR, event_type="recording.error", payload=None
        )

        record = await service.process(event, verified=True)

        assert record is None
        assert event_log.lines == [
            "INVALID EVENT: Missing payload in recording.error event"
        ]

    async def test_unknown_event_is_logged(self, service, event_log):
        event = WebhookEvent(
            kind=EventKind.UNKNOWN, event_type="transcript.ready", payload=None
        )

        record = await service.process(event, verified=False)

        assert record is not None
        assert len(event_log.lines) == 1
        assert "transcript.ready" in event_log.lines[0]
        assert "Signature: unverified" in event_log.lines[0]
