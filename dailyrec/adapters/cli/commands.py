"""CLI command implementations for dailyrec.

Maps CLI commands to Daily API calls, remembers the created room and
recording between invocations, and manages webhook subscriptions.
Every command returns a JSON-serializable dictionary with a "status"
of "success" or "error".
"""

import base64
import logging
import secrets
import time
import uuid
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import httpx
from dotenv import set_key

from dailyrec.adapters.daily.client import DailyApiClient, DailyApiError
from dailyrec.adapters.daily.tokens import generate_meeting_token
from dailyrec.adapters.session.json_file import JsonSessionStore
from dailyrec.config import Settings
from dailyrec.core.models import (
    EventKind,
    RecordingInfo,
    RecordingSession,
    RoomSession,
    WebhookSubscription,
)

logger = logging.getLogger(__name__)

ROOM_TTL_SECONDS = 24 * 60 * 60
SECRET_PLACEHOLDER = "your_webhook_secret_here"
RECORDING_EVENT_TYPES = [kind.value for kind in EventKind if kind is not EventKind.UNKNOWN]


def generate_webhook_secret() -> str:
    """Return a fresh base64-encoded 32-byte webhook secret."""
    return base64.b64encode(secrets.token_bytes(32)).decode("ascii")


def _recording_dict(recording: RecordingInfo) -> dict[str, Any]:
    return asdict(recording)


def _subscription_dict(subscription: WebhookSubscription) -> dict[str, Any]:
    return {
        "id": subscription.id,
        "url": subscription.url,
        "event_types": list(subscription.event_types),
        "state": subscription.state.value,
        "failed_count": subscription.failed_count,
        "created_at": subscription.created_at,
    }


def _failure(operation: str, error: Exception, **fields: Any) -> dict[str, Any]:
    logger.error(f"{operation} failed: {error}")
    result: dict[str, Any] = {
        "status": "error",
        "operation": operation,
        "message": str(error),
    }
    detail = getattr(error, "detail", None)
    if detail:
        result["detail"] = detail
    result.update(fields)
    return result


class CLICommandHandler:
    """Handles CLI commands against the Daily API.

    Room and recording state is kept in a JsonSessionStore so that
    follow-up commands (start-recording, stop-recording, delete-room)
    act on the room created by create-room.
    """

    def __init__(
        self,
        client: DailyApiClient,
        session: JsonSessionStore,
        settings: Settings,
        env_file: str | Path = ".env",
        probe_transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the CLI command handler.

        Args:
            client: Daily API client.
            session: Session store for room and recording info.
            settings: Loaded application settings.
            env_file: .env file updated when a webhook secret is generated.
            probe_transport: Optional httpx transport for endpoint probes (tests).
        """
        self.client = client
        self.session = session
        self.settings = settings
        self.env_file = Path(env_file)
        self.probe_transport = probe_transport

    # ------------------------------------------------------------------
    # URL helpers
    # ------------------------------------------------------------------

    def _domain(self, domain_config: dict[str, Any] | None = None) -> str:
        if self.settings.daily_domain:
            return self.settings.daily_domain
        if domain_config and domain_config.get("domain_name"):
            return f"{domain_config['domain_name']}.daily.co"
        return "api.daily.co"

    def meeting_url(self, room_name: str, domain: str | None = None) -> str:
        """Browser URL of a room."""
        return f"https://{domain or self._domain()}/{room_name}"

    def share_url(self, share_token: str) -> str:
        """Browser URL for a recording share token."""
        subdomain = self._domain().removesuffix(".daily.co")
        return f"https://{subdomain}.daily.co/rec/{share_token}"

    def _require_room(self) -> RoomSession:
        room = self.session.load_room()
        if room is None:
            raise ValueError("No room info found. Create a room first.")
        return room

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    async def create_room(self) -> dict[str, Any]:
        """Create a private cloud-recording room and mint tokens for it."""
        try:
            domain_config = await self.client.get_domain_config()
            domain_id = domain_config.get("domain_id")
            if not domain_id:
                raise ValueError("Domain configuration has no domain_id")

            room_name = f"test-room-{uuid.uuid4().hex[:8]}"
            room = await self.client.create_room(
                room_name,
                privacy="private",
                properties={
                    "exp": int(time.time()) + ROOM_TTL_SECONDS,
                    "enable_chat": True,
                    "enable_screenshare": True,
                    "start_video_off": False,
                    "start_audio_off": False,
                    "enable_recording": "cloud",
                },
            )

            api_key = self.settings.daily_api_key
            owner_token = generate_meeting_token(
                api_key, room.name, domain_id, "Test Interviewer", is_owner=True
            )
            participant_token = generate_meeting_token(
                api_key, room.name, domain_id, "Test Candidate", is_owner=False
            )
            base_url = self.meeting_url(room.name, self._domain(domain_config))
            room_session = RoomSession(
                room_name=room.name,
                domain_id=domain_id,
                owner_token=owner_token,
                participant_token=participant_token,
                owner_url=f"{base_url}?t={owner_token}",
                participant_url=f"{base_url}?t={participant_token}",
            )
            self.session.save_room(room_session)
            logger.info(f"Created room {room.name}")

            return {
                "status": "success",
                "operation": "create_room",
                "room_name": room.name,
                "meeting_url": base_url,
                "owner": {
                    "token": owner_token,
                    "url": room_session.owner_url,
                },
                "participant": {
                    "token": participant_token,
                    "url": room_session.participant_url,
                },
            }
        except (DailyApiError, ValueError) as e:
            return _failure("create_room", e)

    async def list_rooms(self) -> dict[str, Any]:
        """List all rooms in the domain."""
        try:
            rooms = await self.client.list_rooms()
            return {
                "status": "success",
                "operation": "list_rooms",
                "count": len(rooms),
                "rooms": [
                    {
                        "name": room.name,
                        "id": room.id,
                        "url": room.url,
                        "privacy": room.privacy,
                        "created_at": room.created_at,
                    }
                    for room in rooms
                ],
            }
        except DailyApiError as e:
            return _failure("list_rooms", e)

    async def delete_room(self) -> dict[str, Any]:
        """Delete the session room and forget the session."""
        try:
            room = self._require_room()
            await self.client.delete_room(room.room_name)
            self.session.clear()
            return {
                "status": "success",
                "operation": "delete_room",
                "room_name": room.room_name,
            }
        except (DailyApiError, ValueError) as e:
            return _failure("delete_room", e)

    # ------------------------------------------------------------------
    # Recordings
    # ------------------------------------------------------------------

    async def start_recording(
        self, layout: str = "default", max_duration: int = 300
    ) -> dict[str, Any]:
        """Start a cloud recording in the session room."""
        try:
            room = self._require_room()
            data = await self.client.start_recording(
                room.room_name, layout=layout, max_duration=max_duration
            )
            recording_id = data.get("id") or data.get("recordingId")
            if recording_id:
                self.session.save_recording(
                    RecordingSession(recording_id=str(recording_id), room_name=room.room_name)
                )
            return {
                "status": "success",
                "operation": "start_recording",
                "room_name": room.room_name,
                "recording_id": recording_id,
                "response": data,
            }
        except (DailyApiError, ValueError) as e:
            return _failure("start_recording", e)

    async def stop_recording(self) -> dict[str, Any]:
        """Stop the cloud recording in the session room."""
        try:
            room = self._require_room()
            recording = self.session.load_recording()
            if recording is None:
                raise ValueError("No recording info found. Start a recording first.")
            data = await self.client.stop_recording(room.room_name)
            return {
                "status": "success",
                "operation": "stop_recording",
                "room_name": room.room_name,
                "recording_id": recording.recording_id,
                "response": data,
            }
        except (DailyApiError, ValueError) as e:
            return _failure("stop_recording", e)

    async def list_recordings(self, room_name: str | None = None) -> dict[str, Any]:
        """List recordings, defaulting to the session room when one exists."""
        try:
            if room_name is None:
                room = self.session.load_room()
                room_name = room.room_name if room else None
            recordings = await self.client.list_recordings(room_name)
            return {
                "status": "success",
                "operation": "list_recordings",
                "room_name": room_name,
                "count": len(recordings),
                "recordings": [_recording_dict(r) for r in recordings],
            }
        except (DailyApiError, ValueError) as e:
            return _failure("list_recordings", e)

    async def recordings_by_room(self, room_name: str) -> dict[str, Any]:
        """List recordings for a specific room."""
        try:
            recordings = await self.client.list_recordings(room_name)
            return {
                "status": "success",
                "operation": "recordings_by_room",
                "room_name": room_name,
                "count": len(recordings),
                "recordings": [_recording_dict(r) for r in recordings],
            }
        except DailyApiError as e:
            return _failure("recordings_by_room", e)

    async def access_recordings(self) -> dict[str, Any]:
        """List recordings with their browser share URLs."""
        try:
            room = self.session.load_room()
            recordings = await self.client.list_recordings(room.room_name if room else None)
            return {
                "status": "success",
                "operation": "access_recordings",
                "count": len(recordings),
                "recordings": [
                    {
                        "id": r.id,
                        "status": r.status,
                        "duration": r.duration,
                        "share_token": r.share_token,
                        "browser_url": self.share_url(r.share_token) if r.share_token else None,
                        "s3_key": r.s3_key,
                    }
                    for r in recordings
                ],
            }
        except (DailyApiError, ValueError) as e:
            return _failure("access_recordings", e)

    async def get_recording(self, recording_id: str) -> dict[str, Any]:
        """Get details of one recording."""
        try:
            recording = await self.client.get_recording(recording_id)
            return {
                "status": "success",
                "operation": "get_recording",
                "recording": _recording_dict(recording),
            }
        except DailyApiError as e:
            return _failure("get_recording", e, recording_id=recording_id)

    async def get_download_url(self, recording_id: str) -> dict[str, Any]:
        """Get the download URL of a recording, if it is ready."""
        try:
            recording = await self.client.get_recording(recording_id)
            result: dict[str, Any] = {
                "status": "success",
                "operation": "get_download_url",
                "recording_id": recording_id,
                "download_url": recording.download_link,
            }
            if not recording.download_link:
                result["message"] = (
                    "Recording may still be processing or download link not available"
                )
            return result
        except DailyApiError as e:
            return _failure("get_download_url", e, recording_id=recording_id)

    async def get_share_url(self, recording_id: str) -> dict[str, Any]:
        """Get the browser share URL of a recording."""
        try:
            recording = await self.client.get_recording(recording_id)
            if not recording.share_token:
                return {
                    "status": "success",
                    "operation": "get_share_url",
                    "recording_id": recording_id,
                    "share_url": None,
                    "message": "No share token available for this recording",
                }
            return {
                "status": "success",
                "operation": "get_share_url",
                "recording_id": recording_id,
                "share_url": self.share_url(recording.share_token),
            }
        except DailyApiError as e:
            return _failure("get_share_url", e, recording_id=recording_id)

    async def get_access_link(
        self, recording_id: str, valid_for_secs: int | None = None
    ) -> dict[str, Any]:
        """Get a time-limited streaming link for a recording."""
        valid_for_secs = valid_for_secs or self.settings.access_link_valid_for_secs
        try:
            link = await self.client.get_access_link(recording_id, valid_for_secs)
            return {
                "status": "success",
                "operation": "get_access_link",
                "recording_id": recording_id,
                "access_link": link.download_link,
                "expires_at": (
                    datetime.fromtimestamp(link.expires, UTC).isoformat()
                    if link.expires
                    else None
                ),
            }
        except DailyApiError as e:
            return _failure("get_access_link", e, recording_id=recording_id)

    async def room_recordings(
        self, room_name: str, valid_for_secs: int | None = None
    ) -> dict[str, Any]:
        """List a room's recordings with access links for finished ones.

        A failed access-link lookup is recorded on its item and does not
        stop the others.
        """
        valid_for_secs = valid_for_secs or self.settings.access_link_valid_for_secs
        try:
            recordings = await self.client.list_recordings(room_name)
        except DailyApiError as e:
            return _failure("room_recordings", e, room_name=room_name)

        items: list[dict[str, Any]] = []
        for recording in recordings:
            item: dict[str, Any] = {
                "recording": _recording_dict(recording),
                "access_link": None,
                "expires_at": None,
            }
            if recording.status != "finished":
                item["note"] = f"Recording not finished (status: {recording.status})"
            else:
                try:
                    link = await self.client.get_access_link(recording.id, valid_for_secs)
                    item["access_link"] = link.download_link
                    if link.expires:
                        item["expires_at"] = datetime.fromtimestamp(
                            link.expires, UTC
                        ).isoformat()
                except DailyApiError as e:
                    logger.warning(f"Access link unavailable for {recording.id}: {e}")
                    item["error"] = str(e)
            items.append(item)

        return {
            "status": "success",
            "operation": "room_recordings",
            "room_name": room_name,
            "count": len(items),
            "recordings": items,
        }

    async def download_recording(
        self, recording_id: str, output_dir: str | None = None
    ) -> dict[str, Any]:
        """Download a recording to output_dir."""
        try:
            recording = await self.client.get_recording(recording_id)
            if not recording.download_link:
                raise ValueError("Download URL not available")
            directory = Path(output_dir or self.settings.recordings_dir)
            filename = f"recording_{recording_id}_{int(time.time() * 1000)}.mp4"
            path = await self.client.download(recording.download_link, directory / filename)
            return {
                "status": "success",
                "operation": "download_recording",
                "recording_id": recording_id,
                "path": str(path),
            }
        except (DailyApiError, ValueError) as e:
            return _failure("download_recording", e, recording_id=recording_id)

    # ------------------------------------------------------------------
    # Webhook subscriptions
    # ------------------------------------------------------------------

    def webhook_url(self) -> str:
        """URL to register with Daily.

        Daily probes the base URL during setup, so a trailing /webhook
        is removed. The receiver serves both paths identically.
        """
        url = self.settings.webhook_url or (
            f"http://localhost:{self.settings.webhook_port}/webhook"
        )
        return url.rstrip("/").removesuffix("/webhook") or url

    async def test_webhook_endpoint(self) -> dict[str, Any]:
        """Probe the receiver's /health endpoint."""
        health_url = f"{self.webhook_url().rstrip('/')}/health"
        try:
            async with httpx.AsyncClient(
                timeout=5.0, transport=self.probe_transport
            ) as probe:
                response = await probe.get(health_url)
                response.raise_for_status()
                body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Webhook endpoint test failed: {e}")
            return {
                "status": "error",
                "operation": "test_webhook",
                "url": health_url,
                "accessible": False,
                "message": str(e),
            }
        return {
            "status": "success",
            "operation": "test_webhook",
            "url": health_url,
            "accessible": True,
            "health": body,
        }

    def _ensure_secret(self) -> tuple[str, bool]:
        secret = self.settings.daily_webhook_secret
        if secret and secret != SECRET_PLACEHOLDER:
            return secret, False

        secret = generate_webhook_secret()
        try:
            self.env_file.touch(exist_ok=True)
            set_key(str(self.env_file), "DAILY_WEBHOOK_SECRET", secret)
            logger.info(f"Wrote new webhook secret to {self.env_file}")
        except OSError as e:
            logger.warning(
                f"Could not update {self.env_file} ({e}); "
                "add DAILY_WEBHOOK_SECRET manually"
            )
        return secret, True

    async def setup_webhook(self) -> dict[str, Any]:
        """Replace all webhook subscriptions with one for recording events."""
        probe = await self.test_webhook_endpoint()
        if not probe["accessible"]:
            logger.warning(
                "Webhook endpoint is not accessible, continuing with setup. "
                "Start the webhook server before Daily verifies the URL."
            )

        secret, generated = self._ensure_secret()
        url = self.webhook_url()

        try:
            existing = await self.client.list_webhooks()
        except DailyApiError as e:
            logger.warning(f"Could not list existing webhooks: {e}")
            existing = []

        deleted: list[str] = []
        for subscription in existing:
            try:
                await self.client.delete_webhook(subscription.id)
                deleted.append(subscription.id)
            except DailyApiError as e:
                logger.error(f"Error deleting webhook {subscription.id}: {e}")

        try:
            created = await self.client.create_webhook(
                url, RECORDING_EVENT_TYPES, hmac_secret=secret
            )
        except DailyApiError as e:
            hints = None
            if e.status_code == 400:
                hints = [
                    "Make sure your webhook server is running and accessible",
                    "Check that the webhook URL is correct and reachable",
                    "Ensure the endpoint returns a 200 status code",
                    "When testing locally, expose the server with a tunnel",
                ]
            return _failure("setup_webhook", e, url=url, hints=hints)

        info = _subscription_dict(created)
        info["saved_at"] = datetime.now(UTC).isoformat()
        self.session.save_webhook(info)

        return {
            "status": "success",
            "operation": "setup_webhook",
            "webhook": info,
            "deleted": deleted,
            "secret_generated": generated,
            "endpoint_accessible": probe["accessible"],
        }

    async def list_webhooks(self) -> dict[str, Any]:
        """List webhook subscriptions."""
        try:
            subscriptions = await self.client.list_webhooks()
            return {
                "status": "success",
                "operation": "list_webhooks",
                "count": len(subscriptions),
                "webhooks": [_subscription_dict(s) for s in subscriptions],
            }
        except DailyApiError as e:
            return _failure("list_webhooks", e)

    async def delete_webhooks(self, webhook_id: str | None = None) -> dict[str, Any]:
        """Delete one webhook subscription, or all of them."""
        try:
            if webhook_id:
                ids = [webhook_id]
            else:
                ids = [s.id for s in await self.client.list_webhooks()]
        except DailyApiError as e:
            return _failure("delete_webhooks", e)

        deleted: list[str] = []
        failed: dict[str, str] = {}
        for wid in ids:
            try:
                await self.client.delete_webhook(wid)
                deleted.append(wid)
            except DailyApiError as e:
                if e.status_code == 404:
                    logger.info(f"Webhook {wid} not found, already deleted")
                    deleted.append(wid)
                else:
                    failed[wid] = str(e)

        return {
            "status": "error" if failed else "success",
            "operation": "delete_webhooks",
            "deleted": deleted,
            "failed": failed,
        }

    # ------------------------------------------------------------------
    # Domain
    # ------------------------------------------------------------------

    async def configure_s3(
        self,
        bucket_name: str | None = None,
        bucket_region: str | None = None,
        assume_role_arn: str | None = None,
        allow_api_access: bool | None = None,
        allow_streaming_from_bucket: bool = False,
    ) -> dict[str, Any]:
        """Configure the domain's recording bucket, defaulting to settings."""
        bucket_name = bucket_name or self.settings.recording_bucket_name
        bucket_region = bucket_region or self.settings.recording_bucket_region
        assume_role_arn = assume_role_arn or self.settings.recording_assume_role_arn
        if allow_api_access is None:
            allow_api_access = self.settings.recording_allow_api_access

        try:
            if not bucket_name or not bucket_region or not assume_role_arn:
                raise ValueError(
                    "Missing S3 configuration. Provide bucket name, region and "
                    "role ARN as arguments or in the environment."
                )
            data = await self.client.configure_recordings_bucket(
                bucket_name,
                bucket_region,
                assume_role_arn,
                allow_api_access=allow_api_access,
                allow_streaming_from_bucket=allow_streaming_from_bucket,
            )
            return {
                "status": "success",
                "operation": "configure_s3",
                "response": data,
            }
        except (DailyApiError, ValueError) as e:
            return _failure("configure_s3", e)


__all__ = ["CLICommandHandler", "RECORDING_EVENT_TYPES", "generate_webhook_secret"]
