"""Daily REST API adapter.

Implements RecordingLookupPort for the webhook receiver and exposes the
room, recording, webhook-subscription and domain endpoints used by the
CLI. All calls are single attempts bounded by the client timeout.

Listing endpoints are parsed against one documented response shape each:
rooms and recordings return {"total_count": n, "data": [...]}, webhooks
return a bare array of subscription objects keyed by "uuid".
"""

import logging
from pathlib import Path
from typing import Any

import httpx

from dailyrec.core.errors import EnrichmentFailure
from dailyrec.core.models import (
    AccessLink,
    RecordingInfo,
    Room,
    SubscriptionState,
    WebhookSubscription,
)
from dailyrec.core.ports import RecordingLookupPort

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.daily.co/v1"


class DailyApiError(EnrichmentFailure):
    """A Daily API call failed.

    status_code is None for transport errors (timeouts, DNS, refused
    connections) and the HTTP status otherwise.
    """

    def __init__(
        self, message: str, status_code: int | None = None, detail: Any = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


def _float_or_none(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_recording(data: dict[str, Any]) -> RecordingInfo:
    return RecordingInfo(
        id=str(data.get("id", "")),
        room_name=data.get("room_name"),
        status=data.get("status"),
        duration=_float_or_none(data.get("duration")),
        start_ts=_float_or_none(data.get("start_ts")),
        share_token=data.get("share_token"),
        s3_key=data.get("s3key") or data.get("s3_key"),
        download_link=data.get("download_link"),
    )


def _parse_room(data: dict[str, Any]) -> Room:
    return Room(
        name=str(data.get("name", "")),
        id=data.get("id"),
        url=data.get("url"),
        privacy=data.get("privacy"),
        created_at=data.get("created_at"),
        config=data.get("config") or {},
    )


def _parse_subscription(data: dict[str, Any]) -> WebhookSubscription:
    try:
        state = SubscriptionState(str(data.get("state", "")).upper())
    except ValueError:
        state = SubscriptionState.UNKNOWN
    return WebhookSubscription(
        id=str(data.get("uuid", "")),
        url=str(data.get("url", "")),
        event_types=tuple(data.get("eventTypes") or ()),
        state=state,
        failed_count=int(data.get("failedCount") or 0),
        created_at=data.get("createdAt"),
    )


def _data_list(document: Any, resource: str) -> list[dict[str, Any]]:
    if not isinstance(document, dict) or not isinstance(document.get("data"), list):
        raise DailyApiError(f"Unexpected {resource} listing shape from Daily API")
    return document["data"]


class DailyApiClient(RecordingLookupPort):
    """Async client for the Daily REST API."""

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the Daily API client.

        Args:
            api_key: Daily API key, sent as a bearer token.
            api_url: Base URL of the REST API.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        if not api_key:
            raise ValueError("api_key must be a non-empty string")
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.client = httpx.AsyncClient(
            base_url=self.api_url,
            headers=self._get_headers(),
            timeout=timeout,
            transport=transport,
        )
        # Download links are pre-signed URLs on another host, no bearer token.
        self.download_client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    def _get_headers(self) -> dict[str, str]:
        """Build request headers."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def __aenter__(self) -> "DailyApiClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the httpx clients."""
        await self.client.aclose()
        await self.download_client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            try:
                detail: Any = e.response.json()
            except ValueError:
                detail = e.response.text
            logger.error(
                f"Daily API {method} {path} failed with {e.response.status_code}: {detail}"
            )
            raise DailyApiError(
                f"Daily API {method} {path} returned {e.response.status_code}",
                status_code=e.response.status_code,
                detail=detail,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Daily API {method} {path} failed: {e}")
            raise DailyApiError(f"Daily API {method} {path} failed: {e}") from e

        if not response.content:
            return {}
        return response.json()

    # ------------------------------------------------------------------
    # Recording lookup (used by the webhook receiver)
    # ------------------------------------------------------------------

    async def get_recording(self, recording_id: str) -> RecordingInfo:
        """Fetch recording metadata by id."""
        data = await self._request("GET", f"/recordings/{recording_id}")
        return _parse_recording(data)

    async def get_access_link(
        self, recording_id: str, valid_for_secs: int = 3600
    ) -> AccessLink:
        """Fetch a time-limited access link for a recording."""
        data = await self._request(
            "GET",
            f"/recordings/{recording_id}/access-link",
            params={"valid_for_secs": valid_for_secs},
        )
        return AccessLink(
            download_link=data.get("download_link"),
            expires=_float_or_none(data.get("expires")),
        )

    # ------------------------------------------------------------------
    # Domain
    # ------------------------------------------------------------------

    async def get_domain_config(self) -> dict[str, Any]:
        """Return the domain configuration, including domain_id."""
        return await self._request("GET", "/")

    async def configure_recordings_bucket(
        self,
        bucket_name: str,
        bucket_region: str,
        assume_role_arn: str,
        allow_api_access: bool = True,
        allow_streaming_from_bucket: bool = False,
    ) -> dict[str, Any]:
        """Point domain cloud recordings at a customer S3 bucket."""
        return await self._request(
            "POST",
            "/",
            json={
                "properties": {
                    "recordings_bucket": {
                        "bucket_name": bucket_name,
                        "bucket_region": bucket_region,
                        "assume_role_arn": assume_role_arn,
                        "allow_api_access": allow_api_access,
                        "allow_streaming_from_bucket": allow_streaming_from_bucket,
                    }
                }
            },
        )

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    async def create_room(
        self, name: str, privacy: str = "private", properties: dict[str, Any] | None = None
    ) -> Room:
        """Create a room."""
        data = await self._request(
            "POST",
            "/rooms",
            json={"name": name, "privacy": privacy, "properties": properties or {}},
        )
        return _parse_room(data)

    async def list_rooms(self) -> list[Room]:
        """List all rooms in the domain."""
        document = await self._request("GET", "/rooms")
        return [_parse_room(item) for item in _data_list(document, "rooms")]

    async def delete_room(self, name: str) -> dict[str, Any]:
        """Delete a room by name."""
        return await self._request("DELETE", f"/rooms/{name}")

    # ------------------------------------------------------------------
    # Recordings
    # ------------------------------------------------------------------

    async def start_recording(
        self, room_name: str, layout: str = "default", max_duration: int = 300
    ) -> dict[str, Any]:
        """Start a cloud recording in a room."""
        return await self._request(
            "POST",
            f"/rooms/{room_name}/recordings",
            json={"properties": {"layout": layout, "max_duration": max_duration}},
        )

    async def stop_recording(self, room_name: str) -> dict[str, Any]:
        """Stop the cloud recording running in a room."""
        return await self._request(
            "PATCH",
            f"/rooms/{room_name}/recordings",
            json={"properties": {"stop": True}},
        )

    async def list_recordings(self, room_name: str | None = None) -> list[RecordingInfo]:
        """List recordings, optionally restricted to one room."""
        params = {"room_name": room_name} if room_name else None
        document = await self._request("GET", "/recordings", params=params)
        return [_parse_recording(item) for item in _data_list(document, "recordings")]

    async def download(self, url: str, destination: Path) -> Path:
        """Stream a download link to destination, creating parent directories.

        Raises:
            DailyApiError: If the download fails. A partial file is removed.
        """
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with self.download_client.stream("GET", url) as response:
                response.raise_for_status()
                with destination.open("wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as e:
            destination.unlink(missing_ok=True)
            logger.error(f"Failed to download recording to {destination}: {e}")
            raise DailyApiError(f"Download failed: {e}") from e
        logger.info(f"Recording downloaded to {destination}")
        return destination

    # ------------------------------------------------------------------
    # Webhook subscriptions
    # ------------------------------------------------------------------

    async def list_webhooks(self) -> list[WebhookSubscription]:
        """List webhook subscriptions."""
        document = await self._request("GET", "/webhooks")
        if not isinstance(document, list):
            raise DailyApiError("Unexpected webhooks listing shape from Daily API")
        return [_parse_subscription(item) for item in document]

    async def create_webhook(
        self, url: str, event_types: list[str], hmac_secret: str | None = None
    ) -> WebhookSubscription:
        """Create a webhook subscription."""
        body: dict[str, Any] = {"url": url, "eventTypes": event_types}
        if hmac_secret:
            body["hmac"] = hmac_secret
        data = await self._request("POST", "/webhooks", json=body)
        return _parse_subscription(data)

    async def delete_webhook(self, webhook_id: str) -> dict[str, Any]:
        """Delete a webhook subscription."""
        return await self._request("DELETE", f"/webhooks/{webhook_id}")


__all__ = ["DEFAULT_API_URL", "DailyApiClient", "DailyApiError"]
