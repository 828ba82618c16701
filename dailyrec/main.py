"""Composition root for dailyrec.

This module is the ONLY location that imports both core domain logic
and concrete adapter implementations. All wiring of dependencies
happens here, creating a clear entry point for the application.

Module Structure:
- Argument parsing
- Configuration loading via config module
- Adapter instantiation and dependency injection
- Entry point selection (webhook server or a one-shot CLI command)
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from collections.abc import Sequence
from typing import Any

from dailyrec.adapters.cli.commands import CLICommandHandler
from dailyrec.adapters.daily.client import DailyApiClient
from dailyrec.adapters.eventlog.file import FileEventLog
from dailyrec.adapters.session.json_file import JsonSessionStore
from dailyrec.adapters.webhook.http_server import WebhookHTTPServer
from dailyrec.adapters.webhook.receiver import WebhookReceiver
from dailyrec.config import Settings, load_settings
from dailyrec.core.errors import ConfigurationError
from dailyrec.core.recording_service import RecordingEventService
from dailyrec.core.webhook_service import WebhookDeliveryService

SHUTDOWN_GRACE_SECONDS = 2.0

SHUTDOWN_MARKERS = {
    signal.SIGINT: "Webhook server shutting down...",
    signal.SIGTERM: "Webhook server terminated",
}


class JsonLogFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(log_level: str, log_format: str) -> None:
    """Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json, text).
    """
    level = getattr(logging, log_level, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if log_format == "json":
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    logging.basicConfig(
        level=level,
        handlers=[handler],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="dailyrec",
        description="Daily.co recording automation and webhook receiver",
    )
    parser.add_argument("--env-file", help="Path to a .env file (default: ./.env)")
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    subparsers.add_parser("serve", help="Run the webhook receiver")

    subparsers.add_parser("create-room", help="Create a test room and generate tokens")
    subparsers.add_parser("list-rooms", help="List all rooms in your domain")
    subparsers.add_parser("delete-room", help="Delete the last created room")

    start = subparsers.add_parser(
        "start-recording", help="Start recording in the last created room"
    )
    start.add_argument("--layout", default="default")
    start.add_argument("--max-duration", type=int, default=300)
    subparsers.add_parser("stop-recording", help="Stop recording in the last created room")

    list_recordings = subparsers.add_parser("list-recordings", help="List recordings")
    list_recordings.add_argument("--room", help="Only recordings of this room")
    subparsers.add_parser("access-recordings", help="List recordings with share URLs")

    for name, help_text in (
        ("get-recording", "Get details of a recording"),
        ("get-download-url", "Get the download URL of a recording"),
        ("get-share-url", "Get the share URL of a recording"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("recording_id")

    access = subparsers.add_parser(
        "get-access-link", help="Get a streaming access link for a recording"
    )
    access.add_argument("recording_id")
    access.add_argument("valid_for_secs", type=int, nargs="?")

    room_recordings = subparsers.add_parser(
        "room-recordings", help="Get all recordings of a room with access links"
    )
    room_recordings.add_argument("room_name")
    room_recordings.add_argument("valid_for_secs", type=int, nargs="?")

    by_room = subparsers.add_parser(
        "recordings-by-room", help="List recordings for a specific room"
    )
    by_room.add_argument("room_name")

    download = subparsers.add_parser(
        "download-recording", help="Download a recording to a local file"
    )
    download.add_argument("recording_id")
    download.add_argument("path", nargs="?")

    subparsers.add_parser("webhook-setup", help="Create the recording webhook subscription")
    subparsers.add_parser("webhook-list", help="List webhook subscriptions")
    delete_webhooks = subparsers.add_parser(
        "webhook-delete", help="Delete webhook subscriptions"
    )
    delete_webhooks.add_argument("--id", dest="webhook_id", help="Delete only this one")
    subparsers.add_parser("webhook-test", help="Check the webhook endpoint is reachable")

    s3 = subparsers.add_parser(
        "configure-s3", help="Configure the domain's recording bucket"
    )
    s3.add_argument("bucket_name", nargs="?")
    s3.add_argument("bucket_region", nargs="?")
    s3.add_argument("assume_role_arn", nargs="?")
    s3.add_argument("allow_api_access", nargs="?")
    s3.add_argument("allow_streaming", nargs="?")

    return parser


def _parse_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    return value.strip().lower() == "true"


async def serve(settings: Settings) -> None:
    """Run the webhook receiver until SIGINT or SIGTERM.

    In-flight requests are not drained on shutdown.
    """
    logger = logging.getLogger(__name__)

    event_log = FileEventLog(settings.log_file)
    client = DailyApiClient(
        api_key=settings.daily_api_key,
        api_url=settings.daily_api_url,
        timeout=settings.http_timeout_seconds,
    )
    event_service = RecordingEventService(
        lookup=client,
        event_log=event_log,
        access_link_valid_for_secs=settings.access_link_valid_for_secs,
    )
    delivery_service = WebhookDeliveryService(
        event_service=event_service,
        event_log=event_log,
        secret=settings.webhook_secret,
        defer_enrichment=settings.webhook_defer_enrichment,
    )
    if not delivery_service.verification_enabled:
        logger.warning(
            "DAILY_WEBHOOK_SECRET is not set: signature verification is disabled "
            "and events will be logged as unverified"
        )

    receiver = WebhookReceiver(webhook_port=delivery_service, event_log=event_log)
    server = WebhookHTTPServer(
        webhook_receiver=receiver,
        host=settings.webhook_host,
        port=settings.webhook_port,
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _handle_signal(sig: signal.Signals) -> None:
        event_log.log(SHUTDOWN_MARKERS.get(sig, "Webhook server stopping..."))
        stop.set()

    for sig in SHUTDOWN_MARKERS:
        try:
            loop.add_signal_handler(sig, _handle_signal, sig)
        except NotImplementedError:
            # Signal handlers not available on Windows
            logger.debug("Signal handlers not available on this platform")

    try:
        await server.start()
        base = f"http://localhost:{settings.webhook_port}"
        event_log.log(
            f"Daily.co Webhook Server started on port {settings.webhook_port} | "
            f"Webhook URL: {base}/webhook | Health check: {base}/health | "
            f"Test endpoint: {base}/test | Log file: {event_log.location} | "
            f"Signature verification: {'on' if delivery_service.verification_enabled else 'off'}"
        )
        await stop.wait()
    finally:
        try:
            await asyncio.wait_for(server.stop(), timeout=SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            logger.warning("Webhook server did not stop in time, exiting anyway")
        await client.close()


async def run_command(settings: Settings, args: argparse.Namespace) -> dict[str, Any]:
    """Run a one-shot CLI command and return its result."""
    client = DailyApiClient(
        api_key=settings.daily_api_key,
        api_url=settings.daily_api_url,
        timeout=settings.http_timeout_seconds,
    )
    handler = CLICommandHandler(
        client=client,
        session=JsonSessionStore(settings.session_dir),
        settings=settings,
        env_file=args.env_file or ".env",
    )
    try:
        return await _execute_cli_command(handler, args)
    finally:
        await client.close()


async def _execute_cli_command(
    handler: CLICommandHandler, args: argparse.Namespace
) -> dict[str, Any]:
    """Dispatch parsed arguments to the command handler.

    Raises:
        ValueError: If command is not recognized.
    """
    command = args.command

    if command == "create-room":
        return await handler.create_room()
    elif command == "list-rooms":
        return await handler.list_rooms()
    elif command == "delete-room":
        return await handler.delete_room()
    elif command == "start-recording":
        return await handler.start_recording(
            layout=args.layout, max_duration=args.max_duration
        )
    elif command == "stop-recording":
        return await handler.stop_recording()
    elif command == "list-recordings":
        return await handler.list_recordings(room_name=args.room)
    elif command == "access-recordings":
        return await handler.access_recordings()
    elif command == "get-recording":
        return await handler.get_recording(args.recording_id)
    elif command == "get-download-url":
        return await handler.get_download_url(args.recording_id)
    elif command == "get-share-url":
        return await handler.get_share_url(args.recording_id)
    elif command == "get-access-link":
        return await handler.get_access_link(args.recording_id, args.valid_for_secs)
    elif command == "room-recordings":
        return await handler.room_recordings(args.room_name, args.valid_for_secs)
    elif command == "recordings-by-room":
        return await handler.recordings_by_room(args.room_name)
    elif command == "download-recording":
        return await handler.download_recording(args.recording_id, args.path)
    elif command == "webhook-setup":
        return await handler.setup_webhook()
    elif command == "webhook-list":
        return await handler.list_webhooks()
    elif command == "webhook-delete":
        return await handler.delete_webhooks(args.webhook_id)
    elif command == "webhook-test":
        return await handler.test_webhook_endpoint()
    elif command == "configure-s3":
        return await handler.configure_s3(
            bucket_name=args.bucket_name,
            bucket_region=args.bucket_region,
            assume_role_arn=args.assume_role_arn,
            allow_api_access=_parse_bool(args.allow_api_access),
            allow_streaming_from_bucket=bool(_parse_bool(args.allow_streaming)),
        )
    else:
        raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    """Application entry point.

    Exit codes:
        0: Success / clean shutdown
        1: Configuration error, failed command or fatal runtime error
        130: Interrupted by user (SIGINT/KeyboardInterrupt)
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    logger = logging.getLogger(__name__)
    try:
        settings = load_settings(env_file=args.env_file)
    except ConfigurationError as e:
        configure_logging("INFO", "text")
        logger.error(f"Configuration error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    configure_logging(settings.log_level, settings.log_format)

    try:
        if args.command == "serve":
            asyncio.run(serve(settings))
            return 0

        result = asyncio.run(run_command(settings, args))
        print(json.dumps(result, indent=2, default=str))
        return 0 if result.get("status") == "success" else 1
    except KeyboardInterrupt:
        logger.warning("Shutdown requested by user (SIGINT)")
        return 130
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
