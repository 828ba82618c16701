"""HTTP server adapter for the webhook receiver.

Serves the provider callback and probe endpoints on a single asyncio
event loop using aiohttp:

- GET  /, /webhook   verification probe (unsigned, always 200)
- POST /, /webhook   event delivery
- GET  /health       liveness probe
- GET  /test         diagnostic probe
"""

import logging
from typing import Any

from aiohttp import web

from dailyrec.adapters.webhook.receiver import SIGNATURE_HEADERS, WebhookReceiver

logger = logging.getLogger(__name__)

MAX_BODY_SIZE = 1024 * 1024
WEBHOOK_PATHS = ("/", "/webhook")


def _json(status: int, body: dict[str, Any]) -> web.Response:
    return web.json_response(body, status=status)


def make_webhook_app(webhook_receiver: WebhookReceiver) -> web.Application:
    """Build the aiohttp application for a receiver.

    Handlers close over the receiver instead of reading it from
    application state.

    Args:
        webhook_receiver: Receiver for webhook operations.

    Returns:
        A configured aiohttp Application.
    """

    async def handle_webhook(request: web.Request) -> web.Response:
        """Route by method on the webhook paths."""
        try:
            if request.method in ("GET", "HEAD"):
                return _json(*webhook_receiver.handle_verification(request.path))

            if request.method == "POST":
                raw_body = await request.read()
                signature = None
                for header in SIGNATURE_HEADERS:
                    signature = request.headers.get(header)
                    if signature:
                        break
                return _json(
                    *await webhook_receiver.handle_delivery(raw_body, signature)
                )

            return _json(405, {"error": "Method not allowed"})
        except web.HTTPException:
            raise
        except Exception as e:
            return _json(*webhook_receiver.handle_fault(e))

    async def handle_health(request: web.Request) -> web.Response:
        return _json(*webhook_receiver.handle_health())

    async def handle_test(request: web.Request) -> web.Response:
        try:
            return _json(*webhook_receiver.handle_test())
        except Exception as e:
            return _json(*webhook_receiver.handle_fault(e))

    app = web.Application(client_max_size=MAX_BODY_SIZE)
    for path in WEBHOOK_PATHS:
        app.router.add_route("*", path, handle_webhook)
    app.router.add_get("/health", handle_health)
    app.router.add_get("/test", handle_test)
    return app


class WebhookHTTPServer:
    """Webhook HTTP server adapter.

    Binds the receiver's application to host:port. The server shares the
    caller's event loop; start() returns once the socket is listening.
    """

    def __init__(
        self,
        webhook_receiver: WebhookReceiver,
        host: str = "0.0.0.0",
        port: int = 3001,
    ):
        """Initialize the HTTP server.

        Args:
            webhook_receiver: WebhookReceiver instance to handle requests.
            host: Host to listen on (default 0.0.0.0).
            port: Port to listen on (default 3001).
        """
        self.webhook_receiver = webhook_receiver
        self.host = host
        self.port = port
        self.app = make_webhook_app(webhook_receiver)
        self._runner: web.AppRunner | None = None

    @property
    def running(self) -> bool:
        """Whether the server is currently listening."""
        return self._runner is not None

    async def start(self) -> None:
        """Start listening."""
        if self._runner is not None:
            logger.warning("Webhook HTTP server already running")
            return

        logger.info(f"Starting webhook HTTP server on {self.host}:{self.port}")
        runner = web.AppRunner(self.app, access_log=logger)
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner
        logger.info("Webhook HTTP server started")

    async def stop(self) -> None:
        """Stop the HTTP server without waiting for in-flight requests."""
        if self._runner is None:
            return
        runner, self._runner = self._runner, None
        await runner.cleanup()
        logger.info("Webhook HTTP server stopped")


__all__ = ["MAX_BODY_SIZE", "WEBHOOK_PATHS", "WebhookHTTPServer", "make_webhook_app"]
