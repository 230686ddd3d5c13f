"""HTTP surface: status endpoint and Telegram webhook.

Two independent endpoints share the stats source and the notifier:

- ``GET /api/status`` fetches a snapshot synchronously and returns it as
  JSON, or a 500 with the error text when the stats service is unavailable.
- ``POST /telegram`` receives Telegram updates. It always answers 200, since
  Telegram redelivers anything else. Recognized commands are handled in a
  background task after the response has been sent:

  * ``/count`` and ``/status`` deliver a stats report to the sending chat
  * ``/top`` delivers a "not implemented" notice

The application is served by uvicorn in a daemon thread, see ``ApiServer``.

Example:
    app = create_app(config, StatsSource.from_config(config), notifier)
    ApiServer(app, config.webhook_host, config.webhook_port).start()
"""

import threading
from dataclasses import dataclass

import uvicorn
from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from loguru import logger
from pydantic import BaseModel, ValidationError

from xray_sidecar import __version__
from xray_sidecar.core.config import NotificationTarget, SidecarConfig
from xray_sidecar.core.exceptions import DeliveryFailedError, StatsError

from .notifier import TelegramNotifier
from .reporter import format_report
from .xray_stats import StatsSource

STATS_COMMANDS = ("/count", "/status")
TOP_COMMAND = "/top"
TOP_NOT_IMPLEMENTED = "Top-sites feature is not implemented yet."


class Chat(BaseModel):
    id: int | None = None


class Message(BaseModel):
    text: str | None = None
    chat: Chat | None = None


class Update(BaseModel):
    """Subset of a Telegram update; every level is optional."""

    message: Message | None = None


@dataclass(frozen=True)
class InboundCommand:
    """Command text received from a chat."""

    chat_id: str
    text: str


def parse_command(body: bytes) -> InboundCommand | None:
    """Decode a webhook body, returning None for anything unusable."""
    try:
        update = Update.model_validate_json(body)
    except ValidationError as e:
        logger.debug(f"[Webhook] Ignoring undecodable update: {e.error_count()} error(s)")
        return None

    message = update.message
    if message is None or message.chat is None or message.chat.id is None:
        return None
    return InboundCommand(chat_id=str(message.chat.id), text=(message.text or "").strip())


def send_stats_report(
    stats_source: StatsSource, notifier: TelegramNotifier, target: NotificationTarget
) -> None:
    """Fetch a snapshot and deliver it to ``target``; failures are logged."""
    try:
        info = stats_source.snapshot()
    except StatsError as e:
        logger.warning(f"[Webhook] Error getting stats for chat {target.chat_id}: {e}")
        return
    send_message(notifier, target, format_report(info))


def send_message(notifier: TelegramNotifier, target: NotificationTarget, text: str) -> None:
    """Deliver ``text`` to ``target``; failures are logged."""
    try:
        notifier.deliver(target, text)
    except DeliveryFailedError as e:
        logger.error(f"[Webhook] Failed to send message to chat {target.chat_id}: {e}")


def create_app(
    config: SidecarConfig,
    stats_source: StatsSource,
    notifier: TelegramNotifier | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Webhook replies go out with ``config.bot_token``; without a token,
    commands are acknowledged and ignored.

    Args:
        config: Runtime configuration
        stats_source: Where snapshots come from
        notifier: Delivery channel for webhook replies, built from ``config`` if omitted

    Returns:
        FastAPI: Application exposing ``/api/status`` and ``/telegram``
    """
    notifier = notifier or TelegramNotifier(timeout=config.notify_timeout)
    app = FastAPI(
        title="Xray Sidecar",
        description="Xray connection and traffic statistics",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )
    app.state.config = config

    @app.get("/api/status")
    def status() -> Response:
        """Return the current counters."""
        try:
            info = stats_source.snapshot()
        except StatsError as e:
            logger.warning(f"[API] Error getting stats: {e}")
            return PlainTextResponse(str(e), status_code=500)
        return JSONResponse(content=info.as_dict())

    @app.post("/telegram")
    async def telegram_webhook(request: Request, background_tasks: BackgroundTasks) -> Response:
        """Handle a Telegram update, always acknowledging it."""
        command = parse_command(await request.body())
        if command is None or not command.text.startswith((*STATS_COMMANDS, TOP_COMMAND)):
            return Response(status_code=200)

        if not config.bot_token:
            logger.warning(f"[Webhook] Bot token not configured, ignoring {command.text!r}")
            return Response(status_code=200)

        target = NotificationTarget(chat_id=command.chat_id, bot_token=config.bot_token)
        if command.text.startswith(STATS_COMMANDS):
            background_tasks.add_task(send_stats_report, stats_source, notifier, target)
        else:
            background_tasks.add_task(send_message, notifier, target, TOP_NOT_IMPLEMENTED)

        return Response(status_code=200)

    return app


class ApiServer:
    """Serve the application with uvicorn in a daemon thread."""

    def __init__(self, app: FastAPI, host: str, port: int, log_level: str = "info") -> None:
        self.host = host
        self.port = port
        self.server = uvicorn.Server(
            uvicorn.Config(app=app, host=host, port=port, log_level=log_level, access_log=False)
        )
        self._thread: threading.Thread | None = None

    def start(self) -> threading.Thread:
        """Start serving in the background."""
        self._thread = threading.Thread(target=self._serve, name="http-api", daemon=True)
        self._thread.start()
        return self._thread

    def _serve(self) -> None:
        logger.info(f"Starting HTTP server on {self.host}:{self.port}")
        try:
            self.server.run()
        except Exception:
            logger.exception("HTTP server exited with an error")
        else:
            logger.info("HTTP server exited")

    def stop(self, timeout: float | None = None) -> None:
        """Ask uvicorn to shut down and wait for the thread."""
        self.server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=timeout)
