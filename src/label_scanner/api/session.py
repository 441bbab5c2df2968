"""Per-connection protocol handler for label scans."""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field

from fastapi import WebSocket

from label_scanner.api import messages
from label_scanner.api.messages import (
    ConfirmScanData,
    ConfirmScanMessage,
    GetHistoryMessage,
    ProtocolError,
    ScanData,
    ScanMessage,
)
from label_scanner.domain.errors import ScanError
from label_scanner.services.history import HistoryService
from label_scanner.services.scans import ScanService, decode_image

logger = logging.getLogger(__name__)

Response = dict[str, object]


@dataclass
class SessionProtocolHandler:
    """Drives the scan/confirm workflow for one WebSocket.

    Inbound messages are read one at a time. ``scan`` analysis runs in its own
    task so the read loop stays responsive; every response is queued in
    arrival order and written by a single writer task, so the client always
    receives responses in the order it sent requests.
    """

    websocket: WebSocket
    connection_id: str
    scan_service: ScanService
    history_service: HistoryService
    debug: bool = False
    _responses: "asyncio.Queue[asyncio.Future[Response]]" = field(
        default_factory=asyncio.Queue, init=False, repr=False
    )
    _tasks: set[asyncio.Task[Response]] = field(
        default_factory=set, init=False, repr=False
    )
    _seq: int = field(default=0, init=False)

    async def run(self) -> None:
        """Process messages until the client disconnects."""
        writer = asyncio.create_task(self._write_responses())
        try:
            while True:
                message = await self.websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes") or b""
                await self.handle(raw)
        finally:
            for task in self._tasks:
                task.cancel()
            writer.cancel()
            await asyncio.gather(writer, *self._tasks, return_exceptions=True)

    async def handle(self, raw: str | bytes) -> None:
        """Validate one envelope and dispatch it by type."""
        try:
            message = messages.parse_envelope(raw)
        except ProtocolError as exc:
            logger.warning(
                "Rejected message",
                extra={"connection_id": self.connection_id, "reason": str(exc)},
            )
            self._queue_ready(messages.error(exc.client_message))
            return
        except Exception:
            logger.exception(
                "Could not parse message",
                extra={"connection_id": self.connection_id},
            )
            self._queue_ready(messages.error(messages.INVALID_FORMAT))
            return

        if isinstance(message, ScanMessage):
            self._queue_task(self.on_scan(message.data))
        elif isinstance(message, ConfirmScanMessage):
            self._queue_ready(await self._guard(self.on_confirm_scan(message.data)))
        elif isinstance(message, GetHistoryMessage):
            self._queue_ready(await self._guard(self.on_get_history()))
        else:
            self._queue_ready(messages.error(messages.UNKNOWN_TYPE))

    async def on_scan(self, data: ScanData) -> Response:
        """Analyze a label photo and return the draft for confirmation."""
        try:
            image_bytes = decode_image(data.image)
            info = await self.scan_service.analyze(image_bytes, data.total_weight)
        except ScanError as exc:
            logger.warning(
                "Scan failed",
                extra={"connection_id": self.connection_id, "reason": str(exc)},
            )
            return messages.error(self._client_message(exc))
        return messages.scan_result(info)

    async def on_confirm_scan(self, data: ConfirmScanData) -> Response:
        """Persist a confirmed draft."""
        try:
            await self.scan_service.confirm(
                data.id, data.total_weight, data.to_draft()
            )
        except ScanError as exc:
            logger.warning(
                "Confirm failed",
                extra={
                    "connection_id": self.connection_id,
                    "scan_id": data.id,
                    "reason": str(exc),
                },
            )
            return messages.error(self._client_message(exc))
        return messages.scan_saved()

    async def on_get_history(self) -> Response:
        """Return recent records with day and week totals."""
        try:
            summary = await asyncio.to_thread(self.history_service.get_history)
        except Exception:
            logger.exception(
                "Failed to retrieve history",
                extra={"connection_id": self.connection_id},
            )
            return messages.error("Failed to retrieve history")
        return messages.history(summary)

    async def _guard(self, operation: Awaitable[Response]) -> Response:
        try:
            return await operation
        except Exception:
            logger.exception(
                "Unhandled error while handling message",
                extra={"connection_id": self.connection_id},
            )
            return messages.error("Internal server error")

    def _queue_ready(self, response: Response) -> None:
        future: asyncio.Future[Response] = asyncio.get_running_loop().create_future()
        future.set_result(response)
        self._responses.put_nowait(future)

    def _queue_task(self, operation: Awaitable[Response]) -> None:
        task = asyncio.create_task(self._guard(operation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._responses.put_nowait(task)

    async def _write_responses(self) -> None:
        while True:
            pending = await self._responses.get()
            response = await pending
            await self._send(response)

    async def _send(self, response: Response) -> None:
        self._seq += 1
        envelope = {
            **response,
            "version": messages.PROTOCOL_VERSION,
            "seq": self._seq,
        }
        try:
            await self.websocket.send_json(envelope)
        except Exception:
            logger.warning(
                "Failed to send message",
                extra={
                    "connection_id": self.connection_id,
                    "message_type": response.get("type"),
                },
                exc_info=True,
            )

    def _client_message(self, exc: ScanError) -> str:
        """Return the short client message, with detail only when debugging."""
        if self.debug and exc.detail:
            return f"{exc.client_message} (debug: {exc.detail})"
        return exc.client_message
