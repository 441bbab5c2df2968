"""FastAPI application factory."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, WebSocket
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles

from label_scanner.api.session import SessionProtocolHandler
from label_scanner.app_logging import configure_logging
from label_scanner.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)
    settings = container.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        sweeper = asyncio.create_task(
            state_container.pending_scans.run_sweeper(
                settings.pending_scan_sweep_interval_seconds
            )
        )
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
            await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health", response_class=PlainTextResponse)
    async def health() -> str:
        """Liveness check."""
        return "OK"

    @app.websocket("/ws")
    async def scan_socket(websocket: WebSocket) -> None:
        """Run the scan protocol for one client connection."""
        state_container: AppContainer = websocket.app.state.container
        await websocket.accept()
        registry = state_container.connection_registry
        connection_id = registry.register(websocket)
        handler = SessionProtocolHandler(
            websocket=websocket,
            connection_id=connection_id,
            scan_service=state_container.scan_service,
            history_service=state_container.history_service,
            debug=state_container.settings.environment == "local",
        )
        try:
            await handler.run()
        except Exception:
            logger.exception(
                "WebSocket session failed", extra={"connection_id": connection_id}
            )
        finally:
            registry.unregister(connection_id)

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    else:
        logger.info("Static directory not found, skipping mount: %s", static_dir)

    return app
