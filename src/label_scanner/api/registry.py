"""Registry of live WebSocket connections."""

import logging
from dataclasses import dataclass, field
from uuid import uuid4

from fastapi import WebSocket

_logger = logging.getLogger(__name__)


@dataclass
class ConnectionRegistry:
    """Tracks open connections by a server-minted id."""

    _connections: dict[str, WebSocket] = field(default_factory=dict)

    def register(self, websocket: WebSocket) -> str:
        """Add a connection and return its id."""
        connection_id = str(uuid4())
        self._connections[connection_id] = websocket
        _logger.info(
            "Client connected",
            extra={"connection_id": connection_id, "clients": len(self)},
        )
        return connection_id

    def unregister(self, connection_id: str) -> None:
        """Forget a connection; unknown ids are ignored."""
        if self._connections.pop(connection_id, None) is not None:
            _logger.info(
                "Client disconnected",
                extra={"connection_id": connection_id, "clients": len(self)},
            )

    def get(self, connection_id: str) -> WebSocket | None:
        return self._connections.get(connection_id)

    def connection_ids(self) -> list[str]:
        return list(self._connections)

    async def broadcast(self, message: dict[str, object]) -> int:
        """Send a message to every live connection and return the delivery count."""
        delivered = 0
        for connection_id, websocket in list(self._connections.items()):
            try:
                await websocket.send_json(message)
            except Exception:
                _logger.warning(
                    "Broadcast send failed",
                    extra={"connection_id": connection_id},
                    exc_info=True,
                )
                continue
            delivered += 1
        return delivered

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections
