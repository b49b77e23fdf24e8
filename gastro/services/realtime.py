"""Change notifications over WebSocket.

Clients subscribe per restaurant and receive ``{"event": "changed", "table": ...}``
after a write commits. Payloads carry no data: they only tell views which
collection to re-fetch. Nothing on the write path reads from here.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import WebSocket, status

logger = logging.getLogger(__name__)


class ChangeNotifier:
    """Manages WebSocket subscribers grouped by restaurant."""

    MAX_CONNECTIONS_PER_CHANNEL = 500

    def __init__(self):
        self.active_connections: Dict[int, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, restaurant_id: int) -> bool:
        """Accept and register a subscriber. Returns False if the channel is full."""
        if len(self.active_connections.get(restaurant_id, [])) >= self.MAX_CONNECTIONS_PER_CHANNEL:
            logger.warning(f"WebSocket rejected: restaurant {restaurant_id} at capacity")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return False

        await websocket.accept()
        self.active_connections.setdefault(restaurant_id, []).append(websocket)
        logger.debug(f"WebSocket subscribed to restaurant {restaurant_id}")
        return True

    def disconnect(self, websocket: WebSocket, restaurant_id: int) -> None:
        connections = self.active_connections.get(restaurant_id, [])
        if websocket in connections:
            connections.remove(websocket)
        if not connections:
            self.active_connections.pop(restaurant_id, None)

    async def notify(self, restaurant_id: int, *tables: str) -> None:
        """Tell a restaurant's subscribers that the given tables changed."""
        connections = list(self.active_connections.get(restaurant_id, []))
        if not connections:
            return

        sent_at = datetime.now(timezone.utc).isoformat()
        disconnected = []
        for connection in connections:
            for table in tables:
                message: Dict[str, Any] = {"event": "changed", "table": table, "at": sent_at}
                try:
                    await connection.send_json(message)
                except Exception as e:
                    logger.debug(f"WebSocket send failed: {e}")
                    disconnected.append(connection)
                    break

        for connection in disconnected:
            self.disconnect(connection, restaurant_id)

    def connection_count(self, restaurant_id: int) -> int:
        return len(self.active_connections.get(restaurant_id, []))


notifier = ChangeNotifier()
