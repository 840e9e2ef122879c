import abc
import asyncio
import json
import logging
from typing import Any, Dict, Optional
from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


class ConnectionRegistry(abc.ABC):
    """Owner of live client connections, keyed by user id.

    Callers only register, unregister and push; the backing store can be
    replaced (for example by a pub/sub fan-out) without touching them.
    """

    @abc.abstractmethod
    async def register(self, user_id: str, connection: WebSocket) -> None:
        ...

    @abc.abstractmethod
    async def unregister(self, user_id: str, connection: Optional[WebSocket] = None) -> None:
        ...

    @abc.abstractmethod
    async def send_to(self, user_id: str, event: Dict[str, Any]) -> bool:
        """Push one event; True only if it reached an open connection"""

    @abc.abstractmethod
    def is_connected(self, user_id: str) -> bool:
        ...


class InMemoryConnectionRegistry(ConnectionRegistry):
    """One connection per user in process memory.

    A second registration for the same user replaces the first, so only the
    most recently connected device receives pushes.
    """

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}
        self.lock = asyncio.Lock()

    async def register(self, user_id: str, connection: WebSocket) -> None:
        async with self.lock:
            previous = self.active_connections.get(user_id)
            self.active_connections[user_id] = connection

        if previous is not None and previous is not connection:
            logger.info(f"User {user_id} reconnected; replacing previous connection")
        else:
            logger.info(f"User {user_id} connected to WebSocket")

    async def unregister(self, user_id: str, connection: Optional[WebSocket] = None) -> None:
        async with self.lock:
            current = self.active_connections.get(user_id)
            if current is None:
                return
            # A stale socket closing must not evict a newer registration
            if connection is not None and current is not connection:
                return
            del self.active_connections[user_id]

        logger.info(f"User {user_id} disconnected from WebSocket")

    async def send_to(self, user_id: str, event: Dict[str, Any]) -> bool:
        connection = self.active_connections.get(user_id)

        if connection is None:
            logger.debug(f"No active WebSocket connection for user {user_id}")
            return False

        if connection.client_state != WebSocketState.CONNECTED:
            await self.unregister(user_id, connection)
            return False

        try:
            await connection.send_text(json.dumps(event, default=str))
            return True
        except Exception as e:
            logger.warning(f"Removing broken connection for user {user_id}: {e}")
            await self.unregister(user_id, connection)
            return False

    def is_connected(self, user_id: str) -> bool:
        return user_id in self.active_connections

    def connected_users_count(self) -> int:
        return len(self.active_connections)


_registry: ConnectionRegistry = InMemoryConnectionRegistry()


def get_connection_registry() -> ConnectionRegistry:
    return _registry


def set_connection_registry(registry: ConnectionRegistry) -> None:
    global _registry
    _registry = registry
