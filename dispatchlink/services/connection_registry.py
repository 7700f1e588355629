from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set

from fastapi import WebSocket
from redis.exceptions import RedisError

from dispatchlink.core.logging import get_logger
from dispatchlink.models import UserRole

logger = get_logger("dispatchlink.connections")

Publisher = Callable[[str, Any], Awaitable[Any]]


class ConnectionRegistry:
    """
    Tracks which users hold a live socket and which role rooms they joined.

    One registry belongs to one application instance. Local sockets are
    served directly; every notification is also published on Redis so other
    instances can relay it to their own sockets.
    """

    def __init__(self, roles: Iterable[str] = tuple(role.value for role in UserRole)):
        # user_id -> WebSocket
        self.connections: Dict[int, WebSocket] = {}
        # "role:<role>" -> user ids
        self.rooms: Dict[str, Set[int]] = {}
        self.roles = list(roles)
        self.role_room_prefix = "role:"
        self.user_channel_prefix = "user:"
        self.broadcast_channel = "broadcast:all"
        self._publish: Optional[Publisher] = None

    def initialize_transport(self, publish: Publisher) -> None:
        self._publish = publish

    def room_name(self, role: str) -> str:
        return f"{self.role_room_prefix}{getattr(role, 'value', role)}"

    def register(self, user_id: int, connection: WebSocket, role: str) -> None:
        """
        Register a user's connection and join its role room.
        Re-registering replaces the connection and the room membership.
        """
        self._leave_rooms(user_id)
        self.connections[user_id] = connection
        self.rooms.setdefault(self.room_name(role), set()).add(user_id)
        logger.info(
            f"User {user_id} connected with role {getattr(role, 'value', role)}, "
            f"total connections: {len(self.connections)}"
        )

    def unregister(self, user_id: int) -> bool:
        """
        Remove a user's connection and leave every role room.
        Returns whether the user was connected.
        """
        self._leave_rooms(user_id)
        existed = self.connections.pop(user_id, None) is not None
        if existed:
            logger.info(f"User {user_id} disconnected, total connections: {len(self.connections)}")
        return existed

    def _leave_rooms(self, user_id: int) -> None:
        for role in self.roles:
            room = self.rooms.get(self.room_name(role))
            if room is not None:
                room.discard(user_id)
                if not room:
                    del self.rooms[self.room_name(role)]

    def is_online(self, user_id: int) -> bool:
        return user_id in self.connections

    def list_online(self) -> List[int]:
        return list(self.connections.keys())

    def get_connection(self, user_id: int) -> Optional[WebSocket]:
        return self.connections.get(user_id)

    def room_members(self, role: str) -> Set[int]:
        return set(self.rooms.get(self.room_name(role), set()))

    async def _send(self, user_id: int, connection: WebSocket, message: dict) -> None:
        try:
            await connection.send_json(message)
        except Exception as e:
            logger.warning(f"Failed to deliver {message.get('type')} to user {user_id}: {e}")

    async def _relay(self, channel: str, message: dict) -> None:
        try:
            await self._publish(channel, message)
        except RedisError as e:
            logger.warning(f"Failed to publish {message.get('type')} on {channel}: {e}")

    def _transport_ready(self) -> bool:
        if self._publish is None:
            logger.error("Notification transport not initialized")
            return False
        return True

    async def broadcast_to_role(self, role: str, event: str, data: Optional[dict] = None) -> None:
        """
        Notify every connection in a role room. Best effort, no acknowledgement.
        """
        if not self._transport_ready():
            return

        room = self.room_name(role)
        message = {"type": event, "data": data or {}}
        logger.info(f"Broadcasting to {room}, event: {event}")
        for user_id in sorted(self.rooms.get(room, set())):
            connection = self.connections.get(user_id)
            if connection is not None:
                await self._send(user_id, connection, message)

        await self._relay(room, message)

    async def send_to_user(self, user_id: int, event: str, data: Optional[dict] = None) -> None:
        """
        Notify a single user, locally if connected here and through Redis.
        """
        if not self._transport_ready():
            return

        message = {"type": event, "data": data or {}}
        connection = self.connections.get(user_id)
        if connection is not None:
            await self._send(user_id, connection, message)

        await self._relay(f"{self.user_channel_prefix}{user_id}", message)

    async def broadcast(self, event: str, data: Optional[dict] = None) -> None:
        """
        Notify every connected user.
        """
        if not self._transport_ready():
            return

        message = {"type": event, "data": data or {}}
        for user_id, connection in list(self.connections.items()):
            await self._send(user_id, connection, message)

        await self._relay(self.broadcast_channel, message)
