from typing import Any, Dict, List, Optional

from exceptions import AlreadyJoined
from realtime.connection import Connection
from logging_config import get_logger

logger = get_logger(__name__)


class Room:
    def __init__(self, document_id: str):
        self.document_id = document_id
        # Insertion ordered, one entry per connection
        self.members: Dict[str, Connection] = {}

    def __len__(self):
        return len(self.members)


class SessionRegistry:
    """Rooms of connected clients, keyed by document id.

    None of the methods await, so on the event loop a join, leave or broadcast
    always runs to completion before another one starts. A room is created by
    its first join and dropped by its last leave.
    """

    def __init__(self):
        self._rooms: Dict[str, Room] = {}

    def join_room(self, connection: Connection, document_id: str) -> Room:
        if connection.room_id is not None and connection.room_id != document_id:
            raise AlreadyJoined(connection.id, connection.room_id)

        room = self._rooms.get(document_id)
        if room is None:
            room = Room(document_id)
            self._rooms[document_id] = room
            logger.info(f"Room {document_id} created")

        if connection.id not in room.members:
            room.members[connection.id] = connection
            logger.debug(f"Connection {connection.id} joined room {document_id} (members: {len(room)})")
        connection.room_id = document_id
        return room

    def leave_room(self, connection: Connection) -> Optional[str]:
        document_id = connection.room_id
        if document_id is None:
            return None

        connection.room_id = None
        room = self._rooms.get(document_id)
        if room is None:
            return document_id

        room.members.pop(connection.id, None)
        logger.debug(f"Connection {connection.id} left room {document_id} (members: {len(room)})")
        if not room.members:
            del self._rooms[document_id]
            logger.info(f"Room {document_id} is empty, removed")
        return document_id

    def broadcast(self, document_id: str, exclude: Optional[Connection], event: str, data: Any = None) -> int:
        """Queue ``event`` for every member of the room except ``exclude``."""
        room = self._rooms.get(document_id)
        if room is None:
            return 0

        delivered = 0
        for member in list(room.members.values()):
            if exclude is not None and member.id == exclude.id:
                continue
            if member.deliver(event, data):
                delivered += 1
        logger.debug(f"Broadcast {event} to {delivered} member(s) of room {document_id}")
        return delivered

    def room_size(self, document_id: str) -> int:
        room = self._rooms.get(document_id)
        return len(room) if room else 0

    def members(self, document_id: str) -> List[Connection]:
        room = self._rooms.get(document_id)
        return list(room.members.values()) if room else []

    def rooms(self) -> List[str]:
        return list(self._rooms)

    def __contains__(self, document_id: str) -> bool:
        return document_id in self._rooms
