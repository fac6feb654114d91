import asyncio
import uuid
from enum import Enum
from typing import Any, Optional

from constants import REALTIME_OUTBOX_SIZE
from logging_config import get_logger

logger = get_logger(__name__)


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"
    JOINED = "joined"
    CLOSED = "closed"


class Connection:
    """Server side view of one client socket.

    Outgoing messages are queued on ``outbox`` and written by a single writer
    task, so every message reaches the client in the order it was queued.
    """

    def __init__(self, connection_id: Optional[str] = None, outbox_size: int = REALTIME_OUTBOX_SIZE):
        self.id = connection_id or uuid.uuid4().hex
        self.state = ConnectionState.CONNECTED
        self.room_id: Optional[str] = None
        self.claims: Optional[dict] = None
        self.outbox: asyncio.Queue = asyncio.Queue(maxsize=outbox_size)
        self.overflowed = False

    @property
    def authenticated(self) -> bool:
        return self.state in (ConnectionState.AUTHENTICATED, ConnectionState.JOINED)

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    def deliver(self, event: str, data: Any = None) -> bool:
        """Queue a message for the client. Returns False if it was not queued."""
        if self.closed:
            return False
        try:
            self.outbox.put_nowait({"event": event, "data": data})
        except asyncio.QueueFull:
            if not self.overflowed:
                logger.warning(f"Outbox full for connection {self.id}, client is not keeping up")
            self.overflowed = True
            return False
        return True

    def __repr__(self):
        return f"<Connection {self.id} state={self.state.value} room={self.room_id}>"
