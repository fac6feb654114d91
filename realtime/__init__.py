from realtime.connection import Connection, ConnectionState
from realtime.registry import Room, SessionRegistry
from realtime.relay import RelayEngine

__all__ = ["Connection", "ConnectionState", "Room", "SessionRegistry", "RelayEngine"]
