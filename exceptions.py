from typing import Optional


class PrepInTechError(Exception):
    """Base class for errors raised by this service."""


class DocumentNotFound(PrepInTechError):
    def __init__(self, document_id: str):
        super().__init__(f"Document {document_id} not found")
        self.document_id = document_id


class PersistenceFailure(PrepInTechError):
    """A storage write failed. The live session keeps running."""

    def __init__(self, document_id: str, reason: str):
        super().__init__(f"Failed to persist document {document_id}: {reason}")
        self.document_id = document_id
        self.reason = reason


class ProtocolViolation(PrepInTechError):
    """An event arrived that the connection's current state does not allow."""

    code = "protocol-violation"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        if code:
            self.code = code


class AlreadyJoined(ProtocolViolation):
    code = "already-joined"

    def __init__(self, connection_id: str, room_id: str):
        super().__init__(f"Connection {connection_id} is already in room {room_id}")
        self.connection_id = connection_id
        self.room_id = room_id


class TransportFailure(PrepInTechError):
    """The client socket went away or could not be written to."""


class TokenServiceError(PrepInTechError):
    """The external RTM token service did not hand back a token."""
