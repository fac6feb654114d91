import json
from typing import Any, Optional

from constants import DEFAULT_DOCUMENT_DATA, MAX_DOCUMENT_ID_LENGTH
from exceptions import PersistenceFailure, ProtocolViolation
from schemas.documents import ErrorPayload
from realtime.connection import Connection, ConnectionState
from realtime.registry import SessionRegistry
from logging_config import get_logger

logger = get_logger(__name__)

# Client -> server
GET_DOCUMENT = "get-document"
SEND_CHANGES = "send-changes"
SAVE_DOCUMENT = "save-document"

# Server -> client
LOAD_DOCUMENT = "load-document"
RECEIVE_CHANGES = "receive-changes"
ERROR = "error"


def encode_snapshot(content: Any) -> str:
    return json.dumps(content)


def decode_snapshot(data: Optional[str]) -> Any:
    if data is None:
        return None
    try:
        return json.loads(data)
    except (json.JSONDecodeError, TypeError):
        # Stored by something other than this relay, hand it back untouched
        return data


class RelayEngine:
    """Moves edits between the members of a document room.

    Deltas are relayed as-is to everybody else in the room; nothing is merged
    or transformed. Content only reaches storage when a client sends
    ``save-document``, so a client joining a busy room gets the last saved
    snapshot, not the unsaved edits of the others.

    ``store`` needs ``create_document_if_absent(id, default)`` and
    ``persist_document(id, data)``, see ``backend.RedisBackend``.
    """

    def __init__(self, store, registry: SessionRegistry, default_data: Any = DEFAULT_DOCUMENT_DATA):
        self.store = store
        self.registry = registry
        self.default_data = default_data
        self._handlers = {
            GET_DOCUMENT: self.request_document,
            SEND_CHANGES: self.send_changes,
            SAVE_DOCUMENT: self.save_document,
        }

    def open_connection(self, connection_id: Optional[str] = None) -> Connection:
        connection = Connection(connection_id)
        logger.info(f"Connection {connection.id} opened")
        return connection

    def authenticate(self, connection: Connection, claims: Optional[dict] = None):
        if connection.state != ConnectionState.CONNECTED:
            raise ProtocolViolation(f"Connection {connection.id} cannot authenticate in state {connection.state.value}")
        connection.claims = claims
        connection.state = ConnectionState.AUTHENTICATED
        logger.debug(f"Connection {connection.id} authenticated (user: {(claims or {}).get('id', 'anonymous')})")

    async def handle_event(self, connection: Connection, event: str, data: Any = None):
        """Run one client event. Failures are reported to that client only."""
        handler = self._handlers.get(event)
        try:
            if handler is None:
                raise ProtocolViolation(f"Unknown event {event!r}", code="unknown-event")
            await handler(connection, data)
        except ProtocolViolation as e:
            logger.warning(f"Rejected {event!r} from connection {connection.id}: {e}")
            connection.deliver(ERROR, ErrorPayload(code=e.code, message=str(e)).model_dump())
        except PersistenceFailure as e:
            logger.error(f"Save from connection {connection.id} failed: {e}")
            connection.deliver(
                ERROR, ErrorPayload(code="persistence-failed", message="Document could not be saved").model_dump()
            )

    async def request_document(self, connection: Connection, document_id: Any):
        self._require(connection, ConnectionState.AUTHENTICATED, ConnectionState.JOINED, event=GET_DOCUMENT)
        if not self._valid_document_id(document_id):
            raise ProtocolViolation(f"Invalid document id {document_id!r}", code="invalid-document-id")

        if connection.room_id is not None and connection.room_id != document_id:
            self._leave(connection)

        document = await self.store.create_document_if_absent(document_id, encode_snapshot(self.default_data))

        if connection.closed:
            logger.debug(f"Connection {connection.id} closed while loading document {document_id}")
            return

        self.registry.join_room(connection, document_id)
        connection.state = ConnectionState.JOINED
        logger.info(
            f"Connection {connection.id} joined document {document_id} "
            f"(room size: {self.registry.room_size(document_id)}, new: {document.created})"
        )
        connection.deliver(LOAD_DOCUMENT, decode_snapshot(document.data))

    async def send_changes(self, connection: Connection, delta: Any):
        self._require(connection, ConnectionState.JOINED, event=SEND_CHANGES)
        self.registry.broadcast(connection.room_id, connection, RECEIVE_CHANGES, delta)

    async def save_document(self, connection: Connection, content: Any):
        self._require(connection, ConnectionState.JOINED, event=SAVE_DOCUMENT)
        document_id = connection.room_id
        await self.store.persist_document(document_id, encode_snapshot(content))
        logger.info(f"Document {document_id} saved by connection {connection.id}")

    def close_connection(self, connection: Connection):
        if connection.closed:
            return
        self._leave(connection)
        connection.state = ConnectionState.CLOSED
        logger.info(f"Connection {connection.id} closed")

    def _leave(self, connection: Connection):
        document_id = self.registry.leave_room(connection)
        if document_id is not None:
            logger.info(f"Connection {connection.id} left document {document_id}")
        if connection.state == ConnectionState.JOINED:
            connection.state = ConnectionState.AUTHENTICATED

    @staticmethod
    def _require(connection: Connection, *states: ConnectionState, event: str):
        if connection.state not in states:
            code = "not-joined" if states == (ConnectionState.JOINED,) else "not-authenticated"
            raise ProtocolViolation(
                f"{event} is not allowed while connection is {connection.state.value}", code=code
            )

    @staticmethod
    def _valid_document_id(document_id: Any) -> bool:
        return (
            isinstance(document_id, str)
            and bool(document_id.strip())
            and len(document_id) <= MAX_DOCUMENT_ID_LENGTH
        )
