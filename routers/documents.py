import asyncio
import json
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from auth import decode_jwt
from constants import REALTIME_REQUIRE_AUTH
from exceptions import TransportFailure
from realtime.connection import Connection
from realtime.relay import ERROR, RelayEngine
from schemas.documents import DocumentEvent, ErrorPayload
from logging_config import get_logger

logger = get_logger(__name__)

documents_router = APIRouter(prefix="/documents", tags=["documents"])


def _extract_token(websocket: WebSocket, token: Optional[str]) -> Optional[str]:
    if token:
        return token
    return websocket.headers.get("jwt")


async def pump_outbox(websocket: WebSocket, connection: Connection):
    """Write queued messages to the socket, one at a time, in queue order."""
    while True:
        message = await connection.outbox.get()
        try:
            await websocket.send_text(json.dumps(message))
        except Exception as e:
            raise TransportFailure(f"Send to connection {connection.id} failed: {e}") from e
        if connection.overflowed:
            logger.warning(f"Closing connection {connection.id}: outbox overflowed")
            await websocket.close(code=1013, reason="Client too slow")
            return


async def stop_writer(writer: asyncio.Task, connection: Connection):
    """Cancel the writer, or collect its outcome if it already ended."""
    if not writer.done():
        writer.cancel()
        try:
            await writer
        except (asyncio.CancelledError, TransportFailure):
            pass
    elif not writer.cancelled() and writer.exception() is not None:
        logger.debug(f"Writer for connection {connection.id} ended with: {writer.exception()}")


@documents_router.websocket("/ws")
async def document_socket(websocket: WebSocket, token: Optional[str] = None):
    """Collaborative editing socket.

    Frames are JSON objects ``{"event": ..., "data": ...}``. Events from the
    client: ``get-document``, ``send-changes``, ``save-document``. Events from
    the server: ``load-document``, ``receive-changes``, ``error``.

    Query parameters:
    - token: JWT, also accepted in the ``jwt`` header. Only enforced when
      REALTIME_REQUIRE_AUTH is enabled.
    """
    relay: RelayEngine = websocket.app.state.relay_engine
    client_host = websocket.client.host if websocket.client else "unknown"
    logger.info(f"WebSocket connection attempt from {client_host}")

    claims = None
    raw_token = _extract_token(websocket, token)
    if raw_token:
        claims = decode_jwt(raw_token)
    if REALTIME_REQUIRE_AUTH and claims is None:
        logger.warning(f"WebSocket connection rejected for {client_host}: missing or invalid token")
        await websocket.close(code=1008, reason="Unauthorized")
        return

    await websocket.accept()
    connection = relay.open_connection()
    relay.authenticate(connection, claims)
    writer = asyncio.create_task(pump_outbox(websocket, connection))
    reader = None

    try:
        while True:
            reader = asyncio.create_task(websocket.receive())
            done, _ = await asyncio.wait({reader, writer}, return_when=asyncio.FIRST_COMPLETED)
            if writer in done:
                reader.cancel()
                # Surfaces TransportFailure, or returns after an overflow close
                writer.result()
                break

            frame = reader.result()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(code=frame.get("code", 1000), reason=frame.get("reason"))

            try:
                # Binary frames have no "text" key
                message = DocumentEvent.model_validate(json.loads(frame["text"]))
            except (KeyError, TypeError, json.JSONDecodeError, ValidationError):
                logger.warning(f"Malformed frame from connection {connection.id}")
                connection.deliver(
                    ERROR, ErrorPayload(code="malformed-message", message="Expected {\"event\": ..., \"data\": ...}").model_dump()
                )
                continue

            logger.debug(f"Received {message.event} from connection {connection.id}")
            try:
                await relay.handle_event(connection, message.event, message.data)
            except Exception as e:
                logger.error(f"Error handling {message.event} from connection {connection.id}: {e}", exc_info=True)
                connection.deliver(ERROR, ErrorPayload(code="internal-error", message="Event could not be processed").model_dump())

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected normally for connection {connection.id}")
    except TransportFailure as e:
        logger.warning(f"Transport failure on connection {connection.id}: {e}")
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection.id}: {e}", exc_info=True)
    finally:
        relay.close_connection(connection)
        if reader is not None and not reader.done():
            reader.cancel()
        await stop_writer(writer, connection)
        try:
            await websocket.close()
        except Exception as e:
            logger.debug(f"Error closing WebSocket: {e}")
