from pydantic import BaseModel
from typing import Any


class DocumentEvent(BaseModel):
    """One websocket frame, in either direction: ``{"event": ..., "data": ...}``."""
    event: str
    data: Any = None

class ErrorPayload(BaseModel):
    code: str
    message: str
