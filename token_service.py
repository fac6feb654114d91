from typing import Optional

import httpx

from constants import TOKEN_SERVICE_SECRET, TOKEN_SERVICE_TIMEOUT, TOKEN_SERVICE_URL
from exceptions import TokenServiceError
from logging_config import get_logger

logger = get_logger(__name__)


class TokenServiceClient:
    """Client for the external service that issues RTM tokens per channel."""

    def __init__(
        self,
        base_url: str = TOKEN_SERVICE_URL,
        secret: str = TOKEN_SERVICE_SECRET,
        timeout: float = TOKEN_SERVICE_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.secret = secret
        self.timeout = timeout
        self.transport = transport

    async def fetch_rtm_token(self, channel_name: str) -> str:
        url = f"{self.base_url}/rtm/{channel_name}/{self.secret}"
        logger.debug(f"Requesting RTM token for channel {channel_name}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Token service request for channel {channel_name} failed: {e}")
            raise TokenServiceError(f"Token service request failed: {e}") from e
        except ValueError as e:
            raise TokenServiceError("Token service returned invalid JSON") from e

        token = payload.get("rtmToken") if isinstance(payload, dict) else None
        if not token:
            logger.error(f"Token service response for channel {channel_name} has no rtmToken")
            raise TokenServiceError("Token service response has no rtmToken")
        return token


token_service = TokenServiceClient()
