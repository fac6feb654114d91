from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Header, HTTPException
from passlib.context import CryptContext

from constants import JWT_ALGORITHM, JWT_EXPIRES_IN, JWT_SECRET
from logging_config import get_logger

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def create_jwt(claims: Dict[str, Any], expires_in: int = JWT_EXPIRES_IN) -> str:
    """Sign ``claims`` (the public user data) into a token."""
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_jwt(token: str) -> Optional[Dict[str, Any]]:
    """Return the token claims, or None if the token is invalid or expired."""
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.debug(f"JWT rejected: {e}")
        return None


async def require_jwt(token: Optional[str] = Header(None, alias="jwt")) -> Dict[str, Any]:
    """Dependency for routes that need a signed in user. Token goes in the ``jwt`` header."""
    if not token:
        logger.warning("Request rejected: JWT token is missing")
        raise HTTPException(status_code=401, detail="JWT token is missing")
    claims = decode_jwt(token)
    if claims is None:
        logger.warning("Request rejected: invalid JWT")
        raise HTTPException(status_code=401, detail="Unauthorized")
    return claims
