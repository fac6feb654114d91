import json
import uuid
from dataclasses import dataclass
from typing import List, Optional

import redis
import redis.asyncio as aioredis

from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD
from exceptions import DocumentNotFound, PersistenceFailure
from redis_keys import (
    REDIS_AVAILABLE_INTERVIEWS_KEY,
    REDIS_CHANNEL_POOL_KEY,
    REDIS_DOCUMENT_KEY,
    REDIS_INTERVIEW_KEY,
    REDIS_USER_EMAIL_KEY,
    REDIS_USER_KEY,
    REDIS_USERS_KEY,
)
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Document:
    id: str
    data: str
    created: bool = False


def _to_hash(record: dict) -> dict:
    # Redis hashes only hold strings, skip None values
    mapping = {}
    for k, v in record.items():
        if v is None:
            continue
        if isinstance(v, (dict, list, bool)):
            mapping[k] = json.dumps(v)
        else:
            mapping[k] = str(v)
    return mapping


def _from_hash(raw: dict) -> dict:
    result = {}
    for k, v in raw.items():
        try:
            result[k] = json.loads(v)
        except (json.JSONDecodeError, TypeError):
            result[k] = v
    return result


class RedisBackend:
    def __init__(self, redis_client=None):
        logger.info(f"Initializing RedisBackend with connection to {REDIS_HOST}:{REDIS_PORT}")
        # Connection is opened lazily on first command
        self.redis_client = redis_client or aioredis.Redis(
            host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, decode_responses=True
        )

    async def ping(self):
        try:
            await self.redis_client.ping()
            logger.info(f"Redis client connected successfully to {REDIS_HOST}:{REDIS_PORT}")
        except Exception as e:
            logger.error(f"Failed to connect to Redis at {REDIS_HOST}:{REDIS_PORT}: {e}", exc_info=True)
            raise

    async def close(self):
        await self.redis_client.aclose()
        logger.info("Redis client closed")

    # Documents

    async def get_document(self, document_id: str) -> Document:
        logger.debug(f"Fetching document {document_id}")
        key = REDIS_DOCUMENT_KEY.format(document_id=document_id)
        data = await self.redis_client.hget(key, "data")
        if data is None:
            logger.debug(f"Document {document_id} not found in Redis")
            raise DocumentNotFound(document_id)
        return Document(id=document_id, data=data)

    async def create_document_if_absent(self, document_id: str, default_data: str) -> Document:
        """Return the stored document, creating it with ``default_data`` if missing.

        HSETNX makes the creation atomic, so only one of several racing callers
        gets ``created=True``.
        """
        key = REDIS_DOCUMENT_KEY.format(document_id=document_id)
        created = bool(await self.redis_client.hsetnx(key, "data", default_data))
        if created:
            await self.redis_client.hsetnx(key, "id", document_id)
            logger.info(f"Document {document_id} created with default content")
            return Document(id=document_id, data=default_data, created=True)

        data = await self.redis_client.hget(key, "data")
        logger.debug(f"Document {document_id} already exists")
        return Document(id=document_id, data=data if data is not None else default_data)

    async def persist_document(self, document_id: str, data: str):
        key = REDIS_DOCUMENT_KEY.format(document_id=document_id)
        try:
            await self.redis_client.hset(key, mapping={"id": document_id, "data": data})
        except redis.RedisError as e:
            raise PersistenceFailure(document_id, str(e)) from e
        logger.debug(f"Document {document_id} persisted ({len(data)} chars)")
        return True

    # Users

    async def create_user(self, user_data: dict) -> Optional[dict]:
        """Store a new user. Returns None if the email is already registered."""
        user_id = uuid.uuid4().hex
        email = user_data["email"].lower()
        email_key = REDIS_USER_EMAIL_KEY.format(email=email)
        claimed = await self.redis_client.set(email_key, user_id, nx=True)
        if not claimed:
            logger.debug(f"Email {email} already registered")
            return None

        record = {**user_data, "id": user_id, "email": email, "sessions_attended": user_data.get("sessions_attended", 0)}
        await self.redis_client.hset(REDIS_USER_KEY.format(user_id=user_id), mapping=_to_hash(record))
        await self.redis_client.sadd(REDIS_USERS_KEY, user_id)
        logger.info(f"User {user_id} created")
        return record

    async def get_user(self, user_id: str) -> Optional[dict]:
        raw = await self.redis_client.hgetall(REDIS_USER_KEY.format(user_id=user_id))
        if not raw:
            return None
        user = _from_hash(raw)
        # Keep string fields as strings even if they look like JSON
        for field in ("id", "first_name", "last_name", "email", "password", "bio", "image"):
            if field in raw:
                user[field] = raw[field]
        return user

    async def get_user_by_email(self, email: str) -> Optional[dict]:
        user_id = await self.redis_client.get(REDIS_USER_EMAIL_KEY.format(email=email.lower()))
        if not user_id:
            return None
        return await self.get_user(user_id)

    async def list_users(self) -> List[dict]:
        user_ids = await self.redis_client.smembers(REDIS_USERS_KEY)
        users = []
        for user_id in sorted(user_ids):
            user = await self.get_user(user_id)
            if user:
                users.append(user)
        logger.debug(f"Listed {len(users)} users")
        return users

    async def update_user(self, user_id: str, changes: dict) -> Optional[dict]:
        key = REDIS_USER_KEY.format(user_id=user_id)
        if not await self.redis_client.exists(key):
            return None
        mapping = _to_hash(changes)
        if mapping:
            await self.redis_client.hset(key, mapping=mapping)
            logger.info(f"User {user_id} updated fields: {sorted(mapping)}")
        return await self.get_user(user_id)

    # Interviews

    async def create_interview(self, interview_data: dict) -> dict:
        interview_id = uuid.uuid4().hex
        record = {**interview_data, "id": interview_id, "available": True}
        await self.redis_client.hset(REDIS_INTERVIEW_KEY.format(interview_id=interview_id), mapping=_to_hash(record))
        await self.redis_client.sadd(REDIS_AVAILABLE_INTERVIEWS_KEY, interview_id)
        logger.info(f"Interview {interview_id} created on channel {record.get('channel_name')}")
        return record

    async def get_interview(self, interview_id: str) -> Optional[dict]:
        raw = await self.redis_client.hgetall(REDIS_INTERVIEW_KEY.format(interview_id=interview_id))
        if not raw:
            return None
        interview = _from_hash(raw)
        for field in ("id", "date_and_time", "peer_first", "peer_second", "token", "channel_name"):
            if field in raw:
                interview[field] = raw[field]
        return interview

    async def list_available_interviews(self) -> List[dict]:
        interview_ids = await self.redis_client.smembers(REDIS_AVAILABLE_INTERVIEWS_KEY)
        interviews = []
        for interview_id in sorted(interview_ids):
            interview = await self.get_interview(interview_id)
            if interview and interview.get("available"):
                interviews.append(interview)
        return interviews

    async def claim_interview(self, interview_id: str, peer_second: str) -> bool:
        """Mark an interview as taken. Only the caller whose SREM succeeds wins it."""
        removed = await self.redis_client.srem(REDIS_AVAILABLE_INTERVIEWS_KEY, interview_id)
        if not removed:
            return False
        await self.redis_client.hset(
            REDIS_INTERVIEW_KEY.format(interview_id=interview_id),
            mapping=_to_hash({"peer_second": peer_second, "available": False}),
        )
        logger.info(f"Interview {interview_id} claimed by {peer_second}")
        return True

    # Channel pool

    async def pop_channel(self) -> Optional[dict]:
        raw = await self.redis_client.lpop(REDIS_CHANNEL_POOL_KEY)
        if raw is None:
            return None
        return json.loads(raw)

    async def push_channel(self, channel: dict):
        await self.redis_client.rpush(REDIS_CHANNEL_POOL_KEY, json.dumps(channel))
        logger.debug(f"Pooled channel {channel.get('channel_name')}")
        return True


redis_backend = RedisBackend()
