"""Shared fixtures.

Redis is replaced by an in-memory AsyncMock so the suite runs without any
infrastructure. The mock implements just the commands the backend uses.
"""

import os
from unittest.mock import AsyncMock

import pytest

os.environ.setdefault("JWT_SECRET", "test-secret-that-is-long-enough-for-hs256")
os.environ.setdefault("LOG_LEVEL", "DEBUG")


@pytest.fixture
def mock_redis_client():
    """AsyncMock Redis client backed by plain dicts.

    Supports hashes (hget/hset/hsetnx/hgetall/exists), strings (get/set with
    nx), sets (sadd/srem/smembers) and lists (rpush/lpop).
    """
    mock_client = AsyncMock()

    hashes: dict = {}
    strings: dict = {}
    sets: dict = {}
    lists: dict = {}

    async def mock_hget(key, field):
        return hashes.get(key, {}).get(field)

    async def mock_hset(key, field=None, value=None, mapping=None):
        bucket = hashes.setdefault(key, {})
        added = 0
        items = dict(mapping or {})
        if field is not None:
            items[field] = value
        for k, v in items.items():
            if k not in bucket:
                added += 1
            bucket[k] = str(v)
        return added

    async def mock_hsetnx(key, field, value):
        bucket = hashes.setdefault(key, {})
        if field in bucket:
            return 0
        bucket[field] = str(value)
        return 1

    async def mock_hgetall(key):
        return dict(hashes.get(key, {}))

    async def mock_exists(*keys):
        return sum(1 for key in keys if key in hashes or key in strings or key in sets or key in lists)

    async def mock_get(key):
        return strings.get(key)

    async def mock_set(key, value, nx=False, ex=None):
        if nx and key in strings:
            return None
        strings[key] = str(value)
        return True

    async def mock_sadd(key, *values):
        bucket = sets.setdefault(key, set())
        new = [v for v in values if v not in bucket]
        bucket.update(values)
        return len(new)

    async def mock_srem(key, *values):
        bucket = sets.get(key, set())
        removed = [v for v in values if v in bucket]
        bucket.difference_update(values)
        return len(removed)

    async def mock_smembers(key):
        return set(sets.get(key, set()))

    async def mock_rpush(key, *values):
        bucket = lists.setdefault(key, [])
        bucket.extend(values)
        return len(bucket)

    async def mock_lpop(key):
        bucket = lists.get(key)
        if not bucket:
            return None
        return bucket.pop(0)

    async def mock_ping():
        return True

    mock_client.hget = AsyncMock(side_effect=mock_hget)
    mock_client.hset = AsyncMock(side_effect=mock_hset)
    mock_client.hsetnx = AsyncMock(side_effect=mock_hsetnx)
    mock_client.hgetall = AsyncMock(side_effect=mock_hgetall)
    mock_client.exists = AsyncMock(side_effect=mock_exists)
    mock_client.get = AsyncMock(side_effect=mock_get)
    mock_client.set = AsyncMock(side_effect=mock_set)
    mock_client.sadd = AsyncMock(side_effect=mock_sadd)
    mock_client.srem = AsyncMock(side_effect=mock_srem)
    mock_client.smembers = AsyncMock(side_effect=mock_smembers)
    mock_client.rpush = AsyncMock(side_effect=mock_rpush)
    mock_client.lpop = AsyncMock(side_effect=mock_lpop)
    mock_client.ping = AsyncMock(side_effect=mock_ping)

    # Exposed for assertions
    mock_client.hashes = hashes
    mock_client.lists = lists

    return mock_client


@pytest.fixture
def store(mock_redis_client):
    from backend import RedisBackend

    return RedisBackend(redis_client=mock_redis_client)


@pytest.fixture
def registry():
    from realtime.registry import SessionRegistry

    return SessionRegistry()


@pytest.fixture
def relay(store, registry):
    from realtime.relay import RelayEngine

    return RelayEngine(store=store, registry=registry)


@pytest.fixture
def patched_backend(monkeypatch, mock_redis_client):
    """Point the process wide backend at the mock client."""
    import backend

    monkeypatch.setattr(backend.redis_backend, "redis_client", mock_redis_client)
    return backend.redis_backend


@pytest.fixture
def client(patched_backend):
    """TestClient with a fresh session registry and relay for each test."""
    from fastapi.testclient import TestClient

    from app import app
    from realtime.registry import SessionRegistry
    from realtime.relay import RelayEngine

    app.state.session_registry = SessionRegistry()
    app.state.relay_engine = RelayEngine(store=patched_backend, registry=app.state.session_registry)

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register_user(client):
    """Register a user through the API and return ``(token, user_data)``."""

    def _register(email="ada@example.com", password="s3cret-pass", first_name="Ada", last_name="Lovelace"):
        response = client.post(
            "/register",
            json={"firstName": first_name, "lastName": last_name, "email": email, "password": password},
        )
        assert response.status_code == 200, response.text
        body = response.json()
        return body["jwt"], body["userData"]

    return _register
