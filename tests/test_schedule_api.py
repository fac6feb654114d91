import httpx
import pytest

import routers.schedule
from token_service import TokenServiceClient


@pytest.fixture
def issued_channels(monkeypatch):
    """Swap the token service for one that answers locally and records channels."""
    channels = []

    def handler(request: httpx.Request) -> httpx.Response:
        _, _, channel, secret = request.url.path.split("/")
        channels.append(channel)
        return httpx.Response(200, json={"rtmToken": f"token-for-{channel}"})

    client = TokenServiceClient(base_url="http://rtc.test", secret="shh", transport=httpx.MockTransport(handler))
    monkeypatch.setattr(routers.schedule, "token_service", client)
    return channels


@pytest.fixture
def failing_token_service(monkeypatch):
    client = TokenServiceClient(
        base_url="http://rtc.test", secret="shh", transport=httpx.MockTransport(lambda request: httpx.Response(503))
    )
    monkeypatch.setattr(routers.schedule, "token_service", client)


def test_schedule_creates_available_interview(client, register_user, issued_channels):
    token, user = register_user()

    response = client.post("/schedule", headers={"jwt": token}, json={"dateAndTime": "2024-05-01T10:00:00Z"})

    assert response.status_code == 200
    interview = response.json()
    assert interview["dateAndTime"] == "2024-05-01T10:00:00Z"
    assert interview["peerFirst"] == user["id"]
    assert interview["peerSecond"] is None
    assert interview["available"] is True
    assert interview["channelName"] == issued_channels[0]
    assert interview["token"] == f"token-for-{issued_channels[0]}"

    listed = client.get("/schedule", headers={"jwt": token}).json()
    assert [i["id"] for i in listed] == [interview["id"]]


def test_schedule_requires_token(client):
    response = client.post("/schedule", json={"dateAndTime": "2024-05-01T10:00:00Z"})
    assert response.status_code == 401


def test_schedule_token_service_down(client, register_user, failing_token_service):
    token, _ = register_user()

    response = client.post("/schedule", headers={"jwt": token}, json={"dateAndTime": "2024-05-01T10:00:00Z"})

    assert response.status_code == 502


def test_take_interview(client, register_user, issued_channels):
    host_token, _ = register_user(email="host@example.com")
    guest_token, guest = register_user(email="guest@example.com")
    interview = client.post("/schedule", headers={"jwt": host_token}, json={"dateAndTime": "tomorrow"}).json()

    response = client.patch(f"/schedule/{interview['id']}", headers={"jwt": guest_token})
    assert response.status_code == 200
    assert response.json() == {"message": "Interview scheduled"}

    assert client.get("/schedule", headers={"jwt": guest_token}).json() == []

    response = client.patch(f"/schedule/{interview['id']}", headers={"jwt": host_token})
    assert response.status_code == 409


def test_take_missing_interview(client, register_user):
    token, _ = register_user()

    response = client.patch("/schedule/does-not-exist", headers={"jwt": token})

    assert response.status_code == 404


def test_token_pairs_callers_on_one_channel(client, register_user, issued_channels):
    first_token, _ = register_user(email="first@example.com")
    second_token, _ = register_user(email="second@example.com")

    first = client.get("/token", headers={"jwt": first_token})
    second = client.get("/token", headers={"jwt": second_token})

    assert first.status_code == 200
    assert first.json() == second.json()
    assert first.json()["channelName"] == issued_channels[0]
    assert len(issued_channels) == 1

    third = client.get("/token", headers={"jwt": first_token})
    assert third.json()["channelName"] != first.json()["channelName"]
    assert len(issued_channels) == 2
