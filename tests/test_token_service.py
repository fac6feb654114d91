import httpx
import pytest

from exceptions import TokenServiceError
from token_service import TokenServiceClient


def make_client(handler):
    return TokenServiceClient(base_url="http://rtc.test/", secret="shh", transport=httpx.MockTransport(handler))


async def test_fetch_rtm_token_builds_url():
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, json={"rtmToken": "abc"})

    token = await make_client(handler).fetch_rtm_token("chan-1")

    assert token == "abc"
    assert seen == ["http://rtc.test/rtm/chan-1/shh"]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, json={"somethingElse": 1}),
        httpx.Response(200, text="not json"),
    ],
)
async def test_fetch_rtm_token_failures(response):
    with pytest.raises(TokenServiceError):
        await make_client(lambda request: response).fetch_rtm_token("chan-1")


async def test_fetch_rtm_token_transport_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TokenServiceError):
        await make_client(handler).fetch_rtm_token("chan-1")
