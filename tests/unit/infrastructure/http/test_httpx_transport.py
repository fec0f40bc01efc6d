import httpx
import pytest

from validkit.domain.models.common import RequestDescriptor
from validkit.domain.models.errors import TransportError
from validkit.infrastructure.http.transport import HttpxTransport


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url="https://api.test/v1", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_sends_descriptor_and_returns_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = request.content
        return httpx.Response(200, json={"valid": True}, headers={"X-RateLimit-Remaining-Requests": "9"})

    transport = HttpxTransport(api_key="secret", client=make_client(handler))
    result = await transport(RequestDescriptor(method="POST", url="/private/secure/verify", json={"ip": "1.1.1.1"}))

    assert result.status_code == 200
    assert result.data == {"valid": True}
    assert result.headers["x-ratelimit-remaining-requests"] == "9"
    assert seen["method"] == "POST"
    assert seen["url"] == "https://api.test/v1/private/secure/verify"
    assert seen["auth"] == "Bearer secret"
    assert b'"ip"' in seen["body"]


@pytest.mark.asyncio
async def test_error_statuses_are_returned_not_raised():
    transport = HttpxTransport(client=make_client(lambda request: httpx.Response(503, text="down")))
    result = await transport(RequestDescriptor(method="GET", url="/public/validPwd", params={"password": "x"}))
    assert result.status_code == 503
    assert result.data == "down"


@pytest.mark.asyncio
async def test_empty_body_decodes_to_none():
    transport = HttpxTransport(client=make_client(lambda request: httpx.Response(204)))
    result = await transport(RequestDescriptor(method="GET", url="/x"))
    assert result.data is None


@pytest.mark.asyncio
async def test_connection_failure_is_retryable_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport = HttpxTransport(client=make_client(handler))
    with pytest.raises(TransportError) as exc_info:
        await transport(RequestDescriptor(method="GET", url="/x"))
    assert not exc_info.value.aborted
    assert exc_info.value.retryable


@pytest.mark.asyncio
async def test_timeout_is_aborted_transport_error():
    def handler(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    transport = HttpxTransport(client=make_client(handler))
    with pytest.raises(TransportError) as exc_info:
        await transport(RequestDescriptor(method="GET", url="/x"))
    assert exc_info.value.aborted
    assert not exc_info.value.retryable


@pytest.mark.asyncio
async def test_does_not_close_injected_client():
    client = make_client(lambda request: httpx.Response(200))
    async with HttpxTransport(client=client):
        pass
    assert not client.is_closed
    await client.aclose()


@pytest.mark.asyncio
async def test_owned_client_is_closed_and_prefixed():
    transport = HttpxTransport(base_url="http://localhost:3050/")
    assert str(transport.client.base_url) == "http://localhost:3050/v1/"
    assert "authorization" not in transport.client.headers
    await transport.aclose()
    assert transport.client.is_closed
