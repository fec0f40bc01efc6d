import pytest

from validkit.core.client import ValidationClient, build_request, derive_client_id
from validkit.domain.models.common import ResilienceConfig
from validkit.domain.models.errors import (
    CODE_INVALID_TOKEN,
    ServerError,
    UnknownOperationError,
    ValidationError,
)
from validkit.domain.models.operations import Operation
from validkit.infrastructure.config.settings import set_config_for_testing

pytestmark = pytest.mark.integration


@pytest.fixture
def make_client(registry, sleeper):
    def factory(transport, **kwargs) -> ValidationClient:
        kwargs.setdefault("api_key", "test-api-key")
        return ValidationClient(transport=transport, registry=registry, sleep=sleeper, **kwargs)
    return factory


@pytest.mark.parametrize("api_key, root_api_key, expected", [
    ("key", "root", "key"),
    (None, "root", "root"),
    (None, None, "anonymous"),
    ("", "", "anonymous"),
])
def test_client_identity(api_key, root_api_key, expected):
    assert derive_client_id(api_key, root_api_key) == expected


def test_public_operations_send_query_params():
    request = build_request(Operation.INPUT_SANITIZE, {"input": "hello"})
    assert request.method == "GET"
    assert request.url == "/public/inputSatinizer"
    assert request.params == {"input": "hello"}
    assert request.json is None


def verify_body(field_name, value, valid=True):
    """What /private/secure/verify answers: one analysis per requested field."""
    return {field_name: {"valid": valid, "fraud": False, field_name: value, "plugins": {"riskScore": 3}}}


@pytest.mark.asyncio
async def test_email_check_wraps_verify_response(make_client, make_transport, make_response):
    transport = make_transport(make_response(200, verify_body("email", "a@b.co")))
    client = make_client(transport)

    result = await client.is_valid_email("a@b.co")

    assert result == {
        "email": "a@b.co",
        "allow": True,
        "reasons": [],
        "response": verify_body("email", "a@b.co")["email"],
    }
    sent = transport.requests[0]
    assert (sent.method, sent.url, sent.json) == ("POST", "/private/secure/verify", {"email": "a@b.co"})


@pytest.mark.asyncio
async def test_invalid_verify_analysis_is_denied(make_client, make_transport, make_response):
    client = make_client(make_transport(make_response(200, verify_body("ip", "999.0.0.1", valid=False))))

    result = await client.is_valid_ip("999.0.0.1")

    assert result["allow"] is False
    assert result["reasons"] == ["INVALID"]
    assert result["ip"] == "999.0.0.1"


@pytest.mark.asyncio
@pytest.mark.parametrize("method, field_name, value", [
    ("is_valid_email", "email", "a@b.co"),
    ("is_valid_ip", "ip", "52.94.236.248"),
    ("is_valid_phone", "phone", "+34600000000"),
])
async def test_live_and_fallback_results_share_shape(make_client, make_transport, make_response, method, field_name, value):
    resilience = ResilienceConfig(fallback_enabled=True, retry_attempts=0)
    live_client = make_client(make_transport(make_response(200, verify_body(field_name, value))), resilience=resilience)
    down_client = make_client(make_transport(make_response(503)), resilience=resilience, api_key="other-key")

    live = await getattr(live_client, method)(value)
    degraded = await getattr(down_client, method)(value)

    assert sorted(live) == sorted(degraded) == sorted([field_name, "allow", "reasons", "response"])
    assert live[field_name] == degraded[field_name] == value
    assert isinstance(live["response"], dict) and isinstance(degraded["response"], dict)


@pytest.mark.asyncio
async def test_fallback_synthesized_when_service_unreachable(make_client, make_transport, sleeper):
    transport = make_transport(ConnectionError("down"))
    client = make_client(transport, resilience=ResilienceConfig(fallback_enabled=True, retry_attempts=1, retry_delay=20))

    result = await client.is_valid_email("someone@example.com")

    assert transport.call_count == 2
    assert sleeper.delays == pytest.approx([0.02])
    assert result["allow"] is True
    assert result["response"]["valid"] is True
    assert result["response"]["email"] == "someone@example.com"


@pytest.mark.asyncio
async def test_waf_fallback_denies_request(make_client, make_transport, make_response):
    client = make_client(make_transport(make_response(503)), resilience=ResilienceConfig(fallback_enabled=True, retry_attempts=0))

    result = await client.protect_request({"url": "https://shop.example.com", "method": "POST"})

    assert result["allow"] is False
    assert result["reasons"] == ["FRAUD"]


@pytest.mark.asyncio
async def test_server_error_without_fallback_raises(make_client, make_transport, make_response):
    client = make_client(make_transport(make_response(500, {"message": "boom"})), resilience=ResilienceConfig(retry_attempts=0))

    with pytest.raises(ServerError, match="boom"):
        await client.get_random({"min": 1, "max": 10})


@pytest.mark.asyncio
async def test_private_operation_requires_a_key(make_client, make_transport, make_response):
    transport = make_transport(make_response(200))
    client = make_client(transport, api_key=None)

    with pytest.raises(ValidationError) as exc_info:
        await client.is_valid_ip("1.1.1.1")

    assert exc_info.value.code == CODE_INVALID_TOKEN
    assert transport.call_count == 0


@pytest.mark.asyncio
async def test_public_operation_works_anonymously(make_client, make_transport, make_response):
    transport = make_transport(make_response(200, {"valid": True}))
    client = make_client(transport, api_key=None)

    assert await client.is_valid_password({"password": "S3cure!pass"}) == {"valid": True}
    assert client.client_id == "anonymous"
    assert transport.requests[0].params == {"password": "S3cure!pass"}


@pytest.mark.asyncio
async def test_empty_payload_is_rejected(make_client, make_transport):
    client = make_client(make_transport())

    with pytest.raises(ValidationError, match="at least one parameter"):
        await client.is_valid_data({})


@pytest.mark.asyncio
async def test_unknown_operation_is_rejected(make_client, make_transport):
    client = make_client(make_transport())

    with pytest.raises(UnknownOperationError):
        await client.call("isValidSomething", {"x": 1})


@pytest.mark.asyncio
async def test_rate_limit_headers_defer_next_call(make_client, make_transport, make_response, sleeper):
    transport = make_transport(
        make_response(200, {"n": 1}, headers={"X-RateLimit-Remaining-Requests": "0", "Retry-After": "2"}),
        make_response(200, {"n": 2}),
    )
    client = make_client(transport)

    await client.get_random({"min": 1, "max": 2})
    result = await client.get_random({"min": 1, "max": 2})

    assert result == {"n": 2}
    assert sleeper.delays == [2]


@pytest.mark.asyncio
async def test_clients_with_same_key_share_rate_limit_state(make_client, make_transport, make_response, sleeper):
    limited = make_transport(make_response(200, headers={"x-ratelimit-remaining-requests": "0", "retry-after": "5"}))
    await make_client(limited).get_random({"min": 1})

    other_key = make_client(make_transport(make_response(200)), api_key="other-key")
    await other_key.get_random({"min": 1})
    assert sleeper.delays == []

    same_key = make_client(make_transport(make_response(200)))
    await same_key.get_random({"min": 1})
    assert sleeper.delays == [5]


def test_invalid_base_url_is_rejected(make_client, make_transport):
    with pytest.raises(ValidationError):
        make_client(make_transport(), base_url="https://example.com")


def test_from_config_reads_settings(make_transport, registry):
    set_config_for_testing({
        "api_key": "configured-key",
        "base_url": "http://localhost:3050",
        "resilience.fallback_enabled": True,
        "resilience.retry_attempts": 5,
        "resilience.retry_delay": 10,
    })

    client = ValidationClient.from_config(transport=make_transport(), registry=registry)

    assert client.client_id == "configured-key"
    assert client.base_url == "http://localhost:3050"
    assert client.resilience == ResilienceConfig(fallback_enabled=True, retry_attempts=5, retry_delay=10)


@pytest.mark.asyncio
async def test_waf_request_with_raw_header_string_still_reaches_service(make_client, make_transport, make_response):
    transport = make_transport(make_response(200, {"allow": True, "reasons": []}))
    client = make_client(transport, resilience=ResilienceConfig(fallback_enabled=True))

    result = await client.protect_request({"url": "/login", "headers": "user-agent: curl/8.0"})

    assert result == {"allow": True, "reasons": []}
    assert transport.call_count == 1
