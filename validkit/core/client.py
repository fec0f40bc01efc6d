"""Client entry point for the remote validation service.

Composition root for a single logical client: derives the client identity,
builds the transport and the resilience executor, and routes each operation to
its endpoint. Deny-rule evaluation on top of the raw responses is left to
callers.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from validkit.domain.interfaces.transport import TransportCall
from validkit.domain.models.common import (
    ANONYMOUS_CLIENT,
    RequestDescriptor,
    ResilienceConfig,
)
from validkit.domain.models.errors import CODE_INVALID_TOKEN, ValidationError
from validkit.domain.models.operations import Operation
from validkit.infrastructure.config import settings
from validkit.infrastructure.http.transport import HttpxTransport
from validkit.infrastructure.resilience.api_retry import EventHandler, ResilienceExecutor, Sleep
from validkit.infrastructure.resilience.fallback import FallbackSynthesizer, verdict
from validkit.infrastructure.resilience.rate_limiter import RateLimitRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Endpoint:
    method: str
    path: str


VERIFY_ENDPOINT = Endpoint("POST", "/private/secure/verify")

ENDPOINTS: Dict[Operation, Endpoint] = {
    Operation.DATA_VERIFICATION: VERIFY_ENDPOINT,
    Operation.DATA_VERIFICATION_RAW: VERIFY_ENDPOINT,
    Operation.EMAIL_CHECK: VERIFY_ENDPOINT,
    Operation.IP_CHECK: VERIFY_ENDPOINT,
    Operation.PHONE_CHECK: VERIFY_ENDPOINT,
    Operation.WAF_CHECK: Endpoint("POST", "/private/waf/verifyRequest"),
    Operation.SEND_EMAIL: Endpoint("POST", "/private/sender/sendEmail"),
    Operation.RANDOM_NUMBER: Endpoint("POST", "/private/srng"),
    Operation.TEXT_EXTRACTION: Endpoint("POST", "/private/textly/extract"),
    Operation.PRAYER_TIMES: Endpoint("GET", "/public/islam/prayertimes"),
    Operation.INPUT_SANITIZE: Endpoint("GET", "/public/inputSatinizer"),
    Operation.PASSWORD_CHECK: Endpoint("GET", "/public/validPwd"),
}

# Single-field checks read their analysis out of the combined verify response
VERIFY_FIELDS: Dict[Operation, str] = {
    Operation.EMAIL_CHECK: "email",
    Operation.IP_CHECK: "ip",
    Operation.PHONE_CHECK: "phone",
}


def derive_client_id(api_key: Optional[str], root_api_key: Optional[str]) -> str:
    """The identity rate limits are tracked under: API key, else root key, else anonymous."""
    return api_key or root_api_key or ANONYMOUS_CLIENT


def build_request(operation: Operation, payload: Mapping[str, Any]) -> RequestDescriptor:
    """Shapes the request for an operation: GET sends params, POST a JSON body."""
    endpoint = ENDPOINTS[operation]
    if endpoint.method == "GET":
        return RequestDescriptor(method="GET", url=endpoint.path, params=dict(payload))
    return RequestDescriptor(method=endpoint.method, url=endpoint.path, json=dict(payload))


def project_verify_response(field_name: str, data: Any) -> Dict[str, Any]:
    """Turns a verify response into the ``{field, allow, reasons, response}`` shape."""
    analysis = data.get(field_name) if isinstance(data, Mapping) else None
    if not isinstance(analysis, Mapping):
        logger.warning(f"Verify response has no '{field_name}' analysis; treating it as invalid.")
        analysis = {}
    return verdict(field_name, dict(analysis))


class ValidationClient:
    """Async client for the validation service with built-in resilience."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        root_api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        resilience: Optional[ResilienceConfig] = None,
        transport: Optional[TransportCall] = None,
        registry: Optional[RateLimitRegistry] = None,
        sleep: Sleep = asyncio.sleep,
        event_handler: Optional[EventHandler] = None,
        timeout: Optional[float] = None,
    ):
        """Initializes the client.

        Args:
            api_key: Private API key; required for private operations.
            root_api_key: Root key, used when no API key is given.
            base_url: Service root. Only the production URL or a local server is accepted.
            resilience: Retry/fallback settings. Defaults to ``ResilienceConfig()``.
            transport: Async transport callable. Defaults to an ``HttpxTransport``.
            registry: Rate-limit registry. Defaults to the process-wide one.
            sleep: Coroutine function used for every wait.
            event_handler: Receives resilience domain events.
            timeout: Optional deadline in seconds for each call, waits included.
        """
        self.api_key = api_key
        self.root_api_key = root_api_key
        self.base_url = settings.validate_base_url(base_url or settings.PRODUCTION_BASE_URL)
        self.client_id = derive_client_id(api_key, root_api_key)
        self.timeout = timeout
        self._owns_transport = transport is None
        self.transport: TransportCall = transport or HttpxTransport(
            base_url=self.base_url, api_key=api_key or root_api_key
        )
        self.executor = ResilienceExecutor(
            config=resilience,
            client_id=self.client_id,
            registry=registry,
            sleep=sleep,
            event_handler=event_handler,
        )
        self.fallbacks = FallbackSynthesizer()

    @classmethod
    def from_config(cls, **overrides: Any) -> "ValidationClient":
        """Builds a client from environment, .env and YAML configuration."""
        kwargs: Dict[str, Any] = {
            "api_key": settings.get_api_key(),
            "root_api_key": settings.get_root_api_key(),
            "base_url": settings.get_base_url(),
            "resilience": settings.get_resilience_config(),
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    @property
    def resilience(self) -> ResilienceConfig:
        return self.executor.config

    async def call(self, operation: Union[Operation, str], payload: Mapping[str, Any]) -> Any:
        """Runs one operation through the resilience executor.

        Args:
            operation: The operation or its string tag.
            payload: Request data for the operation.

        Returns:
            The service's response payload, or a synthesized one when the
            service is unreachable and fallback is enabled. Email, IP and phone
            checks always come back as ``{field, allow, reasons, response}``.

        Raises:
            ValidationError: Unknown operation, missing key for a private
                operation, or empty payload.
            RemoteCallError: The call failed and no fallback applied.
        """
        op = Operation.parse(operation)
        if op.is_private and not (self.api_key or self.root_api_key):
            raise ValidationError("Invalid private token.", code=CODE_INVALID_TOKEN)
        if not isinstance(payload, Mapping) or not payload:
            raise ValidationError("You must provide at least one parameter.")

        fallback = self.fallbacks.synthesize(op, payload) if self.resilience.fallback_enabled else None
        request = build_request(op, payload)
        logger.debug(f"Calling {op.value} as {request.method} {request.url}")
        result = await self.executor.execute(self.transport, request, fallback, timeout=self.timeout)
        if op in VERIFY_FIELDS and (fallback is None or result is not fallback):
            return project_verify_response(VERIFY_FIELDS[op], result)
        return result

    # --- Private operations ---

    async def is_valid_data(self, data: Mapping[str, Any]) -> Any:
        return await self.call(Operation.DATA_VERIFICATION, data)

    async def is_valid_data_raw(self, data: Mapping[str, Any]) -> Any:
        return await self.call(Operation.DATA_VERIFICATION_RAW, data)

    async def is_valid_email(self, email: str) -> Any:
        return await self.call(Operation.EMAIL_CHECK, {"email": email})

    async def is_valid_ip(self, ip: str) -> Any:
        return await self.call(Operation.IP_CHECK, {"ip": ip})

    async def is_valid_phone(self, phone: Union[str, Mapping[str, Any]]) -> Any:
        return await self.call(Operation.PHONE_CHECK, {"phone": phone})

    async def protect_request(self, request_data: Mapping[str, Any]) -> Any:
        return await self.call(Operation.WAF_CHECK, request_data)

    async def send_email(self, data: Mapping[str, Any]) -> Any:
        return await self.call(Operation.SEND_EMAIL, data)

    async def get_random(self, data: Mapping[str, Any]) -> Any:
        return await self.call(Operation.RANDOM_NUMBER, data)

    async def extract_with_textly(self, data: Mapping[str, Any]) -> Any:
        return await self.call(Operation.TEXT_EXTRACTION, data)

    # --- Public operations ---

    async def get_prayer_times(self, data: Mapping[str, Any]) -> Any:
        return await self.call(Operation.PRAYER_TIMES, data)

    async def sanitize_input(self, text: str) -> Any:
        return await self.call(Operation.INPUT_SANITIZE, {"input": text})

    async def is_valid_password(self, data: Mapping[str, Any]) -> Any:
        return await self.call(Operation.PASSWORD_CHECK, data)

    async def aclose(self) -> None:
        if self._owns_transport and isinstance(self.transport, HttpxTransport):
            await self.transport.aclose()

    async def __aenter__(self) -> "ValidationClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
