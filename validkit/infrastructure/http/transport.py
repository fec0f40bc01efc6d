"""httpx-backed implementation of the Transport interface.

Returns a TransportResponse for every HTTP response, whatever its status, and
turns httpx's transport failures into TransportError so the resilience layer
can decide what to retry.
"""

import logging
from typing import Any, Optional

import httpx

from validkit.domain.interfaces.transport import Transport
from validkit.domain.models.common import RequestDescriptor, TransportResponse
from validkit.domain.models.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.tpeoficial.com"
API_PREFIX = "/v1"
USER_AGENT = "ValidKitSDK"
DEFAULT_TIMEOUT_S = 30.0


class HttpxTransport(Transport):
    """Sends RequestDescriptors through an ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initializes the transport.

        Args:
            base_url: Service root, without the API version prefix.
            api_key: Sent as a bearer token when given.
            timeout: Per-request timeout in seconds.
            client: Pre-built client (tests pass one backed by ``httpx.MockTransport``).
                The transport does not close a client it did not create.
        """
        headers = {"User-Agent": USER_AGENT, "Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/") + API_PREFIX,
            headers=headers,
            timeout=timeout,
        )
        if client is not None:
            self.client.headers.update(headers)
        logger.debug(f"HttpxTransport initialized for {self.client.base_url}")

    async def __call__(self, request: RequestDescriptor) -> TransportResponse:
        try:
            response = await self.client.request(
                request.method,
                request.url,
                headers=request.headers or None,
                params=request.params,
                json=request.json,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Request {request.method} {request.url} timed out: {e}")
            raise TransportError(f"Request timed out: {e}", aborted=True) from e
        except httpx.TransportError as e:
            logger.warning(f"Network error calling {request.method} {request.url}: {type(e).__name__} - {e}")
            raise TransportError(f"Network error: {e}") from e

        return TransportResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            data=_decode_body(response),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def _decode_body(response: httpx.Response) -> Any:
    """JSON body when there is one, else the raw text (None for an empty body)."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
