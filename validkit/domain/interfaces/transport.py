"""Interface for the HTTP-call primitive the resilience layer consumes.

Any async callable ``(RequestDescriptor) -> TransportResponse`` satisfies the
contract; ``Transport`` is the ABC concrete adapters derive from.
"""

import abc
from typing import Awaitable, Callable

from ..models.common import RequestDescriptor, TransportResponse

TransportCall = Callable[[RequestDescriptor], Awaitable[TransportResponse]]


class Transport(abc.ABC):
    """Abstract Base Class for sending a request to the remote service."""

    @abc.abstractmethod
    async def __call__(self, request: RequestDescriptor) -> TransportResponse:
        """Sends the request asynchronously.

        Args:
            request: The request to send.

        Returns:
            A TransportResponse for every HTTP response received, including
            4xx and 5xx statuses.

        Raises:
            TransportError: If no response was received. ``aborted`` is set
                when the client gave up (timeout or cancellation of the call).
        """
        pass

    async def aclose(self) -> None:
        """Releases any connections held by the transport."""
        return None
