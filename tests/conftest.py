import pytest
from typing import Any, Dict, List, Optional, Union

from validkit.domain.models.common import RequestDescriptor, TransportResponse
from validkit.infrastructure.config.settings import clear_test_config
from validkit.infrastructure.resilience.rate_limiter import RateLimitRegistry


class FakeClock:
    """Manually advanced time source, in seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Stands in for asyncio.sleep: records each delay and advances the clock."""

    def __init__(self, clock: Optional[FakeClock] = None):
        self.delays: List[float] = []
        self.clock = clock

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)


Outcome = Union[TransportResponse, Exception]


class ScriptedTransport:
    """Returns (or raises) the scripted outcomes in order; repeats the last one."""

    def __init__(self, *outcomes: Outcome):
        self.outcomes = list(outcomes)
        self.requests: List[RequestDescriptor] = []

    async def __call__(self, request: RequestDescriptor) -> TransportResponse:
        self.requests.append(request)
        index = min(len(self.requests), len(self.outcomes)) - 1
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def call_count(self) -> int:
        return len(self.requests)


def response(status: int = 200, data: Any = None, headers: Optional[Dict[str, str]] = None) -> TransportResponse:
    return TransportResponse(status_code=status, headers=headers or {}, data=data)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock: FakeClock) -> RateLimitRegistry:
    """An isolated registry so tests never share rate-limit state."""
    return RateLimitRegistry(clock=clock)


@pytest.fixture
def sleeper(clock: FakeClock) -> SleepRecorder:
    return SleepRecorder(clock)


@pytest.fixture
def make_transport():
    """Factory for ScriptedTransport: make_transport(response(503), response(200, data))."""
    return ScriptedTransport


@pytest.fixture
def make_response():
    return response


@pytest.fixture
def request_descriptor() -> RequestDescriptor:
    return RequestDescriptor(method="POST", url="/private/secure/verify", json={"email": "a@b.co"})


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keep developer environment and testing overrides out of every test."""
    for name in ("VALIDKIT_API_KEY", "VALIDKIT_ROOT_API_KEY", "VALIDKIT_BASE_URL"):
        monkeypatch.delenv(name, raising=False)
    yield
    clear_test_config()
