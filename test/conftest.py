from typing import Any, List

import pytest

from clouddns_client.models import StatusPollingConfig, TransportResponse


class ScriptedTransport:
    """Replays canned responses (or raises canned exceptions) in order"""

    def __init__(self, *replies: Any):
        self.replies = list(replies)
        self.calls: List[dict] = []

    async def request(self, method, path, *, params=None, json=None, endpoint=None):
        self.calls.append(
            {"method": method, "path": path, "params": params, "json": json, "endpoint": endpoint}
        )
        if not self.replies:
            raise AssertionError(f"Unexpected request {method} {path}")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def reply(status_code: int, body: Any = None) -> TransportResponse:
    return TransportResponse(status_code=status_code, body=body if body is not None else {})


class FakeClock:
    """Simulated time: sleeping advances the clock instantly"""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> StatusPollingConfig:
    return StatusPollingConfig(
        initial_delay=2.0,
        max_delay=5.0,
        backoff_factor=2.0,
        timeout=30.0,
        max_attempts=20,
        jitter=False,
    )
