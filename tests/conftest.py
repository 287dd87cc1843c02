# -*- coding: utf-8 -*-
"""
Pytest configuration and fixtures.
"""
import json
import logging

import pytest

from allscreenshots.client import AllscreenshotsClient
from allscreenshots.config import Settings
from allscreenshots.retry import RetryPolicy
from allscreenshots.transport import TransportResponse

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def json_response(status_code: int, data) -> TransportResponse:
    """Build a JSON transport response."""
    return TransportResponse(
        status_code=status_code,
        headers={"content-type": "application/json; charset=utf-8"},
        body=json.dumps(data).encode("utf-8"),
    )


def image_response(body: bytes = PNG_BYTES, content_type: str = "image/png") -> TransportResponse:
    """Build a binary image transport response."""
    return TransportResponse(status_code=200, headers={"Content-Type": content_type}, body=body)


class FakeTransport:
    """
    Scripted transport.

    Each send() pops the next scripted item: a TransportResponse is
    returned, an exception is raised. Every call is recorded.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.calls: list[dict] = []
        self.closed = False

    def queue(self, *items) -> None:
        self.script.extend(items)

    async def send(self, method, path, headers, body=None):
        self.calls.append(
            {
                "method": method,
                "path": path,
                "headers": dict(headers),
                "body": json.loads(body) if body else None,
            }
        )
        if not self.script:
            raise AssertionError(f"Unexpected request {method} {path}")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def aclose(self):
        self.closed = True


class FakeClock:
    """Monotonic clock advanced only by its own sleep()."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay


@pytest.fixture
def test_settings():
    """Settings isolated from the developer's environment and .env file."""
    return Settings(_env_file=None, API_KEY="test-api-key", BASE_URL="https://api.test")


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def retry_sleeps():
    """Delays requested by the retry engine."""
    return []


@pytest.fixture
def client(transport, retry_sleeps, test_settings):
    """Client wired to the fake transport, retrying without real sleeps."""

    async def no_sleep(delay):
        retry_sleeps.append(delay)

    return AllscreenshotsClient(
        transport=transport,
        retry_policy=RetryPolicy(max_retries=3),
        sleep=no_sleep,
        config=test_settings,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def restore_logging():
    """Put the root logger back after a test reconfigures it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
