"""Shared fixtures: deterministic clock and DNS."""

import socket

import pytest

from toolgate.core.request_scope import RequestScope

PUBLIC_DNS = {
    "example.com": ["93.184.216.34"],
    "docs.example.com": ["93.184.216.35"],
    "internal.example.com": ["10.0.0.5"],
    "metadata.example.com": ["169.254.169.254"],
}


def fake_resolve(host):
    try:
        return PUBLIC_DNS[host]
    except KeyError:
        raise socket.gaierror(socket.EAI_NONAME, "Name or service not known") from None


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def resolver():
    return fake_resolve


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scope():
    return RequestScope(session_id="session-1")
