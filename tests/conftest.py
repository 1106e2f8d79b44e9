"""Pytest configuration and fixtures for nexpose-api tests.

This file provides:
- reset_tls: Isolates the process-wide TLS context between tests
- MockConsole: httpx.MockTransport-backed console that records requests
- Fixtures: console, make_session
"""

from __future__ import annotations

import ssl
from typing import Any, Callable, Generator

import httpx
import pytest

from nexpose_api import tls
from nexpose_api.session import APISession

BASE_URL = "https://console.test:3780"
SESSION_TOKEN = "deadbeef0123456789abcdef0123456789abcdef"


class MockConsole:
    """Serves queued XML replies and records every request it receives.

    Usage:
        console = MockConsole()
        console.reply('<LoginResponse success="1" session-id="ab"/>')
        session = APISession(..., transport=console.transport)
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._replies: list[Callable[[httpx.Request], httpx.Response]] = []

    def reply(
        self,
        body: str,
        status_code: int = 200,
        content_type: str = "text/xml;charset=UTF-8",
    ) -> MockConsole:
        self._replies.append(
            lambda request: httpx.Response(
                status_code,
                content=body.encode("utf-8"),
                headers={"Content-Type": content_type},
            )
        )
        return self

    def fail(self, exc: Exception) -> MockConsole:
        """Queue a transport-level failure."""

        def raiser(request: httpx.Request) -> httpx.Response:
            raise exc

        self._replies.append(raiser)
        return self

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._replies:
            raise AssertionError(f"Unexpected request to {request.url}")
        return self._replies.pop(0)(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    @property
    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def body(self, index: int = -1) -> str:
        return self.requests[index].content.decode("utf-8")


@pytest.fixture(autouse=True)
def reset_tls(monkeypatch: pytest.MonkeyPatch) -> None:
    """Every test starts with TLS uninitialized."""
    monkeypatch.setattr(tls, "_context", None)
    monkeypatch.setattr(tls, "_settings", None)


@pytest.fixture
def console() -> MockConsole:
    return MockConsole()


@pytest.fixture
def make_session(console: MockConsole) -> Generator[Callable[..., APISession], None, None]:
    """Factory for sessions wired to the mock console."""
    sessions: list[APISession] = []

    def factory(api_version: str = "1.1", **kwargs: Any) -> APISession:
        kwargs.setdefault("ssl_context", ssl.create_default_context())
        session = APISession(
            BASE_URL,
            "admin",
            "s3cret-pw",
            api_version,
            transport=console.transport,
            **kwargs,
        )
        sessions.append(session)
        return session

    yield factory

    for session in sessions:
        session.close()


def login_reply(token: str = SESSION_TOKEN) -> str:
    return f'<LoginResponse success="1" session-id="{token}"/>'
