import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from core.config import Config
from core.router import RouteDecision


class RecordingLogger:
    """RequestLogger double that keeps every event in memory."""

    def __init__(self):
        self.routes: list[tuple[str, str, RouteDecision]] = []
        self.forwards: list[tuple[RouteDecision, int]] = []
        self.errors: list[tuple[str, int, str]] = []

    def log_route(self, method, path, decision):
        self.routes.append((method, path, decision))

    def log_forward(self, decision, status):
        self.forwards.append((decision, status))

    def log_error(self, route, status, message):
        self.errors.append((route, status, message))


class FakeUpstream:
    """Programmable upstream behind httpx.MockTransport that records every call."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.content = b"#!/bin/sh\necho installed\n"
        self.headers = {"Content-Type": "text/plain"}
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        # An unread stream, as a real transport returns, so the relay can iterate raw bytes
        return httpx.Response(
            self.status_code,
            headers=self.headers,
            stream=httpx.ByteStream(self.content),
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def request_logger():
    return RecordingLogger()


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def client(config, request_logger, upstream):
    app = create_app(config, request_logger, transport=upstream.transport)
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client
