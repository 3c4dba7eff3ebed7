"""Shared fixtures: recorded GraphQL transports and an isolated environment."""

import json
import os
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest

from rsc_report import logging_utils
from rsc_report.api_client import GraphQLClient
from rsc_report.cli import common
from rsc_report.session import RSCSession
from rsc_report.time_window import TimeWindow

RSC_URL = "https://acme.my.rubrik.com"
CONNECT_ERROR = "connect-error"


class RecordingTransport:
    """Replays canned responses in order and records every request body.

    A response may be a dict (sent as a 200 JSON body), an ``httpx.Response``,
    or :data:`CONNECT_ERROR` to simulate a network failure.
    """

    def __init__(self, responses: list[Any]):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request to {request.url}")
        response = self.responses.pop(0)
        if response == CONNECT_ERROR:
            raise httpx.ConnectError("connection refused", request=request)
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    @property
    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    @property
    def variables(self) -> list[dict[str, Any]]:
        return [b.get("variables", {}) for b in self.bodies]


@dataclass(frozen=True)
class MockSession(RSCSession):
    """Session whose clients talk to a mock transport."""

    transport: httpx.BaseTransport | None = None

    def client(self, verbose: bool = False, transport: httpx.BaseTransport | None = None) -> GraphQLClient:
        return super().client(verbose, transport or self.transport)


def connection_page(
    field: str,
    nodes: list[dict[str, Any]],
    has_next: bool = False,
    end_cursor: str | None = None,
) -> dict[str, Any]:
    """Build a GraphQL response body for one page of a connection."""
    return {
        "data": {
            field: {
                "edges": [{"node": n} for n in nodes],
                "pageInfo": {"hasNextPage": has_next, "endCursor": end_cursor},
            }
        }
    }


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep tests away from the user's env vars, config files and log directory."""
    for key in list(os.environ):
        if key.startswith("RSC_"):
            monkeypatch.delenv(key, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(logging_utils, "LOG_DIR", home / ".rsc-report" / "logs")
    monkeypatch.setattr(common, "_GLOBAL_CONFIG_DIR", home / ".rsc-report")
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return work


@pytest.fixture
def recorder():
    """Factory for :class:`RecordingTransport`."""
    return RecordingTransport


@pytest.fixture
def make_client():
    """Return (client, transport) for a list of canned responses."""
    clients = []

    def _make(responses: list[Any]) -> tuple[GraphQLClient, RecordingTransport]:
        recording = RecordingTransport(responses)
        client = GraphQLClient(f"{RSC_URL}/api/graphql", transport=recording.transport)
        clients.append(client)
        return client, recording

    yield _make
    for client in clients:
        client.close()


@pytest.fixture
def make_session():
    """Return (session, transport) for a list of canned responses."""

    def _make(responses: list[Any]) -> tuple[MockSession, RecordingTransport]:
        recording = RecordingTransport(responses)
        return MockSession(RSC_URL, "test-token", transport=recording.transport), recording

    return _make


@pytest.fixture
def window():
    return TimeWindow(
        datetime(2024, 5, 31, 12, 0, tzinfo=UTC),
        datetime(2024, 6, 1, 12, 0, tzinfo=UTC),
    )


@pytest.fixture
def page():
    """The :func:`connection_page` builder."""
    return connection_page
