"""Pytest configuration and fixtures for the gateway tests.

Environment variables are set in ``pytest_configure`` so that settings are
loaded with the test environment before ``legion.main`` is imported.
"""

import asyncio
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest


def pytest_configure(config):
    """Configure test environment before any tests run."""
    config.addinivalue_line("markers", "security: Security-related tests")
    config.addinivalue_line("markers", "slow: Slow-running tests (excluded from fast)")

    os.environ.setdefault("ENVIRONMENT", "test")
    os.environ.setdefault("LOG_LEVEL", "WARNING")
    os.environ.setdefault("CORS_ORIGINS", "*")
    os.environ.setdefault("STATIC_DIR", "")


@dataclass
class UpstreamRoute:
    status: int = 200
    json: Any = None
    text: Optional[str] = None
    hang: bool = False


class FakeUpstream:
    """Scriptable stand-in for every provider host, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.routes: Dict[str, UpstreamRoute] = {}
        self.calls: List[str] = []
        self.requests: List[httpx.Request] = []

    def reply(self, host: str, content: str, model: Optional[str] = None) -> None:
        body: Dict[str, Any] = {"choices": [{"message": {"role": "assistant", "content": content}}]}
        if model:
            body["model"] = model
        self.routes[host] = UpstreamRoute(json=body)

    def fail(self, host: str, status: int = 500, text: str = "upstream error") -> None:
        self.routes[host] = UpstreamRoute(status=status, text=text)

    def hang(self, host: str) -> None:
        self.routes[host] = UpstreamRoute(hang=True)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        self.calls.append(host)
        self.requests.append(request)
        route = self.routes.get(host)
        if route is None:
            raise httpx.ConnectError(f"no route to {host}", request=request)
        if route.hang:
            await asyncio.sleep(3600)
        if route.json is not None:
            return httpx.Response(route.status, json=route.json)
        return httpx.Response(route.status, text=route.text or "")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def provider_table():
    from legion.providers.base import ProviderConfig
    from legion.providers.catalog import ProviderTable

    return ProviderTable([
        ProviderConfig("alpha", "Alpha", "https://alpha.test/v1", "sk-alpha-0123456789", ("alpha-small", "alpha-large")),
        ProviderConfig("beta", "Beta", "https://beta.test/v1", "sk-beta-0123456789", ("beta-1",)),
        ProviderConfig("gamma", "Gamma", "https://gamma.test/v1", "", ("gamma-1",)),
    ])


@pytest.fixture
def make_dispatcher(upstream, provider_table) -> Callable[..., Any]:
    from legion.providers.openai_compat import OpenAICompatClient
    from legion.services.dispatcher import CompletionDispatcher

    def _make(timeout: float = 2.0, system_prompt: str = "test persona"):
        client = OpenAICompatClient(timeout=timeout, transport=upstream.transport())
        return CompletionDispatcher(
            providers=provider_table,
            client=client,
            system_prompt=system_prompt,
            timeout=timeout,
        )

    return _make


@pytest.fixture
def api_client(make_dispatcher, provider_table):
    """TestClient whose dispatcher talks to the fake upstream."""
    from fastapi.testclient import TestClient

    from legion.config import get_settings
    from legion.main import create_app

    get_settings.cache_clear()
    app = create_app()
    app.state.provider_table = provider_table
    app.state.dispatcher = make_dispatcher()

    with TestClient(app) as client:
        yield client
