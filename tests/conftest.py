import json

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from metabase_mcp.core.config import Settings, get_settings
from metabase_mcp.main import app
from metabase_mcp.services.upstream import UpstreamClient, get_upstream_client


def make_settings(**overrides) -> Settings:
    """Settings isolated from the real environment and any .env file."""
    values = {
        "METABASE_URL": "http://metabase.test/",
        "METABASE_API_KEY": "mb-key",
        "OPENAI_API_KEY": "sk-test",
        "OPENAI_BASE_URL": "http://openai.test",
        "NL_SQL_MODEL": "gpt-4.1-mini",
        "ALLOWED_DATABASES": "",
        "UPSTREAM_TIMEOUT": 30,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeUpstream:
    """
    httpx.MockTransport handler that records every outbound request
    and answers with a queued (status, body) or by raising a queued exception.
    """

    def __init__(self):
        self.calls = []
        self.responses = []

    def reply(self, status=200, body=None):
        self.responses.append((status, body))
        return self

    def fail_with(self, exc_type, message="boom"):
        self.responses.append(exc_type(message))
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        nxt = self.responses.pop(0) if self.responses else (200, {})
        if isinstance(nxt, Exception):
            raise type(nxt)(str(nxt), request=request)
        status, body = nxt
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def sent_json(self, index=0):
        return json.loads(self.calls[index].content)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def upstream_client(settings, upstream):
    return UpstreamClient(settings, transport=httpx.MockTransport(upstream))


# Client with settings and the outbound transport swapped out
@pytest_asyncio.fixture(scope="function")
async def client(settings, upstream):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_upstream_client] = lambda: UpstreamClient(
        settings, transport=httpx.MockTransport(upstream)
    )

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def use_settings(upstream):
    """Swap in other Settings for the running app, e.g. use_settings(ALLOWED_DATABASES="2")."""

    def _apply(**overrides):
        new = make_settings(**overrides)
        app.dependency_overrides[get_settings] = lambda: new
        app.dependency_overrides[get_upstream_client] = lambda: UpstreamClient(
            new, transport=httpx.MockTransport(upstream)
        )
        return new

    return _apply
