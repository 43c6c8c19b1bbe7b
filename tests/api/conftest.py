"""API test fixtures — deployed database service + FastAPI test client.

Invariants:
    - Every test gets a fresh SQLite database behind a real bus deployment
    - app.state populated the way the lifespan does it, then restored
    - The backup client talks to an httpx.MockTransport, never the network

Design Decisions:
    - ASGITransport does not run the lifespan, so the fixture wires app.state itself
    - gist_api['response'] lets a test choose the fake gist API's answer
"""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from wiki.infrastructure.gist_client import GistBackupClient
from wiki.main import app

_STATE_KEYS = ("bus", "wikidb_queue", "database", "wiki_db", "backup_client")


@pytest.fixture
def gist_api():
    """Fake gist API: records requests, answers with gist_api['response']."""
    api = {
        "requests": [],
        "response": httpx.Response(201, json={"html_url": "https://gist.example/1"}),
    }

    def handler(request: httpx.Request) -> httpx.Response:
        api["requests"].append(request)
        return api["response"]

    api["transport"] = httpx.MockTransport(handler)
    return api


@pytest.fixture
async def client(deployment, proxy, bus, settings, gist_api):
    """FastAPI test client with app.state wired to the test deployment."""
    backup_client = GistBackupClient(
        "https://gist.example/gists",
        client=httpx.AsyncClient(transport=gist_api["transport"]),
    )
    app.state.bus = bus
    app.state.wikidb_queue = settings.wikidb_queue
    app.state.database = deployment
    app.state.wiki_db = proxy
    app.state.backup_client = backup_client

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    for key in _STATE_KEYS:
        if hasattr(app.state, key):
            delattr(app.state, key)
    await backup_client.aclose()
