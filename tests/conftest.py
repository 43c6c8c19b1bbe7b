"""Root conftest — shared settings, database, and bus fixtures.

Invariants:
    - Every test gets a fresh file-backed SQLite database under tmp_path
    - Fixtures tear down in reverse order: consumers, pool, bus

Design Decisions:
    - File SQLite over :memory:: a real queue pool, so pool bounds and concurrent
      callers behave as in production
    - _env_file=None: a developer's .env never leaks into tests
"""

import os

import pytest

from wiki.config import Settings
from wiki.core.query_catalog import QueryCatalog
from wiki.infrastructure.database import PersistenceGateway
from wiki.infrastructure.event_bus import EventBus
from wiki.services.database_deployment import deploy_database_service
from wiki.services.wiki_database import WikiDatabaseService
from wiki.services.wiki_database_proxy import WikiDatabaseProxy

# Ensure tests never post a real backup
os.environ.setdefault("BACKUP_API_URL", "https://gist.invalid/gists")


@pytest.fixture
def settings_factory(tmp_path):
    """Build Settings for a temp database, with per-test overrides."""
    def make(**overrides) -> Settings:
        values = {
            "database_url": f"sqlite+aiosqlite:///{tmp_path / 'wiki.db'}",
            "database_max_pool_size": 4,
            "database_pool_timeout_seconds": 5.0,
            "database_query_timeout_seconds": 10.0,
            "bus_request_timeout_seconds": 15.0,
            "log_format": "text",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return make


@pytest.fixture
def settings(settings_factory):
    return settings_factory()


@pytest.fixture
def catalog():
    return QueryCatalog.load()


@pytest.fixture
async def gateway(settings, catalog):
    gw = PersistenceGateway(settings)
    await gw.initialize(catalog)
    yield gw
    await gw.dispose()


@pytest.fixture
async def service(gateway, catalog):
    return WikiDatabaseService(gateway, catalog)


@pytest.fixture
async def bus():
    event_bus = EventBus(default_timeout=15.0)
    yield event_bus
    await event_bus.close()


@pytest.fixture
async def deployment(settings, bus):
    deployed = await deploy_database_service(settings, bus)
    yield deployed
    await deployed.stop()


@pytest.fixture
async def proxy(deployment, settings, bus):
    return WikiDatabaseProxy(bus, settings.wikidb_queue)
