"""Database Deployment — brings the wiki database service up on the event bus.

Invariants:
    - Order: build gateway → load query catalog for its dialect → create pages table
      → register consumers
    - Any failure before registration aborts startup; the engine is disposed
      first and nothing listens on the address (no partial service)
    - stop() unregisters consumers before disposing the pool

Design Decisions:
    - Settings passed in explicitly; the deployment reads nothing global
"""

import logging
from dataclasses import dataclass

from wiki.config import Settings
from wiki.core.query_catalog import QueryCatalog
from wiki.infrastructure.database import PersistenceGateway
from wiki.infrastructure.event_bus import EventBus
from wiki.services.action_dispatch import ActionDispatch
from wiki.services.wiki_database import WikiDatabaseService

logger = logging.getLogger(__name__)


@dataclass
class DatabaseDeployment:
    """Handle on a running database service."""
    bus: EventBus
    address: str
    gateway: PersistenceGateway
    service: WikiDatabaseService

    async def stop(self) -> None:
        await self.bus.unregister(self.address)
        await self.gateway.dispose()
        logger.info(f"Database service on '{self.address}' stopped")


async def deploy_database_service(
    settings: Settings, bus: EventBus,
) -> DatabaseDeployment:
    """Start the database service and bind it to settings.wikidb_queue.

    Raises QueryCatalogError or DatabaseError when the service cannot start.
    """
    gateway = PersistenceGateway(settings)
    try:
        catalog = QueryCatalog.load(settings.sql_queries_file, gateway.dialect)
        await gateway.initialize(catalog)
    except Exception:
        logger.error("Could not start the database service", exc_info=True)
        await gateway.dispose()
        raise

    service = WikiDatabaseService(gateway, catalog)
    dispatch = ActionDispatch(service)
    bus.consumer(
        settings.wikidb_queue, dispatch.handle,
        instances=settings.wikidb_consumers,
    )
    return DatabaseDeployment(
        bus=bus, address=settings.wikidb_queue, gateway=gateway, service=service,
    )
