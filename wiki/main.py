"""Wiki API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map WikiError → structured JSON responses
    - The database service is deployed on the bus before the app accepts requests;
      if it cannot start, the app does not start
    - Routes reach the database only through a WikiDatabaseProxy on wikidb_queue

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Proxy over direct service: HTTP handlers and the database service share
      nothing but the bus address
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from wiki.api.error_handlers import register_error_handlers
from wiki.api.routes import backup, health, pages
from wiki.config import get_settings
from wiki.infrastructure.event_bus import EventBus
from wiki.infrastructure.gist_client import GistBackupClient
from wiki.infrastructure.observability import setup_logging
from wiki.services.database_deployment import deploy_database_service
from wiki.services.wiki_database_proxy import WikiDatabaseProxy

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    bus = EventBus(default_timeout=settings.bus_request_timeout_seconds)
    deployment = await deploy_database_service(settings, bus)
    backup_client = GistBackupClient(
        settings.backup_api_url,
        token=settings.backup_api_token,
        public=settings.backup_public,
        timeout_seconds=settings.backup_timeout_seconds,
    )
    app.state.bus = bus
    app.state.wikidb_queue = settings.wikidb_queue
    app.state.database = deployment
    app.state.wiki_db = WikiDatabaseProxy(bus, settings.wikidb_queue)
    app.state.backup_client = backup_client
    logger.info("Wiki API started")
    yield
    logger.info("Wiki API shutting down")
    await backup_client.aclose()
    await deployment.stop()
    await bus.close()


app = FastAPI(title="Wiki API", version="1.0.0", lifespan=lifespan)

# Routes, registered explicitly
app.include_router(health.router)
app.include_router(pages.router)
app.include_router(backup.router)

register_error_handlers(app)


def run() -> None:
    """Console entry point: serve the wiki with uvicorn."""
    settings = get_settings()
    logger.info(f"HTTP server running on port {settings.http_server_port}")
    uvicorn.run(app, host="0.0.0.0", port=settings.http_server_port)
