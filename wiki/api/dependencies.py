"""Route Dependencies — resolve app-level collaborators for FastAPI handlers.

Invariants:
    - Collaborators are created in the lifespan and stored on app.state
    - Handlers never construct their own database client

Design Decisions:
    - Depends() functions over module globals: tests swap them via dependency_overrides
"""

from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates

from wiki.infrastructure.database import PersistenceGateway
from wiki.infrastructure.gist_client import GistBackupClient
from wiki.services.wiki_database import WikiDatabase

templates = Jinja2Templates(
    directory=str(Path(__file__).resolve().parent.parent / "templates"),
)


def get_wiki_db(request: Request) -> WikiDatabase:
    """FastAPI dependency for the wiki database client."""
    wiki_db = getattr(request.app.state, "wiki_db", None)
    if wiki_db is None:
        raise RuntimeError("Wiki database service not started")
    return wiki_db


def get_backup_client(request: Request) -> GistBackupClient:
    """FastAPI dependency for the backup export client."""
    client = getattr(request.app.state, "backup_client", None)
    if client is None:
        raise RuntimeError("Backup client not configured")
    return client


def get_gateway(request: Request) -> PersistenceGateway | None:
    """Gateway of the local database deployment, if one is running."""
    deployment = getattr(request.app.state, "database", None)
    return deployment.gateway if deployment else None
