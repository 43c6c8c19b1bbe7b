"""Backup Route — exports every page to the external gist service.

Invariants:
    - Page data comes from fetch_all_pages_data(); the route owns the external call
    - Success re-renders the index with the backup URL; failure is a BackupError (502)
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from wiki.api.dependencies import get_backup_client, get_wiki_db
from wiki.api.routes.pages import render_index
from wiki.infrastructure.gist_client import GistBackupClient
from wiki.services.wiki_database import WikiDatabase

logger = logging.getLogger(__name__)
router = APIRouter(tags=["backup"])


@router.get("/backup", response_class=HTMLResponse)
async def backup(
    request: Request,
    wiki_db: WikiDatabase = Depends(get_wiki_db),
    backup_client: GistBackupClient = Depends(get_backup_client),
):
    pages = await wiki_db.fetch_all_pages_data()
    gist_url = await backup_client.create_backup(pages)
    return await render_index(request, wiki_db, backup_gist_url=gist_url)
