"""Wiki Database Service — typed page operations over the gateway and query catalog.

Invariants:
    - Stateless per call: no page data kept between invocations
    - One gateway round-trip per operation
    - fetch_all_pages() is sorted ascending by title (listing contract, not an artifact)
    - A missing page is PageLookup(found=False), never an error
    - Gateway failures propagate as DatabaseError, unchanged

Design Decisions:
    - WikiDatabase Protocol is the explicit client interface; both this service
      and the bus proxy implement it, so routes work against either
    - save/delete on an unknown id are acknowledged (zero rows), matching
      single-statement semantics
"""

import logging
from typing import Protocol

from wiki.core.query_catalog import QueryCatalog, SqlQuery
from wiki.infrastructure.database import PersistenceGateway
from wiki.schemas.page import PageData, PageLookup

logger = logging.getLogger(__name__)


class WikiDatabase(Protocol):
    """Page operations exposed to the HTTP layer."""

    async def fetch_all_pages(self) -> list[str]: ...

    async def fetch_all_pages_data(self) -> list[PageData]: ...

    async def fetch_page(self, title: str) -> PageLookup: ...

    async def create_page(self, title: str, content: str) -> None: ...

    async def save_page(self, page_id: int, content: str) -> None: ...

    async def delete_page(self, page_id: int) -> None: ...


class WikiDatabaseService:
    """WikiDatabase backed directly by the persistence gateway."""

    def __init__(self, gateway: PersistenceGateway, catalog: QueryCatalog):
        self._gateway = gateway
        self._catalog = catalog

    async def fetch_all_pages(self) -> list[str]:
        rows = await self._gateway.query(self._catalog.get(SqlQuery.ALL_PAGES))
        return sorted(row[0] for row in rows)

    async def fetch_all_pages_data(self) -> list[PageData]:
        rows = await self._gateway.query(
            self._catalog.get(SqlQuery.ALL_PAGES_DATA),
        )
        return [PageData(title=title, content=content) for title, content in rows]

    async def fetch_page(self, title: str) -> PageLookup:
        rows = await self._gateway.query(
            self._catalog.get(SqlQuery.GET_PAGE), (title,),
        )
        if not rows:
            return PageLookup(found=False)
        page_id, content = rows[0]
        return PageLookup(found=True, id=page_id, content=content)

    async def create_page(self, title: str, content: str) -> None:
        await self._gateway.update(
            self._catalog.get(SqlQuery.CREATE_PAGE), (title, content),
        )
        logger.info(f"Created page '{title}'")

    async def save_page(self, page_id: int, content: str) -> None:
        count = await self._gateway.update(
            self._catalog.get(SqlQuery.SAVE_PAGE), (content, page_id),
        )
        if count == 0:
            logger.debug(f"save-page matched no row for id {page_id}")

    async def delete_page(self, page_id: int) -> None:
        count = await self._gateway.update(
            self._catalog.get(SqlQuery.DELETE_PAGE), (page_id,),
        )
        if count == 0:
            logger.debug(f"delete-page matched no row for id {page_id}")
