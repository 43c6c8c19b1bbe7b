"""Wiki Database Proxy — client stub that puts WikiDatabase calls on the event bus.

Invariants:
    - Same contract as WikiDatabaseService: same results, same WikiError subclasses
    - Each call is exactly one bus request with the "action" header set
    - Holds no page state; any number of proxies can share one bus address

Design Decisions:
    - Hand-written stub over generated code: six methods, each a header, a body
      and a reply decoder
"""

from typing import Any

from wiki.core.domain_types import Action
from wiki.infrastructure.event_bus import EventBus
from wiki.schemas.page import PageData, PageLookup


class WikiDatabaseProxy:
    """WikiDatabase over a bus address (default: wikidb.queue)."""

    def __init__(self, bus: EventBus, address: str, timeout: float | None = None):
        self._bus = bus
        self._address = address
        self._timeout = timeout

    async def fetch_all_pages(self) -> list[str]:
        reply = await self._send(Action.ALL_PAGES)
        return list(reply["pages"])

    async def fetch_all_pages_data(self) -> list[PageData]:
        reply = await self._send(Action.ALL_PAGES_DATA)
        return [PageData.model_validate(row) for row in reply]

    async def fetch_page(self, title: str) -> PageLookup:
        reply = await self._send(Action.GET_PAGE, {"page": title})
        return PageLookup.model_validate(reply)

    async def create_page(self, title: str, content: str) -> None:
        await self._send(Action.CREATE_PAGE, {"title": title, "content": content})

    async def save_page(self, page_id: int, content: str) -> None:
        await self._send(Action.SAVE_PAGE, {"id": page_id, "content": content})

    async def delete_page(self, page_id: int) -> None:
        await self._send(Action.DELETE_PAGE, {"id": page_id})

    async def _send(self, action: Action, payload: dict | None = None) -> Any:
        return await self._bus.request(
            self._address,
            payload or {},
            headers={"action": action.value},
            timeout=self._timeout,
        )
