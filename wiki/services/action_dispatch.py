"""Action Dispatch — explicit routing from the "action" header to a facade operation.

Invariants:
    - Every Action → handler mapping is visible in one dict, and the dict must
      cover every Action member (checked at construction)
    - Missing action → NoActionSpecifiedError; unknown action → BadActionError
      naming the offending string; bad payload → InvalidPayloadError
    - DatabaseError from the facade propagates unchanged (logged by the gateway)
    - handle() replies to each message exactly once, success or failure

Design Decisions:
    - Explicit dict over getattr: adding an Action without a handler fails startup,
      not the first request that uses it
    - Payloads validated with pydantic before any SQL runs
    - execute() raises, handle() converts to a bus reply — the two entry points
      share one code path
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from wiki.core.domain_types import Action
from wiki.core.errors import (
    BadActionError, ErrorContext, InternalError, InvalidPayloadError,
    NoActionSpecifiedError, WikiError,
)
from wiki.infrastructure.event_bus import Message
from wiki.schemas.page import (
    CreatePageRequest, DeletePageRequest, GetPageRequest, SavePageRequest,
)
from wiki.services.wiki_database import WikiDatabase

logger = logging.getLogger(__name__)

ACK = {"status": "ok"}

ActionHandler = Callable[[dict], Awaitable[Any]]


class ActionDispatch:
    """Routes action -> facade operation. Explicit registration, no auto-discovery."""

    def __init__(self, service: WikiDatabase):
        self._service = service

        # Adding an Action requires a handler here
        self._handlers: dict[Action, ActionHandler] = {
            Action.ALL_PAGES: self._all_pages,
            Action.ALL_PAGES_DATA: self._all_pages_data,
            Action.GET_PAGE: self._get_page,
            Action.CREATE_PAGE: self._create_page,
            Action.SAVE_PAGE: self._save_page,
            Action.DELETE_PAGE: self._delete_page,
        }
        unhandled = set(Action) - set(self._handlers)
        if unhandled:
            raise RuntimeError(
                f"No handler for actions: {sorted(a.value for a in unhandled)}",
            )

    async def execute(self, action: str | None, payload: dict | None) -> Any:
        """Resolve the action and run it. Returns the reply body."""
        if not action:
            raise NoActionSpecifiedError()
        resolved = Action.parse(action)
        if resolved is None:
            raise BadActionError(action, ErrorContext(action=action))
        return await self._handlers[resolved](payload or {})

    async def handle(self, message: Message) -> None:
        """Bus consumer: dispatch the message and reply exactly once."""
        action = message.headers.get("action")
        try:
            body = await self.execute(action, message.body)
        except (NoActionSpecifiedError, BadActionError) as e:
            logger.error(
                f"{e.message} for message with headers {message.headers} "
                f"and body {message.body}",
                extra={"error_code": e.code.value, "address": message.address},
            )
            message.fail(e)
        except WikiError as e:
            e.context.action = e.context.action or action
            e.context.address = message.address
            message.fail(e)
        except Exception as e:
            logger.error(
                f"Action '{action}' failed unexpectedly: {e}",
                exc_info=True, extra={"action": action},
            )
            message.fail(InternalError(context=ErrorContext(action=action)))
        else:
            message.reply(body)

    # ─── Handlers ──────────────────────────────────────────────

    async def _all_pages(self, payload: dict) -> dict:
        return {"pages": await self._service.fetch_all_pages()}

    async def _all_pages_data(self, payload: dict) -> list[dict]:
        pages = await self._service.fetch_all_pages_data()
        return [page.model_dump() for page in pages]

    async def _get_page(self, payload: dict) -> dict:
        request = _parse(GetPageRequest, payload, Action.GET_PAGE)
        lookup = await self._service.fetch_page(request.page)
        return lookup.to_reply()

    async def _create_page(self, payload: dict) -> dict:
        request = _parse(CreatePageRequest, payload, Action.CREATE_PAGE)
        await self._service.create_page(request.title, request.content)
        return ACK

    async def _save_page(self, payload: dict) -> dict:
        request = _parse(SavePageRequest, payload, Action.SAVE_PAGE)
        await self._service.save_page(request.id, request.content)
        return ACK

    async def _delete_page(self, payload: dict) -> dict:
        request = _parse(DeletePageRequest, payload, Action.DELETE_PAGE)
        await self._service.delete_page(request.id)
        return ACK


def _parse(model: type[BaseModel], payload: dict, action: Action):
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        fields = ", ".join(
            ".".join(str(loc) for loc in err["loc"]) or "payload"
            for err in e.errors()
        )
        raise InvalidPayloadError(
            f"Invalid payload for '{action.value}': {fields}",
            ErrorContext(action=action.value),
        ) from e
