"""Action Dispatch — tests for explicit action routing and reply shaping.

Tests cover:
    - Missing action → NoActionSpecified, unknown action → BadAction
    - Every Action has a handler
    - Payload validation and reply shapes per action
    - handle() replies exactly once on success and on every failure path
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from wiki.core.domain_types import Action
from wiki.core.errors import (
    BadActionError, DatabaseError, InternalError, InvalidPayloadError,
    NoActionSpecifiedError,
)
from wiki.infrastructure.event_bus import Message
from wiki.schemas.page import PageData, PageLookup
from wiki.services.action_dispatch import ACK, ActionDispatch


def _make_mock_service():
    service = AsyncMock()
    service.fetch_all_pages.return_value = ["A", "B"]
    service.fetch_all_pages_data.return_value = [PageData(title="A", content="a")]
    service.fetch_page.return_value = PageLookup(found=True, id=7, content="seven")
    return service


async def _make_message(action: str | None, body=None) -> Message:
    headers = {} if action is None else {"action": action}
    future = asyncio.get_running_loop().create_future()
    return Message("wikidb.queue", body or {}, headers, future)


async def test_missing_action_is_rejected():
    dispatch = ActionDispatch(_make_mock_service())
    with pytest.raises(NoActionSpecifiedError):
        await dispatch.execute(None, {})
    with pytest.raises(NoActionSpecifiedError):
        await dispatch.execute("", {})


async def test_unknown_action_names_the_offender():
    dispatch = ActionDispatch(_make_mock_service())
    with pytest.raises(BadActionError) as exc_info:
        await dispatch.execute("not-a-real-action", {})
    assert "not-a-real-action" in exc_info.value.message


async def test_every_action_has_a_handler():
    dispatch = ActionDispatch(_make_mock_service())
    assert set(dispatch._handlers) == set(Action)


async def test_all_pages_reply_shape():
    dispatch = ActionDispatch(_make_mock_service())
    assert await dispatch.execute("all-pages", {}) == {"pages": ["A", "B"]}


async def test_all_pages_data_reply_shape():
    dispatch = ActionDispatch(_make_mock_service())
    assert await dispatch.execute("all-pages-data", {}) == [{"title": "A", "content": "a"}]


async def test_get_page_found_and_not_found():
    service = _make_mock_service()
    dispatch = ActionDispatch(service)
    assert await dispatch.execute("get-page", {"page": "Seven"}) == {
        "found": True, "id": 7, "content": "seven",
    }
    service.fetch_page.assert_awaited_with("Seven")

    service.fetch_page.return_value = PageLookup(found=False)
    assert await dispatch.execute("get-page", {"page": "Nope"}) == {"found": False}


async def test_mutations_acknowledge():
    service = _make_mock_service()
    dispatch = ActionDispatch(service)

    assert await dispatch.execute("create-page", {"title": "T", "content": "c"}) == ACK
    service.create_page.assert_awaited_once_with("T", "c")

    assert await dispatch.execute("save-page", {"id": "42", "content": "new"}) == ACK
    service.save_page.assert_awaited_once_with(42, "new")

    assert await dispatch.execute("delete-page", {"id": 42}) == ACK
    service.delete_page.assert_awaited_once_with(42)


async def test_invalid_payload_is_rejected_before_the_service():
    service = _make_mock_service()
    dispatch = ActionDispatch(service)
    with pytest.raises(InvalidPayloadError, match="content"):
        await dispatch.execute("save-page", {"id": 1})
    with pytest.raises(InvalidPayloadError, match="id"):
        await dispatch.execute("delete-page", {"id": "not-a-number"})
    service.save_page.assert_not_awaited()
    service.delete_page.assert_not_awaited()


async def test_database_error_propagates():
    service = _make_mock_service()
    service.fetch_all_pages.side_effect = DatabaseError("disk I/O error", "execute")
    dispatch = ActionDispatch(service)
    with pytest.raises(DatabaseError, match="disk I/O error"):
        await dispatch.execute("all-pages", {})


async def test_handle_replies_with_result():
    dispatch = ActionDispatch(_make_mock_service())
    message = await _make_message("all-pages")
    await dispatch.handle(message)
    assert message.replied
    assert message._future.result() == {"pages": ["A", "B"]}


async def test_handle_fails_message_without_action():
    dispatch = ActionDispatch(_make_mock_service())
    message = await _make_message(None)
    await dispatch.handle(message)
    assert message.replied
    assert isinstance(message._future.exception(), NoActionSpecifiedError)


async def test_handle_fails_bad_action():
    dispatch = ActionDispatch(_make_mock_service())
    message = await _make_message("not-a-real-action")
    await dispatch.handle(message)
    error = message._future.exception()
    assert isinstance(error, BadActionError)
    assert "not-a-real-action" in str(error)


async def test_handle_wraps_database_error_with_context():
    service = _make_mock_service()
    service.create_page.side_effect = DatabaseError("locked", "execute")
    dispatch = ActionDispatch(service)
    message = await _make_message("create-page", {"title": "T", "content": "c"})
    await dispatch.handle(message)
    error = message._future.exception()
    assert isinstance(error, DatabaseError)
    assert error.context.action == "create-page"
    assert error.context.address == "wikidb.queue"


async def test_handle_fails_unexpected_exception_as_internal():
    service = _make_mock_service()
    service.fetch_all_pages.side_effect = ZeroDivisionError()
    dispatch = ActionDispatch(service)
    message = await _make_message("all-pages")
    await dispatch.handle(message)
    assert isinstance(message._future.exception(), InternalError)
