"""Event Bus — in-process, address-based request/reply channel on one event loop.

Invariants:
    - One asyncio.Queue per address; consumers on an address compete, so each
      message is delivered to exactly one consumer
    - Every request gets exactly one outcome: a reply, a failure, or a
      ReplyTimeoutError — a second reply()/fail() on a message raises RuntimeError
    - A handler that raises or returns without replying is failed with
      InternalError by the bus, so the requester is never left waiting
    - request() never blocks the loop: the caller awaits a Future correlated
      one-to-one with the message

Design Decisions:
    - Futures over callback chains: the requester awaits, errors propagate as exceptions
    - Each delivered message runs in its own task so one slow query does not
      hold up the rest of the queue (the pool bounds real concurrency)
    - Failures carry the WikiError instance itself; no serialization in-process
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from wiki.core.errors import (
    InternalError, NoConsumerError, ReplyTimeoutError, WikiError,
)

logger = logging.getLogger(__name__)


class Message:
    """One request on the bus. Reply to it exactly once."""

    def __init__(
        self,
        address: str,
        body: Any,
        headers: dict[str, str],
        reply_future: asyncio.Future,
    ):
        self.address = address
        self.body = body
        self.headers = headers
        self._future = reply_future
        self._replied = False

    @property
    def replied(self) -> bool:
        return self._replied

    def reply(self, body: Any = None) -> None:
        self._settle()
        if not self._future.done():
            self._future.set_result(body)

    def fail(self, error: WikiError) -> None:
        self._settle()
        if not self._future.done():
            self._future.set_exception(error)

    def _settle(self) -> None:
        if self._replied:
            raise RuntimeError(
                f"Message on '{self.address}' has already been replied to",
            )
        self._replied = True
        if self._future.done():
            # Requester gave up (timeout/cancel) before the reply arrived
            logger.debug(
                f"Dropping late reply on '{self.address}'",
                extra={"address": self.address},
            )


Handler = Callable[[Message], Awaitable[None]]


class EventBus:
    """Address → consumer registry with Future-correlated replies."""

    def __init__(self, default_timeout: float = 30.0):
        self.default_timeout = default_timeout
        self._queues: dict[str, asyncio.Queue[Message]] = {}
        self._consumers: dict[str, list[asyncio.Task]] = {}
        self._in_flight: set[asyncio.Task] = set()

    def consumer(self, address: str, handler: Handler, instances: int = 1) -> None:
        """Register `instances` competing consumers for an address."""
        queue = self._queues.setdefault(address, asyncio.Queue())
        tasks = self._consumers.setdefault(address, [])
        for _ in range(instances):
            tasks.append(asyncio.create_task(
                self._consume(address, queue, handler),
                name=f"consumer:{address}#{len(tasks)}",
            ))
        logger.info(
            f"Registered {instances} consumer(s) on '{address}'",
            extra={"address": address},
        )

    def has_consumer(self, address: str) -> bool:
        return bool(self._consumers.get(address))

    async def request(
        self,
        address: str,
        body: Any = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Send a message and await its reply body.

        Raises the consumer's WikiError on a failure reply, NoConsumerError if
        nothing listens on the address, ReplyTimeoutError on expiry.
        """
        if not self.has_consumer(address):
            raise NoConsumerError(address)
        timeout = self.default_timeout if timeout is None else timeout
        future = asyncio.get_running_loop().create_future()
        self._queues[address].put_nowait(
            Message(address, body, dict(headers or {}), future),
        )
        try:
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error(
                f"Request on '{address}' timed out after {timeout}s",
                extra={"address": address, "action": (headers or {}).get("action")},
            )
            raise ReplyTimeoutError(address, timeout) from e

    async def unregister(self, address: str) -> None:
        """Stop the consumers of an address and fail anything still queued."""
        tasks = self._consumers.pop(address, [])
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        queue = self._queues.pop(address, None)
        while queue is not None and not queue.empty():
            message = queue.get_nowait()
            if not message.replied:
                message.fail(NoConsumerError(address))

    async def close(self) -> None:
        """Unregister every address and wait for in-flight deliveries."""
        for address in list(self._consumers):
            await self.unregister(address)
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _consume(
        self, address: str, queue: asyncio.Queue[Message], handler: Handler,
    ) -> None:
        while True:
            message = await queue.get()
            task = asyncio.create_task(self._deliver(message, handler))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)
            queue.task_done()

    async def _deliver(self, message: Message, handler: Handler) -> None:
        try:
            await handler(message)
        except Exception as e:
            logger.error(
                f"Unhandled error on '{message.address}': {e}",
                exc_info=True, extra={"address": message.address},
            )
            if not message.replied:
                message.fail(InternalError())
            return
        if not message.replied:
            logger.error(
                f"Handler on '{message.address}' returned without replying",
                extra={"address": message.address},
            )
            message.fail(InternalError("Handler returned without replying"))
