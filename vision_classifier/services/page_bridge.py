"""Request/reply channel to one connected page."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel

from vision_classifier.schemas.ws_messages import CommandReply, PageCommand

logger = logging.getLogger(__name__)


class PageCommandError(RuntimeError):
    """The page reported that a command failed."""


class PageDisconnected(ConnectionError):
    pass


class PageBridge:
    """Queues outgoing messages and matches page replies to awaiting callers.

    All outgoing traffic goes through one queue drained by ``pump()``, so
    messages reach the page in the order they were posted.
    """

    def __init__(self, send: Callable[[str], Awaitable[None]]) -> None:
        self._send = send
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._pending: dict[int, asyncio.Future] = {}
        self._next_id = 0
        self.closed = False

    def post(self, message: BaseModel) -> None:
        if self.closed:
            return
        self._outbox.put_nowait(message.model_dump_json())

    def notify(self, op: str, **args: Any) -> None:
        """Send a command without waiting for its reply."""
        self.post(PageCommand(op=op, args=args))

    async def call(self, op: str, **args: Any) -> Any:
        """Send a command and wait for the page's reply."""
        if self.closed:
            raise PageDisconnected("page disconnected")

        self._next_id += 1
        command_id = self._next_id
        future = asyncio.get_running_loop().create_future()
        self._pending[command_id] = future
        self.post(PageCommand(id=command_id, op=op, args=args))
        try:
            return await future
        finally:
            self._pending.pop(command_id, None)

    def resolve(self, reply: CommandReply) -> None:
        future = self._pending.get(reply.id)
        if future is None or future.done():
            logger.debug("Dropping late reply: id=%d", reply.id)
            return
        if reply.ok:
            future.set_result(reply.result)
        else:
            future.set_exception(PageCommandError(reply.error or "page command failed"))

    async def pump(self) -> None:
        while True:
            message = await self._outbox.get()
            await self._send(message)

    def close(self) -> None:
        """Fail every outstanding call and drop further traffic."""
        self.closed = True
        for future in self._pending.values():
            if not future.done():
                future.set_exception(PageDisconnected("page disconnected"))
        self._pending.clear()
