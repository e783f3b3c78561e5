"""Row change feed: handler registry and the PostgreSQL LISTEN/NOTIFY source."""

import asyncio
import inspect
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from itertools import count
from typing import Any

import asyncpg
import structlog

from mawaid.config import settings
from mawaid.schemas.events import ChangeEvent

logger = structlog.get_logger(__name__)

ChangeHandler = Callable[[ChangeEvent], None | Awaitable[None]]
ChangePredicate = Callable[[ChangeEvent], bool]

ANY_EVENT = "*"

_subscription_ids = count(1)


@dataclass(frozen=True)
class Subscription:
    """A handler registered for changes on one table."""

    table: str
    event: str
    handler: ChangeHandler
    predicate: ChangePredicate | None = None
    id: int = field(default_factory=lambda: next(_subscription_ids))

    def matches(self, table: str, event: ChangeEvent) -> bool:
        if table != self.table:
            return False
        if self.event != ANY_EVENT and self.event != event.kind.value:
            return False
        return self.predicate is None or self.predicate(event)


class ChangeFeed:
    """In-process registry dispatching feed messages to subscribed handlers."""

    def __init__(self):
        self._subscriptions: list[Subscription] = []

    @property
    def handler_count(self) -> int:
        return len(self._subscriptions)

    def on(
        self,
        table: str,
        handler: ChangeHandler,
        event: str = ANY_EVENT,
        predicate: ChangePredicate | None = None,
    ) -> Subscription:
        """
        Register a handler.

        Args:
            table: Table to watch
            handler: Called with each matching ChangeEvent; may be a coroutine function
            event: ``INSERT``, ``UPDATE``, ``DELETE`` or ``*``
            predicate: Optional row filter

        Returns:
            The subscription, to pass to ``remove``
        """
        subscription = Subscription(table=table, event=event, handler=handler, predicate=predicate)
        self._subscriptions.append(subscription)
        return subscription

    def remove(self, subscription: Subscription) -> bool:
        """Unregister a handler; returns False when it was not registered."""
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return False
        return True

    def clear(self) -> None:
        self._subscriptions.clear()

    async def dispatch(self, message: dict[str, Any]) -> int:
        """
        Deliver one feed message to every matching handler in registration order.

        A handler that raises is logged and the remaining handlers still run.

        Args:
            message: ``{"eventType", "table", "new", "old"}``

        Returns:
            Number of handlers that ran successfully
        """
        try:
            event = ChangeEvent.from_feed(message)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("change_message_ignored", error=str(e))
            return 0

        table = message["table"]
        delivered = 0
        for subscription in list(self._subscriptions):
            if not subscription.matches(table, event):
                continue
            try:
                result = subscription.handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "change_handler_failed",
                    table=table,
                    event_type=event.kind.value,
                    record_id=event.record_id,
                    error=str(e),
                )
                continue
            delivered += 1
        return delivered


class PostgresChangeFeed(ChangeFeed):
    """
    Change feed fed by ``pg_notify`` from the table triggers.

    Notifications are queued and dispatched one at a time by a single worker,
    so handlers see changes in commit order.
    """

    def __init__(self, dsn: str | None = None, channel: str | None = None):
        super().__init__()
        self.dsn = dsn or settings.database_url.replace("+asyncpg", "", 1)
        self.channel = channel or settings.change_feed_channel
        self._connection: asyncpg.Connection | None = None
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._worker: asyncio.Task | None = None

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.is_closed()

    async def connect(self) -> None:
        """Open the listening connection and start the dispatch worker."""
        if self.is_connected:
            return
        self._connection = await asyncpg.connect(self.dsn)
        await self._connection.add_listener(self.channel, self._on_notify)
        self._worker = asyncio.create_task(self._run())
        logger.info("change_feed_connected", channel=self.channel)

    async def close(self) -> None:
        """Stop listening, close the connection and drop every handler."""
        if self._connection is not None:
            if not self._connection.is_closed():
                await self._connection.remove_listener(self.channel, self._on_notify)
                await self._connection.close()
            self._connection = None
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        self.clear()
        logger.info("change_feed_closed", channel=self.channel)

    def _on_notify(
        self,
        connection: asyncpg.Connection,
        pid: int,
        channel: str,
        payload: str,
    ) -> None:
        try:
            message = json.loads(payload)
        except json.JSONDecodeError as e:
            logger.warning("change_message_unparsable", channel=channel, error=str(e))
            return
        if not isinstance(message, dict):
            logger.warning("change_message_unparsable", channel=channel, error="not an object")
            return
        self._queue.put_nowait(message)

    async def _run(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self.dispatch(message)
            except Exception:
                logger.exception("change_dispatch_failed", channel=self.channel)
            finally:
                self._queue.task_done()
