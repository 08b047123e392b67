"""
In-process change feed for the content tables.

The store publishes one ChangeEvent per committed row change. Each
subscription owns a FIFO queue drained by a single delivery task, so a
subscriber sees the events of its table in commit order and a slow or
failing subscriber never blocks the writer or other subscribers.
"""
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
import asyncio
import inspect
import logging

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """A committed change to one row. Inserts and updates carry the full new row."""
    table: str
    type: ChangeType
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None

    @property
    def record_id(self) -> Optional[str]:
        row = self.new or self.old or {}
        return row.get("id")

    def to_payload(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "eventType": self.type.value,
            "new": self.new,
            "old": self.old,
        }


Handler = Callable[[ChangeEvent], Union[None, Awaitable[None]]]


class Subscription:
    """
    One subscriber's view of one table.

    Created through ChangeFeed.subscribe() from inside a running event loop.
    """

    def __init__(self, feed: "ChangeFeed", table: str, handlers: Dict[ChangeType, Handler]):
        self.feed = feed
        self.table = table
        self._handlers = handlers
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._worker = asyncio.get_running_loop().create_task(self._deliver())

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, event: ChangeEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    async def _deliver(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                handler = self._handlers.get(event.type)
                if handler is not None and not self._closed:
                    result = handler(event)
                    if inspect.isawaitable(result):
                        await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    f"Change handler for {self.table} failed on {event.type.value} "
                    f"{event.record_id}: {str(e)}",
                    exc_info=True
                )
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        if not self._closed:
            await self._queue.join()

    def unsubscribe(self) -> None:
        """Stop delivery now. Queued events are dropped. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.feed._remove(self)
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
        self._worker.cancel()
        logger.debug(f"Unsubscribed from {self.table}")


class ChangeFeed:
    """Fan-out of row changes to per-table subscriptions."""

    def __init__(self):
        self._subscriptions: Dict[str, List[Subscription]] = defaultdict(list)

    def subscribe(
        self,
        table: str,
        on_insert: Optional[Handler] = None,
        on_update: Optional[Handler] = None,
        on_delete: Optional[Handler] = None,
        on_change: Optional[Handler] = None,
    ) -> Subscription:
        """
        Subscribe to changes on a table.

        Args:
            table: Table name to watch
            on_insert / on_update / on_delete: Per-type handlers (sync or async)
            on_change: Fallback handler for any type without its own handler

        Returns:
            Subscription: Handle whose unsubscribe() ends delivery
        """
        handlers = {
            ChangeType.INSERT: on_insert or on_change,
            ChangeType.UPDATE: on_update or on_change,
            ChangeType.DELETE: on_delete or on_change,
        }
        subscription = Subscription(
            self, table, {k: v for k, v in handlers.items() if v is not None}
        )
        self._subscriptions[table].append(subscription)
        logger.debug(f"Subscribed to {table} ({len(self._subscriptions[table])} active)")
        return subscription

    def publish(self, event: ChangeEvent) -> None:
        for subscription in list(self._subscriptions.get(event.table, ())):
            subscription.offer(event)

    def subscriber_count(self, table: Optional[str] = None) -> int:
        if table is not None:
            return len(self._subscriptions.get(table, ()))
        return sum(len(subs) for subs in self._subscriptions.values())

    async def flush(self) -> None:
        """Wait until all subscriptions are idle, including events published while draining."""
        while True:
            active = [s for subs in self._subscriptions.values() for s in subs]
            await asyncio.gather(*(s.drain() for s in active))
            if not any(s._queue.qsize() for subs in self._subscriptions.values() for s in subs):
                return

    def _remove(self, subscription: Subscription) -> None:
        subs = self._subscriptions.get(subscription.table)
        if subs and subscription in subs:
            subs.remove(subscription)
        if not subs:
            self._subscriptions.pop(subscription.table, None)
