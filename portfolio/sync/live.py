"""
Live collections: an in-memory list of view models kept fresh from the
store's change feed.

A LiveCollection belongs to one view. Mounting subscribes to the primary
table (and the comment table, if the entity owns comments) and loads the
collection; unmounting tears every subscription and in-flight fetch down.
"""
from typing import Any, Callable, Generic, Hashable, List, Mapping, Optional, Set, TypeVar
import asyncio
import logging

from portfolio.errors import FetchError
from portfolio.repositories.base import ParentRepository, Repository
from portfolio.store.feed import ChangeEvent, Subscription
from portfolio.sync.guard import ReconciliationGuard

logger = logging.getLogger(__name__)

V = TypeVar("V")

# A fetch that overlapped a live patch is repeated at most this many times
MAX_FETCH_PASSES = 3


class LiveCollection(Generic[V]):
    """
    Newest-first list of one entity type.

    Usage:
        photos = LiveCollection(PhotoRepository(store))
        await photos.mount()
        ...
        await photos.unmount()
    """

    def __init__(
        self,
        repository: Repository[V],
        child_table: Optional[str] = None,
        guard: Optional[ReconciliationGuard] = None,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self.repository = repository
        self.table = repository.table
        if child_table is None and isinstance(repository, ParentRepository):
            child_table = repository.comments.table
        self.child_table = child_table
        self.guard = guard or ReconciliationGuard()
        self.on_change = on_change

        self.items: List[V] = []
        self.loaded = False
        self.error: Optional[str] = None

        self._mounted = False
        self._subscriptions: List[Subscription] = []
        self._tasks: Set[asyncio.Task] = set()
        self._generation = 0
        self._revision = 0

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def subscriptions(self) -> List[Subscription]:
        return list(self._subscriptions)

    def key(self, item_id: str) -> Hashable:
        return (self.table, item_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def mount(self) -> bool:
        """
        Subscribe, then load. Safe to call on an already mounted collection.

        Returns:
            True if the collection loaded, False if the fetch failed
        """
        if self._mounted:
            return self.loaded
        self._mounted = True

        feed = self.repository.store.feed
        self._subscriptions.append(feed.subscribe(
            self.table,
            on_insert=self._on_insert,
            on_update=self._on_update,
            on_delete=self._on_delete,
        ))
        if self.child_table:
            self._subscriptions.append(feed.subscribe(self.child_table, on_change=self._on_child_change))

        return await self.refresh()

    async def unmount(self) -> None:
        """Unsubscribe everything and cancel in-flight fetches. Late results are discarded."""
        if not self._mounted:
            return
        self._mounted = False
        self._generation += 1

        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug(f"Unmounted live {self.table} collection")

    async def refresh(self) -> bool:
        """
        Replace the collection with a fresh fetch.

        A newer refresh or an unmount supersedes this one; its result is then
        dropped and False is returned. A FetchError is recorded in ``error``
        and the current items are kept.
        """
        if not self._mounted:
            return False
        self._generation += 1
        generation = self._generation

        items = None
        for _ in range(MAX_FETCH_PASSES):
            revision = self._revision
            items = await self._fetch(generation)
            if items is None:
                return False
            if revision == self._revision:
                break
            logger.debug(f"{self.table} changed while fetching, fetching again")

        self.items = items
        self.loaded = True
        self.error = None
        self._changed()
        return True

    async def _fetch(self, generation: int) -> Optional[List[V]]:
        task = asyncio.get_running_loop().create_task(self.repository.fetch_all())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        await asyncio.wait({task})
        if task.cancelled() or generation != self._generation:
            return None
        try:
            return list(task.result())
        except FetchError as e:
            logger.error(f"Error loading {self.table}: {str(e)}")
            self.error = str(e)
            self._changed()
            return None

    # ------------------------------------------------------------------
    # Local edits
    # ------------------------------------------------------------------

    def find(self, item_id: str) -> Optional[V]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def update_item(self, item_id: str, change: Callable[[V], V]) -> bool:
        """Replace one item with ``change(item)``. Returns False if the id is not held."""
        for index, item in enumerate(self.items):
            if item.id == item_id:
                self.items[index] = change(item)
                self._changed()
                return True
        return False

    def upsert(self, item: V) -> None:
        """Merge into the held copy, or prepend as the newest item."""
        existing = self.find(item.id)
        if existing is not None:
            self.update_item(item.id, lambda current: self.repository.merge(current, item))
            return
        self.items.insert(0, item)
        self._changed()

    def remove(self, item_id: str) -> bool:
        before = len(self.items)
        self.items = [item for item in self.items if item.id != item_id]
        if len(self.items) == before:
            return False
        self._changed()
        return True

    # ------------------------------------------------------------------
    # Change handlers
    # ------------------------------------------------------------------

    async def _on_insert(self, event: ChangeEvent) -> None:
        async with self.guard.hold(self.key(event.record_id)):
            if not self._mounted:
                return
            if not self._is_full(event.new):
                await self.refresh()
                return
            self._revision += 1
            self.upsert(self.repository.from_row(event.new))

    async def _on_update(self, event: ChangeEvent) -> None:
        async with self.guard.hold(self.key(event.record_id)):
            if not self._mounted:
                return
            if not self._is_full(event.new) or self.find(event.record_id) is None:
                await self.refresh()
                return
            self._revision += 1
            self.upsert(self.repository.from_row(event.new))

    async def _on_delete(self, event: ChangeEvent) -> None:
        async with self.guard.hold(self.key(event.record_id)):
            if not self._mounted:
                return
            self._revision += 1
            self.remove(event.record_id)

    async def _on_child_change(self, event: ChangeEvent) -> None:
        if self._mounted:
            await self.refresh()

    def _is_full(self, row: Optional[Mapping[str, Any]]) -> bool:
        if not row:
            return False
        return set(self.repository.store.columns(self.table)) <= set(row)

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()
