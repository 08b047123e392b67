"""
Generic entity repository over the remote store.

A repository knows one table, which columns callers may write, and how to
map a stored row to its view model. Parent repositories also own a comment
collection per row.
"""
from typing import Any, Callable, ClassVar, FrozenSet, Generic, List, Mapping, Sequence, TypeVar
import asyncio
import logging

from portfolio.errors import FetchError, NotFoundError, ValidationError
from portfolio.schemas import Comment
from portfolio.store.client import RemoteStore, Row

logger = logging.getLogger(__name__)

V = TypeVar("V")


class Repository(Generic[V]):
    """
    fetch/insert/update/delete for one table.

    Subclasses set ``table``, ``writable_fields`` and implement ``from_row``.
    Writable fields not listed in ``nullable_fields`` cannot be set to None.
    """

    table: ClassVar[str]
    writable_fields: ClassVar[FrozenSet[str]] = frozenset()
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset()

    def __init__(self, store: RemoteStore):
        self.store = store

    def from_row(self, row: Mapping[str, Any]) -> V:
        raise NotImplementedError

    def merge(self, existing: V, incoming: V) -> V:
        """Combine a locally held record with a fresh copy of the same row."""
        return incoming

    async def fetch_all(self) -> List[V]:
        """All rows, newest first."""
        rows = await self.store.select(self.table)
        return [self.from_row(row) for row in rows]

    async def get(self, row_id: str) -> V:
        return self.from_row(await self.store.get(self.table, row_id))

    async def insert(self, values: Mapping[str, Any]) -> V:
        row = await self.store.insert(self.table, self._checked(values))
        return self.from_row(row)

    async def update(self, row_id: str, fields: Mapping[str, Any]) -> V:
        """
        Write only the given fields.

        Raises:
            ValidationError: If a field is unknown, not writable (e.g. a counter)
                or None for a required column
            NotFoundError: If the row does not exist
            RemoteWriteError: If the write is rejected
        """
        row = await self.store.update(self.table, row_id, self._checked(fields))
        return self.from_row(row)

    async def delete(self, row_id: str) -> Row:
        return await self.store.delete(self.table, row_id)

    async def delete_quietly(self, row_id: str) -> bool:
        """
        Delete, treating an already-deleted row as success.

        Returns:
            True if a row was removed, False if it was already gone
        """
        try:
            await self.delete(row_id)
            return True
        except NotFoundError:
            logger.info(f"{self.table} row {row_id} was already deleted")
            return False

    def _checked(self, fields: Mapping[str, Any]) -> dict:
        errors = {name: "Field cannot be written" for name in set(fields) - self.writable_fields}
        for name, value in fields.items():
            if value is None and name in self.writable_fields and name not in self.nullable_fields:
                errors[name] = "Field cannot be empty"
        if errors:
            raise ValidationError(dict(sorted(errors.items())))
        return dict(fields)


class CommentRepository(Repository[Comment]):
    """Comments of one parent table (blog posts or photos)."""

    writable_fields = frozenset({"author", "content"})

    def __init__(
        self,
        store: RemoteStore,
        table: str,
        parent_table: str,
        parent_column: str,
        mapper: Callable[[Mapping[str, Any]], Comment],
    ):
        super().__init__(store)
        self.table = table
        self.parent_table = parent_table
        self.parent_column = parent_column
        self._mapper = mapper

    def from_row(self, row: Mapping[str, Any]) -> Comment:
        return self._mapper(row)

    async def for_parent(self, parent_id: str) -> List[Comment]:
        """Comments of one parent, oldest first."""
        rows = await self.store.select(
            self.table, where={self.parent_column: parent_id}, ascending=True
        )
        return [self.from_row(row) for row in rows]

    @staticmethod
    def validate(author: str, content: str) -> None:
        errors = {}
        if not (author or "").strip():
            errors["author"] = "Name is required"
        if not (content or "").strip():
            errors["content"] = "Comment is required"
        if errors:
            raise ValidationError(errors)

    async def add(self, parent_id: str, author: str, content: str) -> Comment:
        """
        Add a visitor comment.

        Raises:
            ValidationError: If author or content is blank
            NotFoundError: If the parent does not exist
        """
        self.validate(author, content)
        await self.store.get(self.parent_table, parent_id)
        row = await self.store.insert(self.table, {
            self.parent_column: parent_id,
            "author": author.strip(),
            "content": content.strip(),
        })
        return self.from_row(row)


class ParentRepository(Repository[V]):
    """Repository whose rows own a list of comments."""

    def __init__(self, store: RemoteStore, comments: CommentRepository):
        super().__init__(store)
        self.comments = comments

    def from_row(self, row: Mapping[str, Any], comments: Sequence[Comment] = ()) -> V:
        raise NotImplementedError

    def merge(self, existing: V, incoming: V) -> V:
        return incoming.model_copy(update={"comments": list(existing.comments)})

    async def fetch_all(self) -> List[V]:
        """
        All rows newest first, each with its comments oldest first.

        Comments are fetched per parent concurrently. A parent whose comments
        cannot be loaded is returned with an empty comment list.
        """
        rows = await self.store.select(self.table)
        children = await asyncio.gather(*(self._comments_for(row) for row in rows))
        return [self.from_row(row, kids) for row, kids in zip(rows, children)]

    async def get(self, row_id: str) -> V:
        row = await self.store.get(self.table, row_id)
        return self.from_row(row, await self._comments_for(row))

    async def delete(self, row_id: str) -> Row:
        """Delete the row and every comment it owns in a single transaction."""
        row, removed = await self.store.delete_with_children(
            self.table, row_id, self.comments.table, self.comments.parent_column
        )
        if removed:
            logger.info(f"Removed {len(removed)} comment(s) with {self.table} row {row_id}")
        return row

    async def _comments_for(self, row: Row) -> List[Comment]:
        try:
            return await self.comments.for_parent(row["id"])
        except FetchError as e:
            logger.warning(f"Could not load comments for {self.table} row {row['id']}: {str(e)}")
            return []
