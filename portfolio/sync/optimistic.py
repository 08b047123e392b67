"""
Optimistic likes and comments.

Each action patches the live collection first, then writes to the store.
Success leaves the local state in place; the change feed confirms it.
Failure re-fetches the collection and tells the user.
"""
from typing import Callable, List, Optional
import logging
import uuid

from portfolio.errors import FetchError, NotFoundError, PortfolioError, RemoteWriteError
from portfolio.repositories.base import CommentRepository
from portfolio.schemas import Comment
from portfolio.store.client import utcnow
from portfolio.sync.live import LiveCollection

logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "temp-"


def _without(comments: List[Comment], comment_id: str) -> List[Comment]:
    return [c for c in comments if c.id != comment_id]


def _confirm(comments: List[Comment], temp_id: str, saved: Comment) -> List[Comment]:
    """Replace the temporary comment with the stored one, without duplicating it."""
    if any(c.id == saved.id for c in comments):
        return _without(comments, temp_id)
    if any(c.id == temp_id for c in comments):
        return [saved if c.id == temp_id else c for c in comments]
    return [*comments, saved]


class OptimisticCoordinator:
    """
    Likes and comment add/delete for a live collection of blog posts or photos.

    Every action holds the reconciliation guard for its entity from the
    local patch until the write (and any revert) has finished.
    """

    def __init__(self, collection: LiveCollection, notify: Callable[[str], None]):
        self.collection = collection
        self.repository = collection.repository
        self.comments: CommentRepository = collection.repository.comments
        self.notify = notify

    async def like(self, item_id: str) -> bool:
        """Add one like. Likes never go down."""
        async with self.collection.guard.hold(self.collection.key(item_id)):
            applied = self.collection.update_item(
                item_id, lambda item: item.model_copy(update={"likes": item.likes + 1})
            )
            if not applied:
                return False
            try:
                await self.repository.like(item_id)
            except (RemoteWriteError, NotFoundError) as e:
                await self._revert("Error saving like. Please try again.", e)
                return False
            return True

    async def add_comment(self, parent_id: str, author: str, content: str) -> Optional[Comment]:
        """
        Show the comment immediately under a temporary id, then store it.

        Raises:
            ValidationError: If author or content is blank (nothing is shown or sent)

        Returns:
            The stored comment, or None if the write failed
        """
        self.comments.validate(author, content)
        temp = Comment(
            id=f"{TEMP_ID_PREFIX}{uuid.uuid4()}",
            parent_id=parent_id,
            author=author.strip(),
            content=content.strip(),
            created_at=utcnow(),
        )

        async with self.collection.guard.hold(self.collection.key(parent_id)):
            applied = self.collection.update_item(
                parent_id, lambda item: item.model_copy(update={"comments": [*item.comments, temp]})
            )
            if not applied:
                return None
            try:
                saved = await self.comments.add(parent_id, author, content)
            except (RemoteWriteError, FetchError, NotFoundError) as e:
                await self._revert("Error adding comment. Please try again.", e)
                return None

            self.collection.update_item(
                parent_id, lambda item: item.model_copy(update={"comments": _confirm(item.comments, temp.id, saved)})
            )
            return saved

    async def delete_comment(self, parent_id: str, comment_id: str) -> bool:
        """Remove a comment. A comment that is already gone counts as deleted."""
        async with self.collection.guard.hold(self.collection.key(parent_id)):
            self.collection.update_item(
                parent_id, lambda item: item.model_copy(update={"comments": _without(item.comments, comment_id)})
            )
            try:
                await self.comments.delete(comment_id)
            except NotFoundError:
                logger.info(f"Comment {comment_id} was already deleted")
            except RemoteWriteError as e:
                await self._revert("Error deleting comment. Please try again.", e)
                return False
            return True

    async def _revert(self, message: str, error: PortfolioError) -> None:
        logger.error(f"{message} ({self.collection.table}): {str(error)}")
        await self.collection.refresh()
        self.notify(message)
