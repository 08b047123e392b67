"""
Blog posts and their comments.
"""
from typing import Any, Mapping, Sequence
import logging

from portfolio.repositories.base import CommentRepository, ParentRepository
from portfolio.schemas import BlogPost, Comment, blog_comment_from_row, blog_post_from_row
from portfolio.store.client import RemoteStore

logger = logging.getLogger(__name__)

DRAFT_TITLE = "New Blog Post"
DRAFT_CONTENT = "<p>Start writing your content here...</p>"
DRAFT_EXCERPT = "Brief summary of your post"


def blog_comments(store: RemoteStore) -> CommentRepository:
    return CommentRepository(
        store,
        table="blog_comments",
        parent_table="blog_posts",
        parent_column="blog_post_id",
        mapper=blog_comment_from_row,
    )


class BlogPostRepository(ParentRepository[BlogPost]):
    """
    Blog posts. Counters (views, likes) are not writable through update();
    they only move through record_view() and like().
    """

    table = "blog_posts"
    writable_fields = frozenset({"title", "content", "excerpt", "featured_image", "tags"})
    nullable_fields = frozenset({"featured_image"})

    def __init__(self, store: RemoteStore):
        super().__init__(store, blog_comments(store))

    def from_row(self, row: Mapping[str, Any], comments: Sequence[Comment] = ()) -> BlogPost:
        return blog_post_from_row(row, comments)

    async def create_draft(self) -> BlogPost:
        """Create an empty post with placeholder text for the operator to edit."""
        draft = await self.insert({
            "title": DRAFT_TITLE,
            "content": DRAFT_CONTENT,
            "excerpt": DRAFT_EXCERPT,
            "featured_image": None,
            "tags": [],
        })
        logger.info(f"Created draft blog post {draft.id}")
        return draft

    async def like(self, post_id: str) -> int:
        return await self.store.increment(self.table, post_id, "likes")

    async def record_view(self, post_id: str) -> int:
        return await self.store.increment(self.table, post_id, "views")
