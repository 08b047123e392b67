"""
Blog list and blog post detail views.
"""
from typing import Any, Dict, List, Mapping, Optional
import logging

from portfolio.auth.session import SessionGate
from portfolio.config import settings
from portfolio.content.document import Block, Document, Link, paragraph, table_placeholder
from portfolio.errors import NotFoundError, PortfolioError, ValidationError
from portfolio.repositories.blog import BlogPostRepository
from portfolio.schemas import BlogPost, Comment
from portfolio.sync.live import LiveCollection
from portfolio.sync.optimistic import OptimisticCoordinator
from portfolio.views.base import View

logger = logging.getLogger(__name__)


def parse_tags(text: str) -> List[str]:
    """Comma separated tag input -> list of trimmed, non-empty tags."""
    return [tag.strip() for tag in (text or "").split(",") if tag.strip()]


class BlogView(View):
    """
    Blog listing with tag filter, likes and comments.

    The operator can create drafts, edit fields in place and delete posts.
    """

    def __init__(self, session: SessionGate, posts: BlogPostRepository):
        super().__init__(session)
        self.posts = posts
        self.collection: LiveCollection[BlogPost] = LiveCollection(posts)
        self.optimistic = OptimisticCoordinator(self.collection, self.notify)
        self.selected_tag: Optional[str] = None
        self.editing_post_id: Optional[str] = None
        self.expanded_comments_post_id: Optional[str] = None

    @property
    def items(self) -> List[BlogPost]:
        return self.collection.items

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    @property
    def all_tags(self) -> List[str]:
        """Every tag in use, in order of first appearance."""
        seen: Dict[str, None] = {}
        for post in self.items:
            for tag in post.tags:
                seen.setdefault(tag, None)
        return list(seen)

    def select_tag(self, tag: Optional[str]) -> None:
        self.selected_tag = tag or None

    @property
    def visible_posts(self) -> List[BlogPost]:
        if not self.selected_tag:
            return list(self.items)
        return [post for post in self.items if self.selected_tag in post.tags]

    def toggle_comments(self, post_id: str) -> None:
        self.expanded_comments_post_id = None if self.expanded_comments_post_id == post_id else post_id

    # ------------------------------------------------------------------
    # Operator editing
    # ------------------------------------------------------------------

    async def create_post(self) -> Optional[BlogPost]:
        if not self._gate("create_post"):
            return None
        try:
            post = await self.posts.create_draft()
        except PortfolioError as e:
            logger.error(f"Error creating post: {str(e)}")
            self.notify("Error creating post. Please try again.")
            return None
        self.collection.upsert(post)
        self.editing_post_id = post.id
        return post

    def start_editing(self, post_id: str) -> None:
        if self._gate("start_editing"):
            self.editing_post_id = post_id

    def stop_editing(self) -> None:
        self.editing_post_id = None

    async def update_post(self, post_id: str, fields: Mapping[str, Any]) -> Optional[BlogPost]:
        """Write the given fields. A ``tags`` string is split on commas."""
        if not self._gate("update_post"):
            return None
        values = dict(fields)
        if isinstance(values.get("tags"), str):
            values["tags"] = parse_tags(values["tags"])
        try:
            post = await self.posts.update(post_id, values)
        except PortfolioError as e:
            logger.error(f"Error updating post {post_id}: {str(e)}")
            self.notify("Error updating post. Please try again.")
            return None
        self.collection.upsert(post)
        return post

    async def delete_post(self, post_id: str) -> bool:
        if not self._gate("delete_post"):
            return False
        try:
            await self.posts.delete(post_id)
        except NotFoundError:
            logger.info(f"Blog post {post_id} was already deleted")
        except PortfolioError as e:
            logger.error(f"Error deleting post {post_id}: {str(e)}")
            self.notify("Error deleting post. Please try again.")
            await self.collection.refresh()
            return False
        self.collection.remove(post_id)
        if self.editing_post_id == post_id:
            self.editing_post_id = None
        return True

    async def insert_block(self, post_id: str, block: Block) -> Optional[BlogPost]:
        """Render one structured block and append it to the post's HTML content."""
        post = self.collection.find(post_id)
        if post is None or not self._gate("insert_block"):
            return None
        return await self.update_post(post_id, {"content": post.content + Document([block]).to_html()})

    async def insert_link(self, post_id: str, url: str, text: str = "") -> Optional[BlogPost]:
        return await self.insert_block(post_id, paragraph(Link(text or "Link", url)))

    async def insert_table(self, post_id: str, rows: int, cols: int) -> Optional[BlogPost]:
        return await self.insert_block(post_id, table_placeholder(rows, cols))

    async def publish_document(self, post_id: str, document: Document) -> Optional[BlogPost]:
        """Replace content with the rendered document and refresh the excerpt from it."""
        return await self.update_post(post_id, {
            "content": document.to_html(),
            "excerpt": document.excerpt(),
        })

    # ------------------------------------------------------------------
    # Reader actions
    # ------------------------------------------------------------------

    async def like(self, post_id: str) -> bool:
        return await self.optimistic.like(post_id)

    async def add_comment(self, post_id: str, author: str, content: str) -> Optional[Comment]:
        try:
            return await self.optimistic.add_comment(post_id, author, content)
        except ValidationError as e:
            logger.info(f"Comment on post {post_id} not sent: {str(e)}")
            return None

    async def delete_comment(self, post_id: str, comment_id: str) -> bool:
        if not self._gate("delete_comment"):
            return False
        return await self.optimistic.delete_comment(post_id, comment_id)


class BlogPostView(View):
    """Single post. Each mount counts one view."""

    def __init__(self, session: SessionGate, posts: BlogPostRepository, post_id: str):
        super().__init__(session)
        self.posts = posts
        self.post_id = post_id
        self.collection: LiveCollection[BlogPost] = LiveCollection(posts)
        self.optimistic = OptimisticCoordinator(self.collection, self.notify)
        self._view_recorded = False

    @property
    def post(self) -> Optional[BlogPost]:
        return self.collection.find(self.post_id)

    @property
    def not_found(self) -> bool:
        return self.collection.loaded and self.post is None

    @property
    def share_url(self) -> str:
        return f"{settings.SITE_URL.rstrip('/')}/blog/{self.post_id}"

    async def mount(self) -> None:
        await super().mount()
        if self._view_recorded or self.post is None:
            return
        self._view_recorded = True
        try:
            views = await self.posts.record_view(self.post_id)
        except PortfolioError as e:
            logger.warning(f"Could not record view for post {self.post_id}: {str(e)}")
            return
        self.collection.update_item(
            self.post_id, lambda post: post.model_copy(update={"views": max(post.views, views)})
        )

    async def unmount(self) -> None:
        await super().unmount()
        self._view_recorded = False

    async def like(self) -> bool:
        return await self.optimistic.like(self.post_id)

    async def add_comment(self, author: str, content: str) -> Optional[Comment]:
        try:
            return await self.optimistic.add_comment(self.post_id, author, content)
        except ValidationError as e:
            logger.info(f"Comment on post {self.post_id} not sent: {str(e)}")
            return None
