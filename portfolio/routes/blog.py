"""
Blog post routes.
Reading, liking and commenting are public; creating, editing and deleting
posts or comments requires the operator token.
"""
from fastapi import APIRouter, Depends, Request, status
from typing import List
import logging

from portfolio.deps import get_blog_posts
from portfolio.repositories.blog import BlogPostRepository
from portfolio.schemas import BlogPost, BlogPostUpdate, Comment, CommentCreate, DeleteResponse, LikeResponse
from portfolio.utils.jwt_auth import verify_cms_token
from portfolio.utils.rate_limit import limiter, RATE_LIMITS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blog-posts", tags=["Blog"])


@router.get("", response_model=List[BlogPost])
async def list_blog_posts(posts: BlogPostRepository = Depends(get_blog_posts)):
    """All posts, newest first, each with its comments oldest first."""
    return await posts.fetch_all()


@router.get("/{post_id}", response_model=BlogPost)
async def get_blog_post(post_id: str, posts: BlogPostRepository = Depends(get_blog_posts)):
    """
    One post with its comments. Counts as a view.

    Raises:
        NotFoundError: 404 if the post does not exist
    """
    await posts.record_view(post_id)
    return await posts.get(post_id)


@router.post("/{post_id}/like", response_model=LikeResponse)
async def like_blog_post(post_id: str, posts: BlogPostRepository = Depends(get_blog_posts)):
    likes = await posts.like(post_id)
    return LikeResponse(id=post_id, likes=likes)


@router.post("/{post_id}/comments", response_model=Comment, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["comment"])
async def add_blog_comment(
    request: Request,
    post_id: str,
    comment: CommentCreate,
    posts: BlogPostRepository = Depends(get_blog_posts)
):
    return await posts.comments.add(post_id, comment.author, comment.content)


# =============================================================================
# Operator endpoints
# =============================================================================

@router.post("", response_model=BlogPost, status_code=status.HTTP_201_CREATED)
async def create_blog_post(
    posts: BlogPostRepository = Depends(get_blog_posts),
    claims: dict = Depends(verify_cms_token)
):
    """Create a draft post with placeholder text."""
    return await posts.create_draft()


@router.patch("/{post_id}", response_model=BlogPost)
async def update_blog_post(
    post_id: str,
    changes: BlogPostUpdate,
    posts: BlogPostRepository = Depends(get_blog_posts),
    claims: dict = Depends(verify_cms_token)
):
    """Only fields present in the body are written."""
    fields = changes.model_dump(exclude_unset=True)
    await posts.update(post_id, fields)
    return await posts.get(post_id)


@router.delete("/{post_id}", response_model=DeleteResponse)
async def delete_blog_post(
    post_id: str,
    posts: BlogPostRepository = Depends(get_blog_posts),
    claims: dict = Depends(verify_cms_token)
):
    """Delete a post and all its comments. A missing post is not an error."""
    deleted = await posts.delete_quietly(post_id)
    return DeleteResponse(id=post_id, deleted=deleted)


@router.delete("/{post_id}/comments/{comment_id}", response_model=DeleteResponse)
async def delete_blog_comment(
    post_id: str,
    comment_id: str,
    posts: BlogPostRepository = Depends(get_blog_posts),
    claims: dict = Depends(verify_cms_token)
):
    deleted = await posts.comments.delete_quietly(comment_id)
    return DeleteResponse(id=comment_id, deleted=deleted)
