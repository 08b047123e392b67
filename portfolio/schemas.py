"""
Pydantic schemas for the portfolio entities.

View models serialize to the camelCase shape the site renders
(``featuredImage``, ``createdAt``...). Rows use the snake_case column names.
Each entity has an explicit pair of mapping functions between the two so
nothing depends on implicit key conversion.
"""
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ViewModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# =============================================================================
# View models
# =============================================================================

class Comment(ViewModel):
    """Visitor comment attached to exactly one blog post or photo."""
    id: str
    parent_id: str
    author: str
    content: str
    created_at: datetime


class ContactMessage(ViewModel):
    id: str
    name: str
    email: str
    message: str
    created_at: datetime
    admin_reply: Optional[str] = None
    replied_at: Optional[datetime] = None
    is_read: bool = False


class BlogPost(ViewModel):
    id: str
    title: str
    content: str = ""
    excerpt: str = ""
    featured_image: Optional[str] = None
    tags: List[str] = []
    views: int = 0
    likes: int = 0
    created_at: datetime
    updated_at: datetime
    comments: List[Comment] = []


class Photo(ViewModel):
    id: str
    title: str
    description: str = ""
    image_url: str
    likes: int = 0
    created_at: datetime
    comments: List[Comment] = []


# =============================================================================
# Row <-> view mapping
# =============================================================================

def contact_message_from_row(row: Mapping[str, Any]) -> ContactMessage:
    return ContactMessage(
        id=str(row["id"]),
        name=row["name"],
        email=row["email"],
        message=row["message"],
        created_at=row["created_at"],
        admin_reply=row.get("admin_reply"),
        replied_at=row.get("replied_at"),
        is_read=bool(row.get("is_read", False)),
    )


def contact_message_to_row(message: ContactMessage) -> Dict[str, Any]:
    return {
        "id": message.id,
        "name": message.name,
        "email": message.email,
        "message": message.message,
        "created_at": _iso(message.created_at),
        "admin_reply": message.admin_reply,
        "replied_at": _iso(message.replied_at),
        "is_read": message.is_read,
    }


def comment_from_row(row: Mapping[str, Any], parent_column: str) -> Comment:
    return Comment(
        id=str(row["id"]),
        parent_id=str(row[parent_column]),
        author=row["author"],
        content=row["content"],
        created_at=row["created_at"],
    )


def comment_to_row(comment: Comment, parent_column: str) -> Dict[str, Any]:
    return {
        "id": comment.id,
        parent_column: comment.parent_id,
        "author": comment.author,
        "content": comment.content,
        "created_at": _iso(comment.created_at),
    }


def blog_comment_from_row(row: Mapping[str, Any]) -> Comment:
    return comment_from_row(row, "blog_post_id")


def blog_comment_to_row(comment: Comment) -> Dict[str, Any]:
    return comment_to_row(comment, "blog_post_id")


def photo_comment_from_row(row: Mapping[str, Any]) -> Comment:
    return comment_from_row(row, "photo_id")


def photo_comment_to_row(comment: Comment) -> Dict[str, Any]:
    return comment_to_row(comment, "photo_id")


def blog_post_from_row(row: Mapping[str, Any], comments: Sequence[Comment] = ()) -> BlogPost:
    return BlogPost(
        id=str(row["id"]),
        title=row["title"],
        content=row.get("content") or "",
        excerpt=row.get("excerpt") or "",
        featured_image=row.get("featured_image"),
        tags=list(row.get("tags") or []),
        views=int(row.get("views") or 0),
        likes=int(row.get("likes") or 0),
        created_at=row["created_at"],
        updated_at=row.get("updated_at") or row["created_at"],
        comments=list(comments),
    )


def blog_post_to_row(post: BlogPost) -> Dict[str, Any]:
    """Column values of a post. Comments are stored in their own table and are not included."""
    return {
        "id": post.id,
        "title": post.title,
        "content": post.content,
        "excerpt": post.excerpt,
        "featured_image": post.featured_image,
        "tags": list(post.tags),
        "views": post.views,
        "likes": post.likes,
        "created_at": _iso(post.created_at),
        "updated_at": _iso(post.updated_at),
    }


def photo_from_row(row: Mapping[str, Any], comments: Sequence[Comment] = ()) -> Photo:
    return Photo(
        id=str(row["id"]),
        title=row["title"],
        description=row.get("description") or "",
        image_url=row["image_url"],
        likes=int(row.get("likes") or 0),
        created_at=row["created_at"],
        comments=list(comments),
    )


def photo_to_row(photo: Photo) -> Dict[str, Any]:
    return {
        "id": photo.id,
        "title": photo.title,
        "description": photo.description,
        "image_url": photo.image_url,
        "likes": photo.likes,
        "created_at": _iso(photo.created_at),
    }


# =============================================================================
# Request / response schemas
# =============================================================================

class ContactMessageCreate(ViewModel):
    """
    Contact form submission.
    Fields are plain strings so the form validator can report every problem at once.
    """
    name: str = ""
    email: str = ""
    message: str = ""


class ReplyRequest(ViewModel):
    reply: str


class CommentCreate(ViewModel):
    author: str = ""
    content: str = ""


class BlogPostUpdate(ViewModel):
    """Partial update. Only fields present in the request body are written."""
    title: Optional[str] = None
    content: Optional[str] = None
    excerpt: Optional[str] = None
    featured_image: Optional[str] = None
    tags: Optional[List[str]] = None


class PhotoUpdate(ViewModel):
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None


class LikeResponse(ViewModel):
    id: str
    likes: int


class DeleteResponse(ViewModel):
    id: str
    deleted: bool


class ReadResponse(ViewModel):
    id: str
    changed: bool


class LoginRequest(ViewModel):
    email: str
    password: str


class SessionResponse(ViewModel):
    authenticated: bool
    email: Optional[str] = None
    access_token: Optional[str] = None
