"""
SQLAlchemy models for the portfolio content tables.
All database models inherit from Base (declarative base).

Ids are opaque UUID strings and timestamps are assigned by the store when a
row is written, so rows created through any path share one clock.
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text

from portfolio.database import Base


class ContactMessage(Base):
    """Message left through the contact form, answered by the operator."""
    __tablename__ = "contact_messages"

    id = Column(String(36), primary_key=True)
    name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    admin_reply = Column(Text, nullable=True)
    replied_at = Column(DateTime(timezone=True), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)


class BlogPost(Base):
    """Blog post with HTML body. Comments live in blog_comments."""
    __tablename__ = "blog_posts"

    id = Column(String(36), primary_key=True)
    title = Column(String(300), nullable=False)
    content = Column(Text, nullable=False, default="")
    excerpt = Column(Text, nullable=False, default="")
    featured_image = Column(String, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    views = Column(Integer, nullable=False, default=0)
    likes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class BlogComment(Base):
    __tablename__ = "blog_comments"

    id = Column(String(36), primary_key=True)
    blog_post_id = Column(
        String(36), ForeignKey("blog_posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)


class Photo(Base):
    """
    Photography entry.
    image_url is the public Cloudinary URL returned by the upload.
    """
    __tablename__ = "photos"

    id = Column(String(36), primary_key=True)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=False, default="")
    image_url = Column(String, nullable=False)
    likes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)


class PhotoComment(Base):
    __tablename__ = "photo_comments"

    id = Column(String(36), primary_key=True)
    photo_id = Column(
        String(36), ForeignKey("photos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
