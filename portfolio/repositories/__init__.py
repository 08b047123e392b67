from portfolio.repositories.base import CommentRepository, ParentRepository, Repository
from portfolio.repositories.blog import BlogPostRepository
from portfolio.repositories.messages import ContactMessageRepository
from portfolio.repositories.photos import AttachmentStorage, PhotoRepository

__all__ = [
    "AttachmentStorage",
    "BlogPostRepository",
    "CommentRepository",
    "ContactMessageRepository",
    "ParentRepository",
    "PhotoRepository",
    "Repository",
]
