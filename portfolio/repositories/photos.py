"""
Photography entries and their comments.
"""
from typing import Any, Mapping, Optional, Protocol, Sequence
import logging

from portfolio.config import settings
from portfolio.errors import ValidationError
from portfolio.repositories.base import CommentRepository, ParentRepository
from portfolio.schemas import Comment, Photo, photo_comment_from_row, photo_from_row
from portfolio.store.client import RemoteStore, Row

logger = logging.getLogger(__name__)


class AttachmentStorage(Protocol):
    """Object storage for uploaded images."""

    async def upload(self, data: bytes, filename: str) -> str:
        """Store the bytes and return a public URL. Raises UploadError."""
        ...

    async def remove(self, url: str) -> None:
        ...


def photo_comments(store: RemoteStore) -> CommentRepository:
    return CommentRepository(
        store,
        table="photo_comments",
        parent_table="photos",
        parent_column="photo_id",
        mapper=photo_comment_from_row,
    )


class PhotoRepository(ParentRepository[Photo]):
    table = "photos"
    writable_fields = frozenset({"title", "description", "image_url"})

    def __init__(self, store: RemoteStore, storage: Optional[AttachmentStorage] = None):
        super().__init__(store, photo_comments(store))
        self.storage = storage

    def from_row(self, row: Mapping[str, Any], comments: Sequence[Comment] = ()) -> Photo:
        return photo_from_row(row, comments)

    async def add(self, title: str, description: str, image: Optional[bytes], filename: str = "") -> Photo:
        """
        Upload an image and create the photo row pointing at it.

        Raises:
            ValidationError: If title, description or image is missing
            UploadError: If the upload fails; no row is inserted
            RemoteWriteError: If the insert fails
        """
        errors = {}
        if not (title or "").strip():
            errors["title"] = "Title is required"
        if not (description or "").strip():
            errors["description"] = "Description is required"
        if not image:
            errors["image"] = "An image is required"
        elif len(image) > settings.MAX_UPLOAD_MB * 1024 * 1024:
            errors["image"] = f"File size must be less than {settings.MAX_UPLOAD_MB}MB"
        if errors:
            raise ValidationError(errors, "Please fill in all fields and upload an image")
        if self.storage is None:
            raise RuntimeError("PhotoRepository has no attachment storage configured")

        image_url = await self.storage.upload(image, filename)
        photo = await self.insert({
            "title": title.strip(),
            "description": description.strip(),
            "image_url": image_url,
        })
        logger.info(f"Added photo {photo.id} ({image_url})")
        return photo

    async def delete(self, row_id: str) -> Row:
        """Delete the photo and its comments, then drop the stored image best-effort."""
        row = await super().delete(row_id)

        if self.storage is not None and row.get("image_url"):
            try:
                await self.storage.remove(row["image_url"])
            except Exception as e:
                logger.error(
                    f"Failed to remove stored image for photo {row_id} ({row['image_url']}): {str(e)}",
                    exc_info=True
                )
        return row

    async def like(self, photo_id: str) -> int:
        return await self.store.increment(self.table, photo_id, "likes")
