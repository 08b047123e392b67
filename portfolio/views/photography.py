"""
Photography gallery and photo detail views.
"""
from typing import Any, Mapping, Optional
import logging

from portfolio.auth.session import SessionGate
from portfolio.config import settings
from portfolio.errors import NotFoundError, PortfolioError, ValidationError
from portfolio.repositories.photos import PhotoRepository
from portfolio.schemas import Comment, Photo
from portfolio.sync.live import LiveCollection
from portfolio.sync.optimistic import OptimisticCoordinator
from portfolio.views.base import View

logger = logging.getLogger(__name__)


class PhotographyView(View):
    """Gallery of photos with likes and comments; operator can add, edit and delete."""

    def __init__(self, session: SessionGate, photos: PhotoRepository):
        super().__init__(session)
        self.photos = photos
        self.collection: LiveCollection[Photo] = LiveCollection(photos)
        self.optimistic = OptimisticCoordinator(self.collection, self.notify)

    @property
    def items(self):
        return self.collection.items

    async def like(self, photo_id: str) -> bool:
        return await self.optimistic.like(photo_id)

    async def add_comment(self, photo_id: str, author: str, content: str) -> Optional[Comment]:
        try:
            return await self.optimistic.add_comment(photo_id, author, content)
        except ValidationError as e:
            logger.info(f"Comment on photo {photo_id} not sent: {str(e)}")
            return None

    async def delete_comment(self, photo_id: str, comment_id: str) -> bool:
        if not self._gate("delete_comment"):
            return False
        return await self.optimistic.delete_comment(photo_id, comment_id)

    async def add_photo(
        self, title: str, description: str, image: Optional[bytes], filename: str = ""
    ) -> Optional[Photo]:
        if not self.can_edit:
            self.notify("Authentication error. Please log in again.")
            return None
        try:
            photo = await self.photos.add(title, description, image, filename)
        except ValidationError as e:
            self.notify(str(e))
            return None
        except PortfolioError as e:
            logger.error(f"Error adding photo: {str(e)}")
            self.notify("Error adding photo. Please try again.")
            return None
        self.collection.upsert(photo)
        return photo

    async def update_photo(self, photo_id: str, fields: Mapping[str, Any]) -> Optional[Photo]:
        """Write edited fields directly; the editor already shows the typed values."""
        if not self._gate("update_photo"):
            return None
        try:
            photo = await self.photos.update(photo_id, fields)
        except PortfolioError as e:
            logger.error(f"Error updating photo {photo_id}: {str(e)}")
            self.notify("Error updating photo. Please try again.")
            return None
        self.collection.upsert(photo)
        return photo

    async def delete_photo(self, photo_id: str) -> bool:
        if not self._gate("delete_photo"):
            return False
        try:
            await self.photos.delete(photo_id)
        except NotFoundError:
            logger.info(f"Photo {photo_id} was already deleted")
        except PortfolioError as e:
            logger.error(f"Error deleting photo {photo_id}: {str(e)}")
            self.notify("Error deleting photo. Please try again.")
            await self.collection.refresh()
            return False
        self.collection.remove(photo_id)
        return True


class PhotoDetailView(View):
    """One photo, kept live, with a share link."""

    def __init__(self, session: SessionGate, photos: PhotoRepository, photo_id: str):
        super().__init__(session)
        self.photo_id = photo_id
        self.collection: LiveCollection[Photo] = LiveCollection(photos)
        self.optimistic = OptimisticCoordinator(self.collection, self.notify)

    @property
    def photo(self) -> Optional[Photo]:
        return self.collection.find(self.photo_id)

    @property
    def not_found(self) -> bool:
        return self.collection.loaded and self.photo is None

    @property
    def share_url(self) -> str:
        return f"{settings.SITE_URL.rstrip('/')}/photography/{self.photo_id}"

    async def like(self) -> bool:
        return await self.optimistic.like(self.photo_id)

    async def add_comment(self, author: str, content: str) -> Optional[Comment]:
        try:
            return await self.optimistic.add_comment(self.photo_id, author, content)
        except ValidationError as e:
            logger.info(f"Comment on photo {self.photo_id} not sent: {str(e)}")
            return None

    async def mount(self) -> None:
        await super().mount()
        if self.collection.error:
            logger.warning(f"Photo {self.photo_id} could not be loaded: {self.collection.error}")

