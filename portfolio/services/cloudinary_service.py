"""
Cloudinary object storage for photo uploads.
Uploads return a public HTTPS URL; that URL is the only thing the photo row stores.
"""
import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from typing import Any, Dict, Optional
import asyncio
import logging
import re

from portfolio.config import settings
from portfolio.errors import UploadError
from portfolio.utils.image_converter import is_image, optimize_for_upload

logger = logging.getLogger(__name__)

# Configure Cloudinary with credentials from settings
cloudinary.config(
    cloud_name=settings.CLOUDINARY_CLOUD_NAME,
    api_key=settings.CLOUDINARY_API_KEY,
    api_secret=settings.CLOUDINARY_API_SECRET,
    secure=True  # Always use HTTPS for secure URLs
)

PUBLIC_ID_PATTERN = re.compile(r"/image/upload(?:/v\d+)?/(.+)$")


async def upload_image(
    data: bytes,
    folder: str,
    max_retries: int = 3
) -> Dict[str, Any]:
    """
    Upload image bytes to Cloudinary, retrying transient failures.

    Args:
        data: Image bytes
        folder: Cloudinary folder path
        max_retries: Maximum number of attempts

    Returns:
        dict: url (secure URL) and public_id

    Raises:
        CloudinaryError: If upload fails after all retries
    """
    for attempt in range(max_retries):
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                data,
                folder=folder,
                fetch_format="auto",
                quality="auto",
                transformation=[{"width": 1920, "height": 1080, "crop": "limit"}],
            )
            logger.info(f"Successfully uploaded image: {result['public_id']}")
            return {"url": result["secure_url"], "public_id": result["public_id"]}

        except CloudinaryError as e:
            logger.warning(f"Cloudinary upload error (attempt {attempt + 1}/{max_retries}): {str(e)}")
            if attempt < max_retries - 1:
                await asyncio.sleep(2 ** attempt)  # 1s, 2s, 4s backoff
                continue
            logger.error(f"Cloudinary upload failed after {max_retries} attempts: {str(e)}")
            raise


async def delete_image(public_id: str, max_retries: int = 3) -> Dict[str, Any]:
    """
    Delete an image from Cloudinary, retrying transient failures.
    A result of "not found" counts as deleted.
    """
    for attempt in range(max_retries):
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.destroy,
                public_id,
                invalidate=True,
                resource_type="image",
            )
            if result.get("result") in ("ok", "not found"):
                logger.info(f"Deleted image from Cloudinary: {public_id} (result: {result.get('result')})")
            else:
                logger.warning(f"Unexpected Cloudinary delete result for {public_id}: {result}")
            return result

        except CloudinaryError as e:
            logger.warning(f"Cloudinary delete error (attempt {attempt + 1}/{max_retries}) for {public_id}: {str(e)}")
            if attempt < max_retries - 1:
                await asyncio.sleep(2 ** attempt)
                continue
            raise


def extract_public_id_from_url(url: str) -> str:
    """
    Extract the Cloudinary public_id from a delivery URL.

    https://res.cloudinary.com/{cloud}/image/upload/v123/photos/dawn.webp -> photos/dawn

    Raises:
        ValueError: If the URL is not a Cloudinary upload URL
    """
    match = PUBLIC_ID_PATTERN.search(url)
    if not match:
        raise ValueError(f"Invalid Cloudinary URL format: {url}")

    parts = match.group(1).split("/")
    if "." in parts[-1]:
        parts[-1] = parts[-1].rsplit(".", 1)[0]
    return "/".join(parts)


def validate_cloudinary_config() -> bool:
    """
    Validate that Cloudinary is properly configured.

    Returns:
        bool: True if Cloudinary is configured, False otherwise
    """
    missing = [
        name for name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET")
        if not getattr(settings, name)
    ]
    for name in missing:
        logger.warning(f"{name} not configured")
    return not missing


class CloudinaryStorage:
    """Attachment storage backed by Cloudinary."""

    def __init__(self, folder: Optional[str] = None):
        self.folder = folder or settings.PHOTO_FOLDER

    async def upload(self, data: bytes, filename: str = "") -> str:
        """
        Store an image and return its public URL.

        Raises:
            UploadError: If the bytes are not an image or the upload fails
        """
        if not is_image(data):
            raise UploadError(f"File '{filename or 'upload'}' is not a valid image file")

        prepared = await asyncio.to_thread(optimize_for_upload, data)
        try:
            result = await upload_image(prepared, folder=self.folder)
        except Exception as e:
            logger.error(f"Error uploading {filename or 'image'} to Cloudinary: {str(e)}")
            raise UploadError(f"Upload of '{filename or 'image'}' failed: {str(e)}") from e
        return result["url"]

    async def remove(self, url: str) -> None:
        try:
            public_id = extract_public_id_from_url(url)
        except ValueError as e:
            logger.warning(f"Skipping Cloudinary deletion: {str(e)}")
            return
        await delete_image(public_id)
