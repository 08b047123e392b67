"""
Image preparation before upload.
Photos are re-encoded as WebP when that makes them smaller.
"""
import io
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

WEBP_QUALITY = 85          # 0-100
WEBP_METHOD = 6            # 0-6, higher = better compression but slower
MAX_DIMENSION = 3840       # Longest side after downscaling


def is_image(data: bytes) -> bool:
    """True if Pillow can identify the bytes as an image."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
        return True
    except Exception:
        return False


def _fit(image: Image.Image, max_dimension: Optional[int]) -> Image.Image:
    if not max_dimension:
        return image
    width, height = image.size
    if max(width, height) <= max_dimension:
        return image
    scale = max_dimension / max(width, height)
    new_size = (max(1, int(width * scale)), max(1, int(height * scale)))
    logger.info(f"Downscaling image from {width}x{height} to {new_size[0]}x{new_size[1]}")
    return image.resize(new_size, Image.Resampling.LANCZOS)


def optimize_for_upload(
    data: bytes,
    quality: int = WEBP_QUALITY,
    max_dimension: Optional[int] = MAX_DIMENSION,
) -> bytes:
    """
    Re-encode an image as WebP if the result is smaller.

    Returns the original bytes when the image is already WebP, cannot be
    decoded, or does not shrink.
    """
    try:
        image = Image.open(io.BytesIO(data))
        if image.format == "WEBP":
            return data

        if image.mode == "P":
            image = image.convert("RGBA")
        elif image.mode not in ("RGB", "RGBA", "LA"):
            image = image.convert("RGB")

        image = _fit(image, max_dimension)

        buffer = io.BytesIO()
        image.save(buffer, format="WEBP", quality=quality, method=WEBP_METHOD)
        converted = buffer.getvalue()
    except UnidentifiedImageError as e:
        logger.warning(f"Cannot identify image format, uploading original: {str(e)}")
        return data
    except (OSError, ValueError) as e:
        logger.error(f"Error converting image to WebP, uploading original: {str(e)}", exc_info=True)
        return data

    if len(converted) >= len(data):
        logger.debug("WebP conversion did not reduce size, using original")
        return data

    logger.info(f"Converted image to WebP: {len(data):,} bytes -> {len(converted):,} bytes")
    return converted
