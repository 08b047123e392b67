"""
Photography routes.
Public gallery reads, likes and comments; operator uploads, edits and deletes.
"""
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from typing import List, Optional
import logging

from portfolio.deps import get_photos
from portfolio.repositories.photos import PhotoRepository
from portfolio.schemas import Comment, CommentCreate, DeleteResponse, LikeResponse, Photo, PhotoUpdate
from portfolio.utils.jwt_auth import verify_cms_token
from portfolio.utils.rate_limit import limiter, RATE_LIMITS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/photos", tags=["Photography"])


@router.get("", response_model=List[Photo])
async def list_photos(photos: PhotoRepository = Depends(get_photos)):
    return await photos.fetch_all()


@router.get("/{photo_id}", response_model=Photo)
async def get_photo(photo_id: str, photos: PhotoRepository = Depends(get_photos)):
    return await photos.get(photo_id)


@router.post("/{photo_id}/like", response_model=LikeResponse)
async def like_photo(photo_id: str, photos: PhotoRepository = Depends(get_photos)):
    likes = await photos.like(photo_id)
    return LikeResponse(id=photo_id, likes=likes)


@router.post("/{photo_id}/comments", response_model=Comment, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["comment"])
async def add_photo_comment(
    request: Request,
    photo_id: str,
    comment: CommentCreate,
    photos: PhotoRepository = Depends(get_photos)
):
    return await photos.comments.add(photo_id, comment.author, comment.content)


# =============================================================================
# Operator endpoints
# =============================================================================

@router.post("", response_model=Photo, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["upload"])
async def add_photo(
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    file: Optional[UploadFile] = File(None),
    photos: PhotoRepository = Depends(get_photos),
    claims: dict = Depends(verify_cms_token)
):
    """
    Upload an image to object storage and create the photo.

    Raises:
        ValidationError: 400 if title, description or file is missing
        UploadError: 502 if the image could not be stored (no photo is created)
    """
    data = await file.read() if file is not None else None
    filename = file.filename if file is not None else ""
    logger.info(f"Photo upload: {filename} ({len(data or b''):,} bytes)")
    return await photos.add(title, description, data, filename)


@router.patch("/{photo_id}", response_model=Photo)
async def update_photo(
    photo_id: str,
    changes: PhotoUpdate,
    photos: PhotoRepository = Depends(get_photos),
    claims: dict = Depends(verify_cms_token)
):
    await photos.update(photo_id, changes.model_dump(exclude_unset=True))
    return await photos.get(photo_id)


@router.delete("/{photo_id}", response_model=DeleteResponse)
async def delete_photo(
    photo_id: str,
    photos: PhotoRepository = Depends(get_photos),
    claims: dict = Depends(verify_cms_token)
):
    """Delete the photo, its comments and (best-effort) its stored image."""
    deleted = await photos.delete_quietly(photo_id)
    return DeleteResponse(id=photo_id, deleted=deleted)


@router.delete("/{photo_id}/comments/{comment_id}", response_model=DeleteResponse)
async def delete_photo_comment(
    photo_id: str,
    comment_id: str,
    photos: PhotoRepository = Depends(get_photos),
    claims: dict = Depends(verify_cms_token)
):
    deleted = await photos.comments.delete_quietly(comment_id)
    return DeleteResponse(id=comment_id, deleted=deleted)
