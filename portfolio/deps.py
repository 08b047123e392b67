"""
FastAPI dependencies: the shared store, attachment storage and repositories.

The store and storage are module attributes read at call time, so tests
can swap them before the app starts.
"""
from fastapi import Depends

from portfolio.database import engine
from portfolio.repositories.blog import BlogPostRepository
from portfolio.repositories.messages import ContactMessageRepository
from portfolio.repositories.photos import AttachmentStorage, PhotoRepository
from portfolio.services.cloudinary_service import CloudinaryStorage
from portfolio.store.client import RemoteStore

store = RemoteStore(engine)
storage: AttachmentStorage = CloudinaryStorage()


def get_store() -> RemoteStore:
    return store


def get_storage() -> AttachmentStorage:
    return storage


def get_blog_posts(store: RemoteStore = Depends(get_store)) -> BlogPostRepository:
    return BlogPostRepository(store)


def get_photos(
    store: RemoteStore = Depends(get_store),
    storage: AttachmentStorage = Depends(get_storage),
) -> PhotoRepository:
    return PhotoRepository(store, storage)


def get_messages(store: RemoteStore = Depends(get_store)) -> ContactMessageRepository:
    return ContactMessageRepository(store)
