"""
Site paths -> route names and the view that serves them.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import re

from portfolio.auth.session import SessionGate
from portfolio.repositories.blog import BlogPostRepository
from portfolio.repositories.messages import ContactMessageRepository
from portfolio.repositories.photos import AttachmentStorage, PhotoRepository
from portfolio.store.client import RemoteStore
from portfolio.views.base import View
from portfolio.views.blog import BlogPostView, BlogView
from portfolio.views.contact import ContactView
from portfolio.views.photography import PhotoDetailView, PhotographyView

NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Route:
    name: str
    params: Dict[str, str] = field(default_factory=dict)


ROUTES: List[Tuple[str, "re.Pattern[str]"]] = [
    ("home", re.compile(r"^/$")),
    ("about", re.compile(r"^/about$")),
    ("projects", re.compile(r"^/projects$")),
    ("photography", re.compile(r"^/photography$")),
    ("photo_detail", re.compile(r"^/photography/(?P<id>[^/]+)$")),
    ("blog", re.compile(r"^/blog$")),
    ("blog_post", re.compile(r"^/blog/(?P<id>[^/]+)$")),
    ("contact", re.compile(r"^/contact$")),
]


def resolve_route(path: str) -> Route:
    """Match a site path (query string and trailing slash ignored)."""
    path = (path or "/").split("?", 1)[0].split("#", 1)[0]
    if len(path) > 1:
        path = path.rstrip("/")
    for name, pattern in ROUTES:
        match = pattern.match(path)
        if match:
            return Route(name, match.groupdict())
    return Route(NOT_FOUND)


def build_view(
    route: Route,
    session: SessionGate,
    store: RemoteStore,
    storage: Optional[AttachmentStorage] = None,
) -> View:
    """
    Create the view controller for a route.
    Static pages (home, about, projects, not found) get a plain View.
    """
    if route.name == "photography":
        return PhotographyView(session, PhotoRepository(store, storage))
    if route.name == "photo_detail":
        return PhotoDetailView(session, PhotoRepository(store, storage), route.params["id"])
    if route.name == "blog":
        return BlogView(session, BlogPostRepository(store))
    if route.name == "blog_post":
        return BlogPostView(session, BlogPostRepository(store), route.params["id"])
    if route.name == "contact":
        return ContactView(session, ContactMessageRepository(store))
    return View(session)
