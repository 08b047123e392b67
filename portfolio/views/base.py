"""
Shared view controller plumbing: session gate, notices, mount lifecycle.
"""
from dataclasses import dataclass
from typing import List, Optional
import logging

from portfolio.auth.session import SessionGate
from portfolio.sync.live import LiveCollection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    level: str
    message: str


class View:
    """
    Base view controller.

    Subclasses set ``self.collection`` (or None) and add their actions.
    Remote failures never escape an action; they end up in ``notices``.
    """

    def __init__(self, session: SessionGate):
        self.session = session
        self.notices: List[Notice] = []
        self.collection: Optional[LiveCollection] = None

    @property
    def can_edit(self) -> bool:
        return self.session.is_authenticated

    @property
    def loading(self) -> bool:
        return self.collection is not None and not self.collection.loaded and self.collection.error is None

    @property
    def error(self) -> Optional[str]:
        return self.collection.error if self.collection is not None else None

    def notify(self, message: str, level: str = "error") -> None:
        self.notices.append(Notice(level, message))

    def _gate(self, action: str) -> bool:
        if self.can_edit:
            return True
        logger.warning(f"{type(self).__name__}.{action} ignored: not signed in")
        return False

    async def mount(self) -> None:
        if self.collection is not None:
            await self.collection.mount()

    async def unmount(self) -> None:
        if self.collection is not None:
            await self.collection.unmount()
