"""
Contact form and the operator's message inbox.
"""
from typing import Dict, Optional
import logging

from portfolio.auth.session import SessionGate
from portfolio.errors import PortfolioError, ValidationError
from portfolio.repositories.messages import ContactMessageRepository, unread_count, validate_contact_form
from portfolio.schemas import ContactMessage
from portfolio.sync.live import LiveCollection
from portfolio.views.base import View

logger = logging.getLogger(__name__)

FORM_FIELDS = ("name", "email", "message")


class ContactView(View):
    """Anonymous contact form. Invalid input never reaches the store."""

    def __init__(self, session: SessionGate, messages: ContactMessageRepository):
        super().__init__(session)
        self.messages = messages
        self.fields: Dict[str, str] = {name: "" for name in FORM_FIELDS}
        self.errors: Dict[str, str] = {}
        self.submitting = False
        self.submitted = False

    def set_field(self, name: str, value: str) -> None:
        if name not in self.fields:
            raise KeyError(f"Unknown contact form field: {name}")
        self.fields[name] = value
        self.errors.pop(name, None)

    def validate(self) -> bool:
        self.errors = validate_contact_form(**self.fields)
        return not self.errors

    async def submit(self) -> bool:
        if not self.validate():
            return False

        self.submitting = True
        try:
            await self.messages.submit(**self.fields)
        except ValidationError as e:
            self.errors = dict(e.errors)
            return False
        except PortfolioError as e:
            logger.error(f"Error submitting form: {str(e)}")
            self.notify("Error sending message. Please try again.")
            return False
        finally:
            self.submitting = False

        self.submitted = True
        self.fields = {name: "" for name in FORM_FIELDS}
        return True

    def send_another(self) -> None:
        self.submitted = False


class AdminMessagingView(View):
    """Operator inbox: live message list, open (marks read) and reply."""

    def __init__(self, session: SessionGate, messages: ContactMessageRepository):
        super().__init__(session)
        self.messages = messages
        self.collection: LiveCollection[ContactMessage] = LiveCollection(messages)
        self.selected_id: Optional[str] = None
        self.reply_text = ""
        self.sending = False

    @property
    def items(self):
        return self.collection.items

    @property
    def unread_count(self) -> int:
        return unread_count(self.items)

    @property
    def selected(self) -> Optional[ContactMessage]:
        return self.collection.find(self.selected_id) if self.selected_id else None

    async def mount(self) -> None:
        if not self._gate("mount"):
            return
        await super().mount()

    async def open(self, message_id: str) -> Optional[ContactMessage]:
        """Select a message; an unread one is marked read."""
        if not self._gate("open"):
            return None
        message = self.collection.find(message_id)
        if message is None:
            return None
        self.selected_id = message_id
        if message.is_read:
            return message
        try:
            await self.messages.mark_read(message_id)
        except PortfolioError as e:
            logger.error(f"Error marking message {message_id} as read: {str(e)}")
            return message
        self.collection.update_item(message_id, lambda m: m.model_copy(update={"is_read": True}))
        return self.collection.find(message_id)

    def close(self) -> None:
        self.selected_id = None
        self.reply_text = ""

    async def send_reply(self) -> bool:
        if not self._gate("send_reply") or self.selected_id is None or not self.reply_text.strip():
            return False

        self.sending = True
        try:
            updated = await self.messages.reply(self.selected_id, self.reply_text)
        except PortfolioError as e:
            logger.error(f"Error sending reply to {self.selected_id}: {str(e)}")
            self.notify("Error sending reply. Please try again.")
            return False
        finally:
            self.sending = False

        self.collection.upsert(updated)
        self.notify("Reply sent successfully!", level="success")
        self.close()
        return True
