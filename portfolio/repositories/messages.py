"""
Contact messages: anonymous submission, operator read/reply.
"""
from typing import Dict, Iterable, Mapping, Any
import logging
import re

from portfolio.errors import ValidationError
from portfolio.repositories.base import Repository
from portfolio.schemas import ContactMessage, contact_message_from_row
from portfolio.store.client import utcnow

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_MESSAGE_LENGTH = 10


def validate_contact_form(name: str, email: str, message: str) -> Dict[str, str]:
    """
    Check a contact form before anything is sent.

    Returns:
        dict: field -> error message; empty when the form is valid
    """
    errors = {}
    if not (name or "").strip():
        errors["name"] = "Name is required"

    if not (email or "").strip():
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.match(email.strip()):
        errors["email"] = "Please enter a valid email address"

    if not (message or "").strip():
        errors["message"] = "Message is required"
    elif len(message.strip()) < MIN_MESSAGE_LENGTH:
        errors["message"] = f"Message must be at least {MIN_MESSAGE_LENGTH} characters long"

    return errors


def unread_count(messages: Iterable[ContactMessage]) -> int:
    return sum(1 for m in messages if not m.is_read)


class ContactMessageRepository(Repository[ContactMessage]):
    table = "contact_messages"
    writable_fields = frozenset({"name", "email", "message", "admin_reply", "replied_at", "is_read"})
    nullable_fields = frozenset({"admin_reply", "replied_at"})

    def from_row(self, row: Mapping[str, Any]) -> ContactMessage:
        return contact_message_from_row(row)

    async def submit(self, name: str, email: str, message: str) -> ContactMessage:
        """
        Store a contact form submission as an unread message with no reply.

        Raises:
            ValidationError: If the form is incomplete (nothing is written)
        """
        errors = validate_contact_form(name, email, message)
        if errors:
            raise ValidationError(errors)

        created = await self.insert({
            "name": name.strip(),
            "email": email.strip(),
            "message": message.strip(),
            "is_read": False,
            "admin_reply": None,
        })
        logger.info(f"New contact message {created.id} from {created.email}")
        return created

    async def mark_read(self, message_id: str) -> bool:
        """
        Mark a message read.

        Only an unread message is written, so the read flag changes at most once.

        Returns:
            True if this call changed the message, False if it was already read

        Raises:
            NotFoundError: If the message does not exist
        """
        row = await self.store.update(
            self.table, message_id, {"is_read": True}, where={"is_read": False}
        )
        return row is not None

    async def reply(self, message_id: str, text: str) -> ContactMessage:
        if not (text or "").strip():
            raise ValidationError({"reply": "Reply cannot be empty"})
        return await self.update(message_id, {
            "admin_reply": text,
            "replied_at": utcnow(),
            "is_read": True,
        })
