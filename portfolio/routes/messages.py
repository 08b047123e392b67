"""
Contact message routes.
Anyone may submit the contact form; reading and replying requires the operator token.
"""
from fastapi import APIRouter, Depends, Request, status
from typing import List
import logging

from portfolio.deps import get_messages
from portfolio.repositories.messages import ContactMessageRepository
from portfolio.schemas import ContactMessage, ContactMessageCreate, ReadResponse, ReplyRequest
from portfolio.utils.jwt_auth import verify_cms_token
from portfolio.utils.rate_limit import limiter, RATE_LIMITS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contact-messages", tags=["Contact"])


@router.post("", response_model=ContactMessage, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["contact"])
async def submit_contact_message(
    request: Request,
    form: ContactMessageCreate,
    messages: ContactMessageRepository = Depends(get_messages)
):
    """
    Submit the contact form.

    Raises:
        ValidationError: 400 with per-field errors; nothing is stored
    """
    return await messages.submit(form.name, form.email, form.message)


@router.get("", response_model=List[ContactMessage])
async def list_contact_messages(
    messages: ContactMessageRepository = Depends(get_messages),
    claims: dict = Depends(verify_cms_token)
):
    return await messages.fetch_all()


@router.post("/{message_id}/read", response_model=ReadResponse)
async def mark_contact_message_read(
    message_id: str,
    messages: ContactMessageRepository = Depends(get_messages),
    claims: dict = Depends(verify_cms_token)
):
    """``changed`` is true only for the call that actually flipped the read flag."""
    changed = await messages.mark_read(message_id)
    return ReadResponse(id=message_id, changed=changed)


@router.post("/{message_id}/reply", response_model=ContactMessage)
async def reply_to_contact_message(
    message_id: str,
    body: ReplyRequest,
    messages: ContactMessageRepository = Depends(get_messages),
    claims: dict = Depends(verify_cms_token)
):
    reply = await messages.reply(message_id, body.reply)
    logger.info(f"Operator replied to contact message {message_id}")
    return reply
