"""
Operator login/logout.
The token is returned in the body and also set as an httpOnly cookie.
"""
from fastapi import APIRouter, Header, Request, Response
from typing import Optional
import logging

from portfolio.config import settings
from portfolio.errors import AuthError
from portfolio.schemas import LoginRequest, SessionResponse
from portfolio.utils.jwt_auth import (
    TOKEN_COOKIE,
    authenticate_user,
    create_access_token,
    token_from_request,
    verify_token,
)
from portfolio.utils.rate_limit import limiter, RATE_LIMITS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login", response_model=SessionResponse)
@limiter.limit(RATE_LIMITS["login"])
async def login(request: Request, response: Response, credentials: LoginRequest):
    """
    Exchange operator credentials for an access token.

    Raises:
        AuthError: 401 if the credentials are rejected
    """
    claims = authenticate_user(credentials.email, credentials.password)
    token = create_access_token(claims)
    response.set_cookie(
        key=TOKEN_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.SITE_URL.startswith("https://"),
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    logger.info(f"Operator {claims['sub']} logged in")
    return SessionResponse(authenticated=True, email=claims["sub"], access_token=token)


@router.get("/session", response_model=SessionResponse)
async def get_session(
    request: Request,
    authorization: Optional[str] = Header(None)
):
    """Current session state. An anonymous caller gets ``authenticated: false``, not a 401."""
    token = token_from_request(request, authorization)
    if not token:
        return SessionResponse(authenticated=False)
    try:
        claims = verify_token(token)
    except AuthError:
        return SessionResponse(authenticated=False)
    return SessionResponse(authenticated=True, email=claims.get("sub"))


@router.post("/logout", response_model=SessionResponse)
async def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE)
    return SessionResponse(authenticated=False)
