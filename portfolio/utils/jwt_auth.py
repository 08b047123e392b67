"""
JWT token-based authentication for the operator session.
Provides token generation and verification, plus the FastAPI dependency
that guards operator-only endpoints.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import Header, Request

from portfolio.config import settings
from portfolio.errors import AuthError
from portfolio.utils.auth import verify_admin_credentials

ALGORITHM = "HS256"
TOKEN_COOKIE = "cms_token"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary of claims to include in token
        expires_delta: Optional custom expiration time

    Returns:
        str: Encoded JWT token
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode.update({
        "exp": expire,
        "iat": now,
        "type": "access"
    })

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> dict:
    """
    Verify and decode a JWT token.

    Returns:
        dict: Decoded token payload

    Raises:
        AuthError: If token is invalid, expired, or not an access token
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        raise AuthError("Authentication token is invalid or expired") from e

    if payload.get("type") != "access":
        raise AuthError("Token is not an access token")

    return payload


def authenticate_user(email: str, password: str) -> dict:
    """
    Check operator credentials and return the claims for a new token.

    Raises:
        AuthError: If the credentials are wrong or operator login is not configured
    """
    try:
        valid = verify_admin_credentials(email, password)
    except ValueError as e:
        raise AuthError(f"Operator login is not configured: {str(e)}") from e

    if not valid:
        raise AuthError("Incorrect email or password")

    return {
        "role": "admin",
        "sub": settings.ADMIN_EMAIL,
    }


def token_from_request(request: Request, authorization: Optional[str]) -> Optional[str]:
    """Token from the httpOnly cookie (preferred) or a Bearer Authorization header."""
    token = request.cookies.get(TOKEN_COOKIE)
    if not token and authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            token = parts[1]
    return token


def verify_cms_token(
    request: Request,
    authorization: Optional[str] = Header(None, description="Bearer token for authentication (fallback to cookie)")
) -> dict:
    """
    FastAPI dependency for operator-only endpoints.

    Returns:
        dict: Decoded token payload

    Raises:
        AuthError: If the token is missing, invalid, or expired (answered with 401)
    """
    token = token_from_request(request, authorization)
    if not token:
        raise AuthError("Authentication required")
    return verify_token(token)
