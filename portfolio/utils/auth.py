"""
Password authentication utilities for the site operator.
Uses bcrypt for secure password hashing.
"""
import hmac
import bcrypt

from portfolio.config import settings


def hash_password(password: str, rounds: int = 12) -> str:
    """
    Hash a password using bcrypt.
    Used for generating ADMIN_PASSWORD_HASH.

    Args:
        password: Plain text password
        rounds: bcrypt cost factor

    Returns:
        Hashed password string
    """
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, hashed_password: str) -> bool:
    """
    Verify a password against a hashed password.

    Returns:
        True if password matches, False otherwise (including malformed hashes)
    """
    try:
        return bcrypt.checkpw(
            password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        return False


def verify_admin_credentials(email: str, password: str) -> bool:
    """
    Verify operator email and password against the configured values.

    Raises:
        ValueError: If ADMIN_EMAIL or ADMIN_PASSWORD_HASH is not configured
    """
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD_HASH:
        raise ValueError("ADMIN_EMAIL and ADMIN_PASSWORD_HASH must be configured")

    email_matches = hmac.compare_digest(
        (email or "").strip().lower().encode('utf-8'),
        settings.ADMIN_EMAIL.strip().lower().encode('utf-8'),
    )
    # Always run bcrypt so a wrong email costs the same as a wrong password
    password_matches = verify_password(password or "", settings.ADMIN_PASSWORD_HASH)
    return email_matches and password_matches
