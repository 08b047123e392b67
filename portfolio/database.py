"""
Database engine setup for SQLAlchemy 2.0.
Configured for async operations with PostgreSQL (asyncpg), falling back to a
local SQLite file (aiosqlite) when DATABASE_URL is not set.
"""
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base
from urllib.parse import urlparse
import logging
import socket

from portfolio.config import settings

logger = logging.getLogger(__name__)

# Create declarative base for models
Base = declarative_base()

SQLITE_FALLBACK_URL = "sqlite+aiosqlite:///./portfolio.db"


def build_engine(url: str = "") -> AsyncEngine:
    """
    Create an async engine for the given URL.

    PostgreSQL URLs get a connection pool; SQLite URLs get foreign key
    enforcement switched on so comment rows cannot reference missing parents.
    """
    url = url or SQLITE_FALLBACK_URL
    engine_args = {
        "echo": False,  # Set to True for SQL query logging in development
    }

    if url.startswith("postgresql"):
        engine_args.update({
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,  # Verify connections before using (handles stale connections)
            "pool_recycle": 3600,
            "connect_args": {
                "server_settings": {
                    "application_name": "portfolio-backend"
                }
            }
        })

    engine = create_async_engine(url, **engine_args)

    if url.startswith("sqlite"):
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = build_engine(settings.DATABASE_URL)


def _validate_database_url(url: str) -> tuple[bool, str]:
    """
    Validate database URL and provide diagnostic information.
    Returns (is_valid, diagnostic_message)
    """
    if not url:
        return False, "DATABASE_URL is empty"

    try:
        parsed = urlparse(url)

        if not url.startswith(("postgresql://", "postgresql+asyncpg://", "sqlite+aiosqlite://")):
            return False, (
                "Invalid database URL scheme. Expected postgresql+asyncpg:// or "
                f"sqlite+aiosqlite://, got: {parsed.scheme}"
            )

        if url.startswith("sqlite"):
            return True, f"SQLite database at {parsed.path or ':memory:'}"

        hostname = parsed.hostname
        if not hostname:
            return False, "No hostname found in DATABASE_URL"

        try:
            socket.getaddrinfo(hostname, None)
            dns_status = "DNS resolution successful"
        except socket.gaierror as e:
            dns_status = f"DNS resolution failed: {str(e)}. Check network connectivity and hostname."

        return True, (
            f"URL format valid. Hostname: {hostname}, Port: {parsed.port or 5432}, "
            f"Database: {parsed.path or '/postgres'}. {dns_status}"
        )

    except Exception as e:
        return False, f"Error parsing DATABASE_URL: {str(e)}"


async def init_db(target: AsyncEngine) -> None:
    """
    Verify the connection and create any missing tables.
    Used by the application startup event.
    """
    url = target.url.render_as_string(hide_password=False)
    is_valid, diagnostic = _validate_database_url(url)
    if not is_valid:
        logger.error(f"Invalid DATABASE_URL: {diagnostic}")
        raise ValueError(f"Invalid DATABASE_URL: {diagnostic}")

    logger.info(f"Database URL validation: {diagnostic}")

    # Register the tables on Base.metadata
    import portfolio.models  # noqa: F401

    try:
        async with target.begin() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database connection initialized successfully")
    except Exception as e:
        error_msg = str(e)
        if "connection refused" in error_msg.lower() or "timeout" in error_msg.lower():
            logger.error(
                f"Database connection failed - Connection refused/timeout: {error_msg}\n"
                f"Diagnostic: {diagnostic}"
            )
        elif "authentication failed" in error_msg.lower() or "password" in error_msg.lower():
            logger.error(
                f"Database connection failed - Authentication error: {error_msg}\n"
                f"Diagnostic: {diagnostic}"
            )
        else:
            logger.error(
                f"Database connection failed ({type(e).__name__}): {error_msg}\n"
                f"Diagnostic: {diagnostic}"
            )
        raise


async def close_db(target: AsyncEngine) -> None:
    """Close database connections. Used by the shutdown event."""
    await target.dispose()
    logger.info("Database connections closed")
