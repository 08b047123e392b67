"""
FastAPI application entry point.
Main application instance with middleware, exception handlers and route configuration.
"""
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from portfolio import deps
from portfolio.config import settings
from portfolio.database import init_db, close_db
from portfolio.errors import (
    AuthError,
    FetchError,
    NotFoundError,
    PortfolioError,
    RemoteWriteError,
    UploadError,
    ValidationError,
)
from portfolio.services.cloudinary_service import validate_cloudinary_config
from portfolio.routes import auth, blog, messages, photos, realtime
from portfolio.utils.rate_limit import limiter

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI application instance
app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
)
app.state.limiter = limiter

# The operator session travels in a cookie, so origins must be listed explicitly
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,  # Cache preflight requests for 1 hour
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path and status of every request."""
    method = request.method
    path = request.url.path
    logger.debug(f"Incoming {method} request to {path} from origin: {request.headers.get('origin', 'No origin header')}")

    try:
        response = await call_next(request)
        logger.info(f"Response status: {response.status_code} for {method} {path}")
        return response
    except Exception as e:
        logger.error(
            f"Error processing {method} {path}: {str(e)}\n"
            f"  Error type: {type(e).__name__}",
            exc_info=True
        )
        raise


app.include_router(blog.router)
app.include_router(photos.router)
app.include_router(messages.router)
app.include_router(auth.router)
app.include_router(realtime.router)


def add_cors_headers(response: JSONResponse, request: Request) -> JSONResponse:
    """
    Add CORS headers to error responses for allowed origins.

    Args:
        response: The JSONResponse to add headers to
        request: The incoming request

    Returns:
        JSONResponse with CORS headers added
    """
    origin = request.headers.get("origin")
    if origin and origin in settings.CORS_ORIGINS:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Vary"] = "Origin"
    return response


# Status codes for domain errors; checked in order, first match wins
ERROR_STATUS = [
    (NotFoundError, status.HTTP_404_NOT_FOUND, "Not found"),
    (ValidationError, status.HTTP_400_BAD_REQUEST, "Validation error"),
    (AuthError, status.HTTP_401_UNAUTHORIZED, "Authentication failed"),
    (UploadError, status.HTTP_502_BAD_GATEWAY, "Upload failed"),
    (FetchError, status.HTTP_503_SERVICE_UNAVAILABLE, "Store unavailable"),
    (RemoteWriteError, status.HTTP_503_SERVICE_UNAVAILABLE, "Store write failed"),
]


# Exception Handlers
@app.exception_handler(PortfolioError)
async def portfolio_exception_handler(request: Request, exc: PortfolioError):
    """Map domain errors to status codes."""
    status_code, label = status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
    for error_cls, code, text in ERROR_STATUS:
        if isinstance(exc, error_cls):
            status_code, label = code, text
            break

    content = {"error": label, "detail": str(exc)}
    if isinstance(exc, ValidationError):
        content["fields"] = exc.errors

    log = logger.error if status_code >= 500 else logger.warning
    log(f"{type(exc).__name__} on {request.method} {request.url.path}: {str(exc)}")

    response = JSONResponse(status_code=status_code, content=content)
    if status_code == status.HTTP_401_UNAUTHORIZED:
        response.headers["WWW-Authenticate"] = "Bearer"
    return add_cors_headers(response, request)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Framework errors such as unknown routes or methods, in the same body shape."""
    logger.warning(f"HTTP {exc.status_code} on {request.method} {request.url.path}: {exc.detail}")
    response = JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None)
    )
    return add_cors_headers(response, request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and parameters are client errors, like domain validation."""
    logger.warning(f"Request validation failed on {request.method} {request.url.path}: {exc.errors()}")
    response = JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Validation error", "detail": jsonable_encoder(exc.errors())}
    )
    return add_cors_headers(response, request)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limit exceeded on {request.method} {request.url.path}: {exc.detail}")
    response = JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": "Too many requests", "detail": f"Rate limit exceeded: {exc.detail}"}
    )
    return add_cors_headers(response, request)


@app.exception_handler(Exception)
async def unexpected_exception_handler(request: Request, exc: Exception):
    logger.error(f"{type(exc).__name__} escaped {request.method} {request.url.path}: {str(exc)}", exc_info=True)
    response = JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"}
    )
    return add_cors_headers(response, request)


@app.get("/")
async def root():
    return {"message": settings.API_TITLE, "status": "healthy", "version": settings.API_VERSION}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/health/db")
async def health_check_db():
    """Reports whether the content store answers a trivial query."""
    try:
        await deps.get_store().ping()
    except FetchError as e:
        logger.error(f"Store health check failed: {str(e)}")
        return {"database": "error", "status": "unhealthy"}
    return {"database": "connected", "status": "healthy"}


@app.get("/health/cloudinary")
async def health_check_cloudinary():
    """Reports whether Cloudinary credentials are configured for photo uploads."""
    if not validate_cloudinary_config():
        return {"cloudinary": "not_configured", "status": "warning"}
    return {"cloudinary": "configured", "status": "healthy", "cloud_name": settings.CLOUDINARY_CLOUD_NAME}


@app.on_event("startup")
async def startup_event():
    """
    Create missing tables on application startup.
    Non-blocking: app will start even if database connection fails.
    """
    logger.info(f"CORS allowed origins: {settings.CORS_ORIGINS}")
    if not settings.DATABASE_URL:
        logger.info("DATABASE_URL not configured - using local SQLite database")

    try:
        await init_db(deps.get_store().engine)
        logger.info("Database connection established successfully")
    except Exception as e:
        logger.error(
            f"Could not create content tables on startup: {str(e)}. "
            f"Store-backed endpoints will fail until DATABASE_URL is reachable."
        )


@app.on_event("shutdown")
async def shutdown_event():
    """Close database connections on application shutdown."""
    try:
        await close_db(deps.get_store().engine)
    except (OSError, RuntimeError) as e:
        logger.warning(f"Error during database shutdown: {str(e)}")
