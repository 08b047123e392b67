"""
Exception classes for the portfolio backend.

Every failure that crosses a repository, store or storage boundary is one of
these, so views and HTTP handlers can turn it into a notice or a status code
without inspecting driver-specific exceptions.
"""
from typing import Dict, Optional


class PortfolioError(Exception):
    """Base exception for all portfolio errors."""
    pass


# =============================================================================
# Remote Store Errors
# =============================================================================

class FetchError(PortfolioError):
    """Raised when a collection or record could not be loaded."""
    pass


class RemoteWriteError(PortfolioError):
    """Raised when an insert, update, delete or increment is rejected or times out."""
    pass


class NotFoundError(PortfolioError):
    """Raised when the target row of an update or delete does not exist."""

    def __init__(self, table: str, row_id: str):
        self.table = table
        self.row_id = row_id
        super().__init__(f"{table} row {row_id} does not exist")


# =============================================================================
# Collaborator Errors
# =============================================================================

class UploadError(PortfolioError):
    """Raised when an attachment could not be stored in object storage."""
    pass


class AuthError(PortfolioError):
    """Raised when sign-in is rejected or a session token is invalid."""
    pass


# =============================================================================
# Input Errors
# =============================================================================

class ValidationError(PortfolioError):
    """
    Raised when required input is missing or malformed.

    ``errors`` maps field names to a human readable message, mirroring the
    inline error text shown next to each form field.
    """

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        super().__init__(message or "; ".join(f"{k}: {v}" for k, v in self.errors.items()))
