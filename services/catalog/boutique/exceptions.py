"""
Error taxonomy for the Catalog service.

Every error surfaced by the repository, the asset manager or the auth layer
is one of these; raw database and filesystem exceptions never leak out.
"""
from typing import Any, Dict, Optional


class CatalogError(Exception):
    """Base class for all catalog errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(CatalogError):
    """Input rejected before any store write (missing field, no sizes...)."""


class EmptyVariantSetError(ValidationError):
    """Raised when a price range is requested for a dress without sizes."""

    def __init__(self) -> None:
        super().__init__("At least one size is required")


class DuplicateCodeError(CatalogError):
    """Raised when a dress code is already used by another dress."""

    def __init__(self, code: str) -> None:
        super().__init__(f"Dress code '{code}' already exists", details={"code": code})


class NotFoundError(CatalogError):
    """Raised when a dress ID does not exist."""

    def __init__(self, dress_id: int) -> None:
        super().__init__("Dress not found", details={"id": dress_id})


class AssetWriteError(CatalogError):
    """Raised when an image could not be written to the asset store."""


class AssetDeleteError(CatalogError):
    """Raised when an image could not be removed from the asset store."""


class AuthError(CatalogError):
    """Raised for unauthenticated or unauthorized admin requests."""
