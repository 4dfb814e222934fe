"""
Catalog error types.

File-level problems abort an import before any row is processed; row-level problems
never surface as exceptions past the import orchestrator.
"""
from typing import Any, Dict, List, Optional


class CatalogError(Exception):
    """Base class for catalog service errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"message": self.message}


class FileFormatError(CatalogError):
    """Unsupported, unreadable, empty or header-incomplete upload. Maps to HTTP 400."""

    status_code = 400


class CarouselImportError(FileFormatError):
    """Carousel sheet rejected as a whole; `details` lists offending rows."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.details = details or []

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.details:
            payload["details"] = self.details
        return payload


class IdentifierError(CatalogError):
    """Identifier generation could not produce a usable id."""


class GiftBoxNotFoundError(CatalogError):
    status_code = 404

    def __init__(self, identifier: str):
        super().__init__(f"Gift box not found: {identifier}")
        self.identifier = identifier


class ImageListError(CatalogError):
    """Gallery mutation rejected (over the cap or nothing to remove)."""

    status_code = 400


class CarouselExistsError(CatalogError):
    status_code = 409
