"""
Centralized configuration for the catalog backend.
"""
from __future__ import annotations

import os
from dotenv import load_dotenv

load_dotenv()

NODE_ENV: str = os.getenv("NODE_ENV", "development")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# Identifier generation
ID_PREFIX: str = os.getenv("ID_PREFIX") or "MDK"
ID_STRATEGY: str = (os.getenv("ID_STRATEGY") or "hybrid").lower()

# Bulk import limits
IMPORT_BATCH_SIZE: int = int(os.getenv("IMPORT_BATCH_SIZE", "100"))
BULK_IMPORT_MAX_BYTES: int = int(os.getenv("BULK_IMPORT_MAX_BYTES", str(50 * 1024 * 1024)))
CAROUSEL_IMPORT_MAX_BYTES: int = int(os.getenv("CAROUSEL_IMPORT_MAX_BYTES", str(5 * 1024 * 1024)))
MAX_CAROUSEL_SLIDES: int = 7
MAX_GALLERY_IMAGES: int = 12

# Category codes tagging a product's type.
CATEGORY_NAMES: dict[str, str] = {
    "GB": "Gift Box",
    "TY": "Toy",
    "BK": "Book",
    "GM": "Game",
    "CL": "Clothing",
    "AC": "Accessory",
}
DEFAULT_CATEGORY: str = "GB"


def is_development() -> bool:
    return NODE_ENV == "development"

