"""
Carousel Service
Homepage carousel configuration: one latest slide set, replaced wholesale.
"""
import logging
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError

from database import ConfigCarousel
from schemas.catalog_schemas import Slide
from services.errors import CarouselExistsError, CarouselImportError
from services.storage import StorageService
from services.tabular_parser import SlideRow, parse_carousel_rows
from settings import MAX_CAROUSEL_SLIDES

logger = logging.getLogger(__name__)


def _slide_error(e: ValidationError) -> str:
    parts = []
    for item in e.errors():
        loc = ".".join(str(p) for p in item.get("loc", ()))
        parts.append(f"{loc}: {item.get('msg', 'invalid value')}" if loc else item.get("msg", "invalid value"))
    return "; ".join(parts)


def validate_slides(rows: List[SlideRow]) -> List[Dict[str, str]]:
    """All rows valid -> slide dicts; otherwise CarouselImportError listing every bad row."""
    slides: List[Dict[str, str]] = []
    details = []
    for row in rows:
        try:
            slides.append(Slide.model_validate(row.as_dict()).model_dump())
        except ValidationError as e:
            details.append({"row": row.row_number, "error": _slide_error(e)})
    if details:
        raise CarouselImportError("Validation failed for some rows.", details)
    return slides


class CarouselService:
    def __init__(self, storage: StorageService):
        self.storage = storage

    async def get(self) -> Optional[ConfigCarousel]:
        return await self.storage.get_latest_carousel()

    async def create(self, slides: List[Dict[str, str]]) -> ConfigCarousel:
        if await self.storage.get_latest_carousel() is not None:
            raise CarouselExistsError("Carousel already exists. Use PUT to replace it.")
        return await self.storage.create_carousel(slides)

    async def upsert(self, slides: List[Dict[str, str]]) -> Tuple[ConfigCarousel, bool]:
        carousel, created = await self.storage.upsert_carousel(slides)
        logger.info(f"Carousel {'created' if created else 'replaced'} id={carousel.id} slides={len(slides)}")
        return carousel, created

    async def import_file(self, content: bytes, filename: Optional[str]) -> Tuple[ConfigCarousel, bool]:
        rows = parse_carousel_rows(content, filename, max_slides=MAX_CAROUSEL_SLIDES)
        slides = validate_slides(rows)
        return await self.upsert(slides)
