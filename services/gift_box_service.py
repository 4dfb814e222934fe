"""
Gift Box Service
Single-record create and gallery mutations on top of StorageService.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from database import KidsGiftBox
from services.errors import GiftBoxNotFoundError, ImageListError
from services.identifiers import IDService
from services.storage import StorageService
from settings import ID_STRATEGY, MAX_GALLERY_IMAGES
from utils import retry_async

logger = logging.getLogger(__name__)


def dedupe_urls(urls: List[str]) -> List[str]:
    seen = set()
    result = []
    for url in urls:
        if url not in seen:
            seen.add(url)
            result.append(url)
    return result


class GiftBoxService:
    def __init__(self, storage: StorageService, id_service: Optional[IDService] = None,
                 strategy: str = ID_STRATEGY):
        self.storage = storage
        self.id_service = id_service or IDService()
        self.strategy = strategy

    async def create(self, values: Dict[str, Any]) -> KidsGiftBox:
        """Insert one gift box under a freshly generated display id."""

        # A concurrent create can claim the same sequential id between the read and
        # the insert; the unique constraint rejects the loser, which draws again.
        @retry_async(max_retries=3, base_delay=0.05, max_delay=0.5, retry_on=(IntegrityError,))
        async def _insert() -> KidsGiftBox:
            display_id = await self.id_service.generate_for_strategy(
                self.strategy, self.storage, values.get("category")
            )
            return await self.storage.create_gift_box(values, display_id)

        gift_box = await _insert()
        logger.info(f"Created gift box id={gift_box.id} displayId={gift_box.display_id}")
        return gift_box

    async def _require(self, identifier: str) -> KidsGiftBox:
        gift_box = await self.storage.get_gift_box(identifier)
        if gift_box is None:
            raise GiftBoxNotFoundError(identifier)
        return gift_box

    async def append_images(self, identifier: str, urls: List[str]) -> KidsGiftBox:
        gift_box = await self._require(identifier)
        images = dedupe_urls(list(gift_box.images or []) + list(urls))
        if len(images) > MAX_GALLERY_IMAGES:
            raise ImageListError(f"A gift box can have at most {MAX_GALLERY_IMAGES} images")
        return await self.storage.set_gift_box_images(gift_box.id, images)

    async def replace_images(self, identifier: str, urls: List[str]) -> KidsGiftBox:
        gift_box = await self._require(identifier)
        return await self.storage.set_gift_box_images(gift_box.id, dedupe_urls(urls))

    async def remove_images(self, identifier: str, urls: Optional[List[str]]) -> KidsGiftBox:
        if not urls:
            raise ImageListError("Provide at least one image URL to remove")
        gift_box = await self._require(identifier)
        doomed = set(urls)
        remaining = [u for u in (gift_box.images or []) if u not in doomed]
        return await self.storage.set_gift_box_images(gift_box.id, remaining)
