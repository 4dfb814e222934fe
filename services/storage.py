"""
Storage Service Layer
Keyed record store over the carousel singleton and the gift box collection.
"""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select, delete, func, desc, asc, or_
from typing import List, Optional, Dict, Any, Tuple
import logging

from database import AsyncSessionLocal, ConfigCarousel, KidsGiftBox

logger = logging.getLogger(__name__)

# Storefront sort keys -> ORDER BY clauses
SORT_ORDERS = {
    "price-asc": (asc(KidsGiftBox.price_in_inr),),
    "price-desc": (desc(KidsGiftBox.price_in_inr),),
    "rating-desc": (desc(KidsGiftBox.rating), desc(KidsGiftBox.reviews)),
    "newest": (desc(KidsGiftBox.created_at),),
    "featured": (desc(KidsGiftBox.is_wishlisted), desc(KidsGiftBox.rating), desc(KidsGiftBox.reviews)),
}

# API field names -> column names for partial updates
GIFT_BOX_COLUMNS = {
    "name": "name",
    "description": "description",
    "price": "price_in_inr",
    "image": "image",
    "badge": "badge",
    "rating": "rating",
    "reviews": "reviews",
    "isWishlisted": "is_wishlisted",
    "isSoldOut": "is_sold_out",
    "category": "category",
    "images": "images",
}


class StorageService:
    """Storage service providing database operations"""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self.session_factory = session_factory or AsyncSessionLocal

    def get_session(self) -> AsyncSession:
        """Get database session context manager"""
        return self.session_factory()

    def _filter_columns(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Translate API keys to column names and drop anything that is not a column."""
        return {GIFT_BOX_COLUMNS[k]: v for k, v in values.items() if k in GIFT_BOX_COLUMNS}

    def _lookup(self, identifier: str):
        return or_(KidsGiftBox.id == identifier, KidsGiftBox.display_id == identifier)

    # ---------- Carousel ----------

    async def get_latest_carousel(self) -> Optional[ConfigCarousel]:
        async with self.get_session() as session:
            query = select(ConfigCarousel).order_by(desc(ConfigCarousel.created_at)).limit(1)
            result = await session.execute(query)
            return result.scalars().first()

    async def create_carousel(self, slides: List[Dict[str, str]]) -> ConfigCarousel:
        async with self.get_session() as session:
            carousel = ConfigCarousel(slides=slides)
            session.add(carousel)
            await session.commit()
            await session.refresh(carousel)
            return carousel

    async def update_carousel(self, carousel_id: str, slides: List[Dict[str, str]]) -> Optional[ConfigCarousel]:
        async with self.get_session() as session:
            carousel = await session.get(ConfigCarousel, carousel_id)
            if carousel is None:
                return None
            carousel.slides = slides
            await session.commit()
            await session.refresh(carousel)
            return carousel

    async def upsert_carousel(self, slides: List[Dict[str, str]]) -> Tuple[ConfigCarousel, bool]:
        """Replace the latest carousel's slides, creating one when none exists. Returns (row, created)."""
        existing = await self.get_latest_carousel()
        if existing is None:
            return await self.create_carousel(slides), True
        updated = await self.update_carousel(existing.id, slides)
        if updated is None:
            return await self.create_carousel(slides), True
        return updated, False

    # ---------- Gift boxes ----------

    async def create_gift_box(self, data: Dict[str, Any], display_id: str) -> KidsGiftBox:
        """Single-row insert in its own transaction. IntegrityError propagates on a display id clash."""
        values = self._filter_columns(data)
        values.setdefault("images", [])
        async with self.get_session() as session:
            gift_box = KidsGiftBox(display_id=display_id, **values)
            session.add(gift_box)
            try:
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            await session.refresh(gift_box)
            return gift_box

    async def get_gift_box(self, identifier: str) -> Optional[KidsGiftBox]:
        async with self.get_session() as session:
            result = await session.execute(select(KidsGiftBox).where(self._lookup(identifier)))
            return result.scalars().first()

    async def list_gift_boxes(self, category: Optional[str] = None) -> List[KidsGiftBox]:
        async with self.get_session() as session:
            query = select(KidsGiftBox)
            if category:
                query = query.where(KidsGiftBox.category == category)
            query = query.order_by(desc(KidsGiftBox.created_at))
            result = await session.execute(query)
            return list(result.scalars().all())

    async def browse_gift_boxes(
        self,
        page: int = 1,
        page_size: int = 12,
        q: Optional[str] = None,
        category: Optional[str] = None,
        sort_by: str = "featured",
    ) -> Tuple[int, List[KidsGiftBox]]:
        """Filtered, sorted page of gift boxes plus the total match count."""
        conditions = []
        if q:
            conditions.append(or_(
                KidsGiftBox.name.icontains(q, autoescape=True),
                KidsGiftBox.description.icontains(q, autoescape=True),
            ))
        if category:
            conditions.append(KidsGiftBox.category == category)

        order = SORT_ORDERS.get(sort_by, SORT_ORDERS["featured"])

        async with self.get_session() as session:
            count_query = select(func.count()).select_from(KidsGiftBox).where(*conditions)
            total = (await session.execute(count_query)).scalar_one()

            query = (
                select(KidsGiftBox)
                .where(*conditions)
                .order_by(*order, desc(KidsGiftBox.created_at), asc(KidsGiftBox.id))
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            result = await session.execute(query)
            return total, list(result.scalars().all())

    async def update_gift_box(self, identifier: str, updates: Dict[str, Any]) -> Optional[KidsGiftBox]:
        async with self.get_session() as session:
            result = await session.execute(select(KidsGiftBox).where(self._lookup(identifier)))
            gift_box = result.scalars().first()
            if gift_box is None:
                return None
            for column, value in self._filter_columns(updates).items():
                setattr(gift_box, column, value)
            await session.commit()
            await session.refresh(gift_box)
            return gift_box

    async def set_gift_box_images(self, identifier: str, images: List[str]) -> Optional[KidsGiftBox]:
        return await self.update_gift_box(identifier, {"images": list(images)})

    async def delete_gift_box(self, identifier: str) -> bool:
        async with self.get_session() as session:
            result = await session.execute(delete(KidsGiftBox).where(self._lookup(identifier)))
            await session.commit()
            return (result.rowcount or 0) > 0

    # ---------- Display id lookups ----------

    async def display_id_exists(self, display_id: str) -> bool:
        async with self.get_session() as session:
            query = select(KidsGiftBox.id).where(KidsGiftBox.display_id == display_id).limit(1)
            result = await session.execute(query)
            return result.scalar() is not None

    async def latest_display_id_with_prefix(self, prefix: str) -> Optional[str]:
        """Highest display id (lexicographic) starting with prefix."""
        async with self.get_session() as session:
            query = (
                select(KidsGiftBox.display_id)
                .where(KidsGiftBox.display_id.startswith(prefix, autoescape=True))
                .order_by(desc(KidsGiftBox.display_id))
                .limit(1)
            )
            result = await session.execute(query)
            return result.scalar()


def get_storage() -> StorageService:
    """FastAPI dependency; overridden in tests."""
    return StorageService(AsyncSessionLocal)
