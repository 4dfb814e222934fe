import io
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from openpyxl import Workbook
from sqlalchemy.exc import IntegrityError, OperationalError

from database import ConfigCarousel, KidsGiftBox
from services.storage import GIFT_BOX_COLUMNS


class FakeStorage:
    """In-memory stand-in for StorageService, safe under concurrent gather()."""

    def __init__(self, fail_names=(), conflict_once=()):
        self.gift_boxes: Dict[str, KidsGiftBox] = {}
        self.carousels: List[ConfigCarousel] = []
        self.fail_names = set(fail_names)
        self.conflict_once = set(conflict_once)
        self.create_calls = 0

    def _columns(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return {GIFT_BOX_COLUMNS[k]: v for k, v in values.items() if k in GIFT_BOX_COLUMNS}

    def _find(self, identifier: str) -> Optional[KidsGiftBox]:
        for gb in self.gift_boxes.values():
            if gb.id == identifier or gb.display_id == identifier:
                return gb
        return None

    # carousel
    async def get_latest_carousel(self):
        return self.carousels[-1] if self.carousels else None

    async def create_carousel(self, slides):
        now = datetime.utcnow()
        carousel = ConfigCarousel(id=str(uuid.uuid4()), slides=slides, created_at=now, updated_at=now)
        self.carousels.append(carousel)
        return carousel

    async def upsert_carousel(self, slides) -> Tuple[ConfigCarousel, bool]:
        if not self.carousels:
            return await self.create_carousel(slides), True
        self.carousels[-1].slides = slides
        return self.carousels[-1], False

    # gift boxes
    async def create_gift_box(self, data, display_id):
        self.create_calls += 1
        if data.get("name") in self.fail_names:
            raise OperationalError("INSERT INTO kids_gift_boxes", {}, Exception("disk I/O error"))
        if display_id in self.conflict_once:
            self.conflict_once.discard(display_id)
            raise IntegrityError("INSERT INTO kids_gift_boxes", {}, Exception("UNIQUE constraint failed"))
        if any(gb.display_id == display_id for gb in self.gift_boxes.values()):
            raise IntegrityError("INSERT INTO kids_gift_boxes", {}, Exception("UNIQUE constraint failed"))
        values = {"reviews": 0, "is_wishlisted": False, "is_sold_out": False, "category": "GB",
                  "badge": None, "images": []}
        values.update(self._columns(data))
        now = datetime.utcnow()
        gb = KidsGiftBox(id=str(uuid.uuid4()), display_id=display_id, created_at=now, updated_at=now, **values)
        self.gift_boxes[gb.id] = gb
        return gb

    async def get_gift_box(self, identifier):
        return self._find(identifier)

    async def list_gift_boxes(self, category=None):
        items = [gb for gb in self.gift_boxes.values() if not category or gb.category == category]
        return list(reversed(items))

    async def browse_gift_boxes(self, page=1, page_size=12, q=None, category=None, sort_by="featured"):
        items = list(self.gift_boxes.values())
        if q:
            needle = q.lower()
            items = [gb for gb in items if needle in gb.name.lower() or needle in gb.description.lower()]
        if category:
            items = [gb for gb in items if gb.category == category]
        if sort_by == "price-asc":
            items.sort(key=lambda gb: gb.price_in_inr)
        elif sort_by == "price-desc":
            items.sort(key=lambda gb: gb.price_in_inr, reverse=True)
        start = (page - 1) * page_size
        return len(items), items[start:start + page_size]

    async def update_gift_box(self, identifier, updates):
        gb = self._find(identifier)
        if gb is None:
            return None
        for column, value in self._columns(updates).items():
            setattr(gb, column, value)
        return gb

    async def set_gift_box_images(self, identifier, images):
        return await self.update_gift_box(identifier, {"images": list(images)})

    async def delete_gift_box(self, identifier):
        gb = self._find(identifier)
        if gb is None:
            return False
        del self.gift_boxes[gb.id]
        return True

    async def display_id_exists(self, display_id):
        return any(gb.display_id == display_id for gb in self.gift_boxes.values())

    async def latest_display_id_with_prefix(self, prefix):
        matches = sorted(gb.display_id for gb in self.gift_boxes.values() if gb.display_id.startswith(prefix))
        return matches[-1] if matches else None


def build_xlsx(rows) -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_csv(rows) -> bytes:
    return "\n".join(",".join(str(v) for v in row) for row in rows).encode("utf-8")


GIFT_BOX_HEADER = ["name", "description", "price", "image", "rating"]


def gift_box_row(i: int):
    return [f"Box {i}", f"Gift box number {i}", str(100 + i), f"https://cdn.example.com/{i}.jpg", "4"]


@pytest.fixture
def fake_storage():
    return FakeStorage()
