import asyncio
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

pytest.importorskip("aiosqlite", reason="StorageService tests run against SQLite via aiosqlite")

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from conftest import GIFT_BOX_HEADER, build_csv, gift_box_row
from database import init_db
from services.import_orchestrator import GiftBoxImporter
from services.storage import StorageService

BOX = {
    "name": "Unicorn Box",
    "description": "Fun toys for little ones",
    "price": 599.99,
    "image": "https://x.com/a.jpg",
    "rating": 4.5,
    "reviews": 12,
    "isWishlisted": False,
    "isSoldOut": False,
    "category": "GB",
    "images": [],
}


def run_with_storage(tmp_path, scenario):
    async def _main():
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
        try:
            await init_db(engine)
            storage = StorageService(async_sessionmaker(engine, expire_on_commit=False))
            return await scenario(storage)
        finally:
            await engine.dispose()

    return asyncio.run(_main())


def test_create_and_lookup_by_either_id(tmp_path):
    async def scenario(storage):
        created = await storage.create_gift_box(BOX, "MDK-GB-25J-0001")
        by_id = await storage.get_gift_box(created.id)
        by_display = await storage.get_gift_box("MDK-GB-25J-0001")
        missing = await storage.get_gift_box("MDK-GB-25J-9999")
        return created, by_id, by_display, missing

    created, by_id, by_display, missing = run_with_storage(tmp_path, scenario)
    assert by_id.id == created.id == by_display.id
    assert float(by_id.price_in_inr) == 599.99
    assert by_id.reviews == 12
    assert missing is None


def test_duplicate_display_id_violates_unique_constraint(tmp_path):
    async def scenario(storage):
        await storage.create_gift_box(BOX, "MDK-GB-25J-0001")
        with pytest.raises(IntegrityError):
            await storage.create_gift_box({**BOX, "name": "Other"}, "MDK-GB-25J-0001")
        return await storage.list_gift_boxes()

    assert len(run_with_storage(tmp_path, scenario)) == 1


def test_display_id_lookups(tmp_path):
    async def scenario(storage):
        for display_id in ("MDK-GB-25J-0002", "MDK-GB-25J-0010", "MDK-TY-25J-0099"):
            await storage.create_gift_box(BOX, display_id)
        return (
            await storage.display_id_exists("MDK-GB-25J-0010"),
            await storage.display_id_exists("MDK-GB-25J-0011"),
            await storage.latest_display_id_with_prefix("MDK-GB-25J-"),
            await storage.latest_display_id_with_prefix("MDK-AC-25J-"),
        )

    assert run_with_storage(tmp_path, scenario) == (True, False, "MDK-GB-25J-0010", None)


def test_update_images_and_delete(tmp_path):
    async def scenario(storage):
        created = await storage.create_gift_box(BOX, "MDK-GB-25J-0001")
        updated = await storage.update_gift_box(created.display_id, {"price": 650, "isSoldOut": True, "bogus": 1})
        with_images = await storage.set_gift_box_images(created.id, ["https://x.com/1.jpg"])
        deleted = await storage.delete_gift_box(created.id)
        deleted_again = await storage.delete_gift_box(created.id)
        missing_update = await storage.update_gift_box(created.id, {"name": "x"})
        return updated, with_images, deleted, deleted_again, missing_update

    updated, with_images, deleted, deleted_again, missing_update = run_with_storage(tmp_path, scenario)
    assert float(updated.price_in_inr) == 650
    assert updated.is_sold_out is True
    assert with_images.images == ["https://x.com/1.jpg"]
    assert deleted is True
    assert deleted_again is False
    assert missing_update is None


def test_browse_filters_sorts_and_pages(tmp_path):
    async def scenario(storage):
        await storage.create_gift_box({**BOX, "name": "Dino Box", "price": 300}, "MDK-GB-25J-0001")
        await storage.create_gift_box({**BOX, "name": "Robot 100%", "price": 900, "category": "TY"}, "MDK-TY-25J-0001")
        await storage.create_gift_box({**BOX, "name": "Book Bundle", "price": 150, "category": "BK"}, "MDK-BK-25J-0001")
        return (
            await storage.browse_gift_boxes(sort_by="price-asc"),
            await storage.browse_gift_boxes(page=2, page_size=2, sort_by="price-desc"),
            await storage.browse_gift_boxes(q="ROBOT"),
            await storage.browse_gift_boxes(q="100%"),
            await storage.browse_gift_boxes(category="BK"),
        )

    by_price, second_page, robot, percent, books = run_with_storage(tmp_path, scenario)
    assert by_price[0] == 3
    assert [gb.name for gb in by_price[1]] == ["Book Bundle", "Dino Box", "Robot 100%"]
    assert second_page[0] == 3
    assert [gb.name for gb in second_page[1]] == ["Book Bundle"]
    assert [gb.name for gb in robot[1]] == ["Robot 100%"]
    assert percent[0] == 1
    assert books[0] == 1 and books[1][0].category == "BK"


def test_carousel_upsert(tmp_path):
    slides = [{"image": "https://x.com/a.jpg", "title": "A", "description": "a"}]

    async def scenario(storage):
        empty = await storage.get_latest_carousel()
        first, created = await storage.upsert_carousel(slides)
        second, created_again = await storage.upsert_carousel(slides * 2)
        latest = await storage.get_latest_carousel()
        return empty, first, created, second, created_again, latest

    empty, first, created, second, created_again, latest = run_with_storage(tmp_path, scenario)
    assert empty is None
    assert created is True
    assert created_again is False
    assert second.id == first.id
    assert len(latest.slides) == 2


def test_bulk_import_of_150_rows_lands_every_row(tmp_path):
    content = build_csv([GIFT_BOX_HEADER] + [gift_box_row(i) for i in range(150)])

    async def scenario(storage):
        report = await GiftBoxImporter(storage, batch_size=100).run(content, "boxes.csv")
        stored = await storage.list_gift_boxes()
        return report.to_dict(), stored

    payload, stored = run_with_storage(tmp_path, scenario)
    assert payload["errors"] == []
    assert payload["successCount"] == 150
    rows = [i["row"] for i in payload["imported"]]
    assert sorted(rows) == list(range(2, 152))
    assert len(set(rows)) == 150
    assert isinstance(payload["duration"], int)
    assert len(stored) == 150
    assert {gb.display_id for gb in stored} == {i["displayId"] for i in payload["imported"]}
