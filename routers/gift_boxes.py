"""
Gift Boxes Router
Storefront listing, browsing and single-record management.
"""
import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from schemas import (
    CategoryCode,
    CreateGiftBoxRequest,
    ImagesBody,
    RemoveImagesBody,
    SortBy,
    UpdateGiftBoxRequest,
    gift_box_to_card,
    gift_box_to_dict,
)
from services.gift_box_service import GiftBoxService
from services.storage import StorageService, get_storage

logger = logging.getLogger(__name__)
router = APIRouter()


def get_gift_box_service(storage: StorageService = Depends(get_storage)) -> GiftBoxService:
    return GiftBoxService(storage)


@router.get("/kidsgiftboxes")
async def list_gift_boxes(
    category: Optional[CategoryCode] = None,
    storage: StorageService = Depends(get_storage),
):
    gift_boxes = await storage.list_gift_boxes(category)
    return [gift_box_to_card(gb) for gb in gift_boxes]


@router.get("/kidsgiftboxes/browse")
async def browse_gift_boxes(
    page: int = Query(1, ge=1),
    pageSize: int = Query(12, ge=1, le=60),
    q: Optional[str] = Query(None, max_length=200),
    category: Optional[str] = None,
    sortBy: SortBy = "featured",
    storage: StorageService = Depends(get_storage),
):
    search = q.strip() if q else None
    category_filter = None if not category or category.lower() == "all" else category
    total, items = await storage.browse_gift_boxes(
        page=page,
        page_size=pageSize,
        q=search or None,
        category=category_filter,
        sort_by=sortBy,
    )
    return {
        "items": [gift_box_to_card(gb) for gb in items],
        "page": page,
        "pageSize": pageSize,
        "total": total,
        "totalPages": math.ceil(total / pageSize) if total else 0,
    }


@router.post("/kidsgiftboxes", status_code=201)
async def create_gift_box(
    body: CreateGiftBoxRequest,
    service: GiftBoxService = Depends(get_gift_box_service),
):
    gift_box = await service.create(body.to_values())
    return gift_box_to_card(gift_box)


@router.get("/kidsgiftboxes/{gift_box_id}")
async def get_gift_box(gift_box_id: str, storage: StorageService = Depends(get_storage)):
    gift_box = await storage.get_gift_box(gift_box_id)
    if gift_box is None:
        raise HTTPException(status_code=404, detail="Gift box not found")
    return gift_box_to_dict(gift_box)


@router.put("/kidsgiftboxes/{gift_box_id}")
async def update_gift_box(
    gift_box_id: str,
    body: UpdateGiftBoxRequest,
    storage: StorageService = Depends(get_storage),
):
    gift_box = await storage.update_gift_box(gift_box_id, body.to_values())
    if gift_box is None:
        raise HTTPException(status_code=404, detail="Gift box not found")
    logger.info(f"Updated gift box id={gift_box.id} fields={sorted(body.model_fields_set)}")
    return gift_box_to_dict(gift_box)


@router.delete("/kidsgiftboxes/{gift_box_id}", status_code=204)
async def delete_gift_box(gift_box_id: str, storage: StorageService = Depends(get_storage)):
    if not await storage.delete_gift_box(gift_box_id):
        raise HTTPException(status_code=404, detail="Gift box not found")
    logger.info(f"Deleted gift box {gift_box_id}")
    return Response(status_code=204)


# ---------- Gallery images ----------

@router.post("/kidsgiftboxes/{gift_box_id}/images")
async def append_images(
    gift_box_id: str,
    body: ImagesBody,
    service: GiftBoxService = Depends(get_gift_box_service),
):
    gift_box = await service.append_images(gift_box_id, body.images)
    return gift_box_to_dict(gift_box)


@router.put("/kidsgiftboxes/{gift_box_id}/images")
async def replace_images(
    gift_box_id: str,
    body: ImagesBody,
    service: GiftBoxService = Depends(get_gift_box_service),
):
    gift_box = await service.replace_images(gift_box_id, body.images)
    return gift_box_to_dict(gift_box)


@router.delete("/kidsgiftboxes/{gift_box_id}/images")
async def remove_images(
    gift_box_id: str,
    body: RemoveImagesBody,
    service: GiftBoxService = Depends(get_gift_box_service),
):
    gift_box = await service.remove_images(gift_box_id, body.images)
    return gift_box_to_dict(gift_box)
