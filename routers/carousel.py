"""
Carousel Router
Homepage carousel configuration and its spreadsheet import.
"""
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from schemas import UpsertCarouselRequest, carousel_to_dict
from services.carousel_service import CarouselService
from services.errors import CatalogError
from services.storage import StorageService, get_storage
from services.tabular_parser import detect_file_kind
from settings import CAROUSEL_IMPORT_MAX_BYTES

logger = logging.getLogger(__name__)
router = APIRouter()


def get_carousel_service(storage: StorageService = Depends(get_storage)) -> CarouselService:
    return CarouselService(storage)


@router.get("/config/carousel")
async def get_carousel(service: CarouselService = Depends(get_carousel_service)):
    carousel = await service.get()
    if carousel is None:
        raise HTTPException(status_code=404, detail="Carousel not configured")
    return carousel_to_dict(carousel)


@router.post("/config/carousel", status_code=201)
async def create_carousel(
    body: UpsertCarouselRequest,
    service: CarouselService = Depends(get_carousel_service),
):
    carousel = await service.create(body.to_values())
    return carousel_to_dict(carousel)


@router.put("/config/carousel")
async def upsert_carousel(
    body: UpsertCarouselRequest,
    service: CarouselService = Depends(get_carousel_service),
):
    carousel, created = await service.upsert(body.to_values())
    return JSONResponse(status_code=201 if created else 200, content=carousel_to_dict(carousel))


@router.post("/config/carousel/import")
async def import_carousel(
    file: UploadFile = File(...),
    service: CarouselService = Depends(get_carousel_service),
):
    logger.info(f"Carousel import filename={file.filename!r}")
    detect_file_kind(file.filename)

    content = await file.read()
    if len(content or b"") > CAROUSEL_IMPORT_MAX_BYTES:
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Maximum size is {CAROUSEL_IMPORT_MAX_BYTES // (1024 * 1024)}MB",
        )

    try:
        carousel, created = await service.import_file(content, file.filename)
    except CatalogError as e:
        logger.warning(f"Carousel import rejected: {e.message}")
        raise
    except Exception:
        logger.exception("Carousel import failed")
        raise HTTPException(status_code=500, detail="Failed to save carousel")

    return JSONResponse(status_code=201 if created else 200, content=carousel_to_dict(carousel))
