"""
Bulk Import Router
Spreadsheet/CSV upload of gift boxes and the downloadable import template.
"""
import logging
import uuid
from typing import Literal

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse, Response

from services.errors import CatalogError
from services.import_orchestrator import GiftBoxImporter
from services.storage import StorageService, get_storage
from services.tabular_parser import detect_file_kind
from services.template_builder import build_template
from settings import BULK_IMPORT_MAX_BYTES

logger = logging.getLogger(__name__)
router = APIRouter()


def get_importer(storage: StorageService = Depends(get_storage)) -> GiftBoxImporter:
    return GiftBoxImporter(storage)


@router.post("/kidsgiftboxes/bulkimport")
async def bulk_import(
    file: UploadFile = File(...),
    importer: GiftBoxImporter = Depends(get_importer),
):
    request_id = str(uuid.uuid4())
    logger.info(f"[{request_id}] Bulk import filename={file.filename!r} content_type={file.content_type!r}")

    # Reject unsupported types before reading the body
    detect_file_kind(file.filename)

    content = await file.read()
    size = len(content or b"")
    logger.info(f"[{request_id}] Received payload size={size} bytes")
    if size > BULK_IMPORT_MAX_BYTES:
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Maximum size is {BULK_IMPORT_MAX_BYTES // (1024 * 1024)}MB",
        )

    try:
        report = await importer.run(content, file.filename)
    except CatalogError as e:
        logger.warning(f"[{request_id}] Import rejected: {e.message}")
        raise
    except Exception:
        logger.exception(f"[{request_id}] Bulk import failed")
        raise HTTPException(status_code=500, detail="Failed to import gift boxes")

    return JSONResponse(status_code=report.status_code(), content=report.to_dict())


@router.get("/kidsgiftboxes/bulkimport/template")
async def download_template(format: Literal["csv", "xlsx"] = "xlsx"):
    content, media_type, filename = build_template(format)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
