"""
Import Orchestrator
Runs a parsed gift box upload through validation, id generation and persistence.

Batches run one after another; rows inside a batch run concurrently and settle
independently, so one bad row never takes its siblings down with it. Each row is
its own insert, which makes a partially finished import leave earlier rows in place.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from services.identifiers import IDService
from services.row_validator import RowValidationError, validate_row
from services.storage import StorageService
from services.tabular_parser import RawRow, parse_gift_box_rows
from settings import IMPORT_BATCH_SIZE
from utils import chunked, retry_async

logger = logging.getLogger(__name__)

STORE_FAILURE_MESSAGE = "Failed to save gift box"


@dataclass
class RowError:
    row: int
    data: Dict[str, Any]
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {"row": self.row, "data": self.data, "error": self.error}


@dataclass
class ImportedRow:
    row: int
    id: str
    display_id: str
    name: str
    category: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row": self.row,
            "id": self.id,
            "displayId": self.display_id,
            "name": self.name,
            "category": self.category,
        }


@dataclass
class ImportReport:
    total_rows: int = 0
    errors: List[RowError] = field(default_factory=list)
    imported: List[ImportedRow] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def success_count(self) -> int:
        return len(self.imported)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def success(self) -> bool:
        return self.error_count == 0

    def status_code(self) -> int:
        """200 when every row landed, 207 (multi-status) otherwise."""
        return 200 if self.error_count == 0 else 207

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "totalRows": self.total_rows,
            "successCount": self.success_count,
            "errorCount": self.error_count,
            "errors": [e.to_dict() for e in sorted(self.errors, key=lambda e: e.row)],
            "imported": [i.to_dict() for i in sorted(self.imported, key=lambda i: i.row)],
            "duration": self.duration_ms,
        }


class GiftBoxImporter:
    def __init__(self, storage: StorageService, id_service: Optional[IDService] = None,
                 batch_size: int = IMPORT_BATCH_SIZE):
        self.storage = storage
        self.id_service = id_service or IDService()
        self.batch_size = batch_size

    async def run(self, content: bytes, filename: Optional[str]) -> ImportReport:
        """
        Import an uploaded file.

        FileFormatError propagates before any row is touched; after that every
        row ends up in exactly one of report.errors / report.imported.
        """
        started = time.monotonic()
        rows = parse_gift_box_rows(content, filename)
        report = ImportReport(total_rows=len(rows))
        batches = list(chunked(rows, self.batch_size))
        logger.info(f"Bulk import started file={filename!r} rows={len(rows)} batches={len(batches)}")

        for index, batch in enumerate(batches, start=1):
            await asyncio.gather(*(self._import_row(row, report) for row in batch))
            logger.info(
                f"Bulk import batch {index}/{len(batches)} done "
                f"imported={report.success_count} failed={report.error_count}"
            )

        report.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Bulk import finished file={filename!r} total={report.total_rows} "
            f"imported={report.success_count} failed={report.error_count} "
            f"durationMs={report.duration_ms}"
        )
        return report

    @retry_async(max_retries=2, base_delay=0.01, max_delay=0.1, retry_on=(IntegrityError,))
    async def _persist(self, record):
        # Siblings in the same batch can draw the same id before either insert lands
        display_id = await self.id_service.generate_unique_time_based_id(self.storage, record.category)
        return await self.storage.create_gift_box(record.model_dump(by_alias=True), display_id)

    async def _import_row(self, row: RawRow, report: ImportReport) -> None:
        data = row.as_dict()
        try:
            record = validate_row(data)
        except RowValidationError as e:
            report.errors.append(RowError(row=row.row_number, data=data, error=str(e)))
            return

        try:
            gift_box = await self._persist(record)
        except SQLAlchemyError as e:
            logger.error(f"Row {row.row_number}: store error {type(e).__name__}: {e}")
            report.errors.append(RowError(row=row.row_number, data=data, error=STORE_FAILURE_MESSAGE))
            return
        except Exception as e:
            logger.exception(f"Row {row.row_number}: unexpected failure: {e}")
            report.errors.append(RowError(row=row.row_number, data=data, error=STORE_FAILURE_MESSAGE))
            return

        report.imported.append(ImportedRow(
            row=row.row_number,
            id=gift_box.id,
            display_id=gift_box.display_id,
            name=gift_box.name,
            category=gift_box.category,
        ))
