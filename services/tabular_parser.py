"""
Tabular Parser
Reads uploaded CSV / Excel payloads into canonical raw rows.

Row numbers are 1-based and count the header, so the first data row is row 2.
"""
import csv
import io
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from openpyxl import load_workbook

from services.cell_normalizer import FormulaResult, Hyperlink, RawCell, is_blank, normalize_cell
from services.errors import FileFormatError
from services.header_resolver import require_headers, resolve_carousel_headers, resolve_headers

logger = logging.getLogger(__name__)

CSV_KIND = "csv"
XLSX_KIND = "xlsx"
XLS_KIND = "xls"

FILE_KINDS = {
    ".csv": CSV_KIND,
    ".xlsx": XLSX_KIND,
    ".xls": XLS_KIND,
}


@dataclass(frozen=True)
class RawRow:
    """One non-blank data line keyed by canonical field."""
    row_number: int
    values: Dict[str, str] = field(default_factory=dict)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.values.get(key, default)

    def as_dict(self) -> Dict[str, str]:
        return dict(self.values)


@dataclass(frozen=True)
class SlideRow:
    row_number: int
    image: str
    title: str
    description: str

    def as_dict(self) -> Dict[str, str]:
        return {"image": self.image, "title": self.title, "description": self.description}


def detect_file_kind(filename: Optional[str]) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    kind = FILE_KINDS.get(ext)
    if kind is None:
        raise FileFormatError("Unsupported file type. Only CSV and Excel files (.csv, .xlsx, .xls) are allowed.")
    return kind


# ---------- Readers (header row included) ----------

def read_csv_table(content: bytes) -> List[List[RawCell]]:
    """One entry per CSV record.

    A quoted field may span physical lines; it still counts as one row, the same
    way a spreadsheet application shows it, so row numbers count records.
    """
    text = content.decode("utf-8-sig", errors="replace")
    try:
        return [list(row) for row in csv.reader(io.StringIO(text))]
    except csv.Error as e:
        raise FileFormatError(f"Failed to parse CSV file: {e}") from e


def _formula_text(value: Any) -> str:
    # ArrayFormula objects carry the expression in .text
    return str(getattr(value, "text", value))


def _cached_values(content: bytes) -> List[tuple]:
    """Values-only grid of the first sheet, as last calculated by the spreadsheet application."""
    wb = load_workbook(io.BytesIO(content), data_only=True, read_only=True)
    try:
        return list(wb.worksheets[0].iter_rows(values_only=True))
    finally:
        wb.close()


def read_xlsx_table(content: bytes) -> List[List[RawCell]]:
    """First worksheet as a grid of RawCell values.

    Loaded with formulas intact so hyperlinks survive; cached formula results come from a
    second, read-only values load that only happens when the sheet actually holds formulas.
    """
    try:
        wb = load_workbook(io.BytesIO(content), data_only=False)
    except Exception as e:
        raise FileFormatError("Failed to parse Excel file.") from e

    try:
        if not wb.worksheets:
            raise FileFormatError("No worksheet found in Excel file")
        ws = wb.worksheets[0]

        cached: Optional[List[tuple]] = None
        table: List[List[RawCell]] = []
        for cells in ws.iter_rows():
            row: List[RawCell] = []
            for cell in cells:
                value = cell.value
                link = getattr(cell, "hyperlink", None)
                if link is not None and (link.target or link.location):
                    row.append(Hyperlink(text=None if value is None else str(value),
                                         url=link.target or link.location))
                elif getattr(cell, "data_type", None) == "f":
                    if cached is None:
                        cached = _cached_values(content)
                    result = None
                    if cell.row <= len(cached) and cell.column <= len(cached[cell.row - 1]):
                        result = cached[cell.row - 1][cell.column - 1]
                    row.append(FormulaResult(formula=_formula_text(value), result=result))
                else:
                    row.append(value)
            table.append(row)
        return table
    finally:
        wb.close()


def read_xls_table(content: bytes) -> List[List[RawCell]]:
    """Legacy .xls via xlrd; files that are really .xlsx fall back to openpyxl."""
    import xlrd

    try:
        book = xlrd.open_workbook(file_contents=content)
    except xlrd.XLRDError as e:
        logger.info(f"xlrd could not open workbook ({e}); retrying as .xlsx")
        return read_xlsx_table(content)
    except Exception as e:
        raise FileFormatError("Failed to parse Excel file.") from e

    if book.nsheets == 0:
        raise FileFormatError("No worksheet found in Excel file")
    sheet = book.sheet_by_index(0)
    links = getattr(sheet, "hyperlink_map", {}) or {}

    table: List[List[RawCell]] = []
    for r in range(sheet.nrows):
        row: List[RawCell] = []
        for c in range(sheet.ncols):
            cell = sheet.cell(r, c)
            if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
                value: RawCell = None
            elif cell.ctype == xlrd.XL_CELL_DATE:
                value = xlrd.xldate.xldate_as_datetime(cell.value, book.datemode)
            elif cell.ctype == xlrd.XL_CELL_BOOLEAN:
                value = bool(cell.value)
            elif cell.ctype == xlrd.XL_CELL_ERROR:
                value = None
            else:
                value = cell.value
            link = links.get((r, c))
            if link is not None and getattr(link, "url_or_path", None):
                value = Hyperlink(text=None if value is None else str(value), url=link.url_or_path)
            row.append(value)
        table.append(row)
    return table


def read_table(content: bytes, filename: Optional[str]) -> List[List[RawCell]]:
    kind = detect_file_kind(filename)
    if kind == CSV_KIND:
        return read_csv_table(content)
    if kind == XLSX_KIND:
        return read_xlsx_table(content)
    return read_xls_table(content)


# ---------- Gift box rows ----------

def _cell_at(row: Sequence[RawCell], index: int) -> RawCell:
    return row[index] if index < len(row) else None


def parse_gift_box_rows(content: bytes, filename: Optional[str]) -> List[RawRow]:
    """
    Parse an upload into raw gift box rows.

    Raises FileFormatError for unsupported/unreadable files, missing required
    columns, or a file without any non-blank data row.
    """
    if not content:
        raise FileFormatError("File is empty or has no valid data")

    table = read_table(content, filename)
    if not table or is_blank(table[0]):
        raise FileFormatError("File is empty or has no valid data")

    headers = [normalize_cell(h) for h in table[0]]
    require_headers(headers)

    # Every named column survives; unknown ones are ignored downstream
    columns = resolve_headers(headers)

    rows: List[RawRow] = []
    for offset, raw in enumerate(table[1:]):
        if is_blank(raw):
            continue
        values = {key: normalize_cell(_cell_at(raw, index)) for key, index in columns.items()}
        rows.append(RawRow(row_number=offset + 2, values=values))

    if not rows:
        raise FileFormatError("File is empty or has no valid data")

    logger.info(f"Parsed {len(rows)} data rows from {filename!r} columns={list(columns)}")
    return rows


# ---------- Carousel rows ----------

def dedupe_slides(slides: Sequence[SlideRow]) -> List[SlideRow]:
    """Drop rows repeating an earlier image URL (exact, case-sensitive)."""
    seen = set()
    unique: List[SlideRow] = []
    for slide in slides:
        if slide.image in seen:
            continue
        seen.add(slide.image)
        unique.append(slide)
    return unique


def parse_carousel_rows(content: bytes, filename: Optional[str], max_slides: int = 7) -> List[SlideRow]:
    """
    Parse a carousel sheet (url|image|image url, title, description).

    Duplicated image URLs collapse to their first row; more than `max_slides`
    rows after that rejects the whole file rather than truncating it.
    """
    if not content:
        raise FileFormatError("No data rows found under headers.")

    table = read_table(content, filename)
    if not table:
        raise FileFormatError("The workbook is empty.")

    headers = [normalize_cell(h) for h in table[0]]
    mapping = resolve_carousel_headers(headers)

    slides: List[SlideRow] = []
    for offset, raw in enumerate(table[1:]):
        image = normalize_cell(_cell_at(raw, mapping["image"]))
        title = normalize_cell(_cell_at(raw, mapping["title"]))
        description = normalize_cell(_cell_at(raw, mapping["description"]))
        if not image and not title and not description:
            continue
        slides.append(SlideRow(row_number=offset + 2, image=image, title=title, description=description))

    if not slides:
        raise FileFormatError("No data rows found under headers.")

    unique = dedupe_slides(slides)
    if len(unique) > max_slides:
        raise FileFormatError(f"Too many slides. Maximum allowed is {max_slides}.")
    return unique
