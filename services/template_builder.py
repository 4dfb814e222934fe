"""
Import Template Builder
Downloadable starter files for the gift box bulk import.
"""
import csv
import io
from typing import List, Tuple

from openpyxl import Workbook
from openpyxl.comments import Comment
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.datavalidation import DataValidation

from settings import CATEGORY_NAMES

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MEDIA_TYPE = "text/csv"

# (header, guidance, column width)
TEMPLATE_COLUMNS: List[Tuple[str, str, int]] = [
    ("name", "Required. Product name, up to 200 characters.", 28),
    ("description", "Required. Short description shown on the product card.", 40),
    ("price", "Required. Price in INR, a positive number.", 12),
    ("image", "Required. Main image URL (http/https).", 40),
    ("rating", "Required. Number between 0 and 5.", 10),
    ("badge", "Optional. Short label such as Bestseller, up to 50 characters.", 16),
    ("reviews", "Optional. Non-negative whole number. Defaults to 0.", 10),
    ("isWishlisted", "Optional. true or false. Defaults to false.", 14),
    ("isSoldOut", "Optional. true or false. Defaults to false.", 12),
    ("category", "Optional. One of " + ", ".join(f"{c} ({n})" for c, n in CATEGORY_NAMES.items()) + ". Defaults to GB.", 12),
    ("images", "Optional. Up to 12 gallery image URLs separated by , ; or |", 50),
]

SAMPLE_ROWS: List[List[str]] = [
    [
        "Unicorn Dream Box", "Sparkly unicorn toys and stickers", "599.99",
        "https://example.com/images/unicorn.jpg", "4.5", "Bestseller", "128",
        "true", "false", "GB",
        "https://example.com/images/unicorn-1.jpg,https://example.com/images/unicorn-2.jpg",
    ],
    [
        "Space Explorer Book Set", "Three illustrated books about the planets", "349",
        "https://example.com/images/space-books.png", "4.8", "", "42",
        "false", "false", "BK", "",
    ],
]

HEADER_FILL = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")


def build_csv_template() -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([c[0] for c in TEMPLATE_COLUMNS])
    writer.writerows(SAMPLE_ROWS)
    return buffer.getvalue().encode("utf-8")


def build_xlsx_template() -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Gift Boxes"

    ws.append([c[0] for c in TEMPLATE_COLUMNS])
    for row in SAMPLE_ROWS:
        ws.append(row)

    for index, (header, guidance, width) in enumerate(TEMPLATE_COLUMNS, start=1):
        cell = ws.cell(row=1, column=index)
        cell.font = Font(bold=True)
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center")
        cell.comment = Comment(guidance, "catalog")
        ws.column_dimensions[get_column_letter(index)].width = width

    ws.freeze_panes = "A2"

    columns = {header: get_column_letter(i) for i, (header, _, _) in enumerate(TEMPLATE_COLUMNS, start=1)}
    lists = {
        "category": ",".join(CATEGORY_NAMES),
        "isWishlisted": "true,false",
        "isSoldOut": "true,false",
    }
    for header, options in lists.items():
        dv = DataValidation(type="list", formula1=f'"{options}"', allow_blank=True)
        dv.error = f"Choose one of: {options}"
        dv.errorTitle = f"Invalid {header}"
        ws.add_data_validation(dv)
        dv.add(f"{columns[header]}2:{columns[header]}1000")

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_template(fmt: str) -> Tuple[bytes, str, str]:
    """(content, media type, filename) for 'csv' or 'xlsx'."""
    if fmt == "csv":
        return build_csv_template(), CSV_MEDIA_TYPE, "gift-box-import-template.csv"
    return build_xlsx_template(), XLSX_MEDIA_TYPE, "gift-box-import-template.xlsx"
