"""
Cell Normalizer
Turns any spreadsheet/CSV cell value into one canonical, trimmed string.
"""
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Optional, Union

ZERO_WIDTH_SPACE = "\u200b"


@dataclass(frozen=True)
class Hyperlink:
    """Linked cell: display text plus target URL."""
    text: Optional[str] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class FormulaResult:
    """Formula cell together with the value cached by the spreadsheet application."""
    formula: str
    result: Any = None


Scalar = Union[str, int, float, bool]
RawCell = Union[None, Scalar, date, datetime, time, Hyperlink, FormulaResult]


def _clean(text: str) -> str:
    return text.replace(ZERO_WIDTH_SPACE, "").strip()


def normalize_cell(value: RawCell) -> str:
    """Resolve a raw cell to its canonical string.

    Hyperlinks resolve to their target (display text only when no target is set),
    formula cells to their cached result, dates to ISO-8601. Never raises.
    """
    if value is None:
        return ""

    if isinstance(value, Hyperlink):
        if isinstance(value.url, str) and value.url.strip():
            return _clean(value.url)
        if isinstance(value.text, str):
            return _clean(value.text)
        return ""

    if isinstance(value, FormulaResult):
        if isinstance(value.result, str):
            return _clean(value.result)
        # Numeric/date results go through the scalar rules; no cached value means blank
        return normalize_cell(value.result)

    if isinstance(value, (datetime, date, time)):
        return value.isoformat()

    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, float) and value.is_integer():
        # 599.0 read back from a spreadsheet is 599 to whoever typed it
        return str(int(value))

    text = _clean(str(value))
    if text.startswith("<") and text.endswith(">") and " object at 0x" in text:
        # Generic object repr carries no cell content
        return ""
    return text


def is_blank(values) -> bool:
    """True when every value in a row normalizes to the empty string."""
    return all(normalize_cell(v) == "" for v in values)
