"""
Row Validator
Coerces loosely-typed import rows into strict gift box records.

Spreadsheet cells arrive as strings, JSON payloads as native types; both are
accepted wherever a number or boolean is expected.
"""
import math
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from settings import MAX_GALLERY_IMAGES

Category = Literal["GB", "TY", "BK", "GM", "CL", "AC"]
CATEGORY_CODES: Tuple[str, ...] = ("GB", "TY", "BK", "GM", "CL", "AC")

TRUTHY_STRINGS = {"true", "1"}
GALLERY_SEPARATORS = (",", ";", "|")

_url_adapter = TypeAdapter(AnyUrl)


def is_valid_url(value: str) -> bool:
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def _fail(field: str, message: str) -> PydanticCustomError:
    return PydanticCustomError(field, message)


def _to_number(value: Any) -> Optional[float]:
    """Native number or numeric string -> finite float; None when not a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _to_bool(value: Any, field: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    raise _fail(field, f"{field} must be a boolean")


def split_gallery(value: str) -> List[str]:
    text = value
    for sep in GALLERY_SEPARATORS[1:]:
        text = text.replace(sep, GALLERY_SEPARATORS[0])
    return [part.strip() for part in text.split(GALLERY_SEPARATORS[0]) if part.strip()]


class GiftBoxRecord(BaseModel):
    """Validated, immutable gift box payload."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    price: float
    image: str
    badge: Optional[str] = Field(default=None, max_length=50)
    rating: float
    reviews: int = 0
    is_wishlisted: bool = Field(default=False, alias="isWishlisted")
    is_sold_out: bool = Field(default=False, alias="isSoldOut")
    category: Category = "GB"
    images: List[str] = Field(default_factory=list)

    @field_validator("name", "description", mode="before")
    @classmethod
    def _strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, v):
        number = _to_number(v)
        if number is None or number <= 0:
            raise _fail("price", "price must be a positive number")
        return number

    @field_validator("rating", mode="before")
    @classmethod
    def _coerce_rating(cls, v):
        number = _to_number(v)
        if number is None or number < 0 or number > 5:
            raise _fail("rating", "rating must be between 0 and 5")
        return number

    @field_validator("reviews", mode="before")
    @classmethod
    def _coerce_reviews(cls, v):
        if v is None:
            return 0
        number = _to_number(v)
        if number is None or number < 0 or not number.is_integer():
            raise _fail("reviews", "reviews must be a non-negative integer")
        return int(number)

    @field_validator("is_wishlisted", mode="before")
    @classmethod
    def _coerce_wishlisted(cls, v):
        return _to_bool(v, "isWishlisted")

    @field_validator("is_sold_out", mode="before")
    @classmethod
    def _coerce_sold_out(cls, v):
        return _to_bool(v, "isSoldOut")

    @field_validator("image", mode="before")
    @classmethod
    def _coerce_image(cls, v):
        if isinstance(v, str):
            url = v.strip()
        elif isinstance(v, Mapping) and isinstance(v.get("url"), str):
            url = v["url"].strip()
        else:
            url = ""
        if not url or not is_valid_url(url):
            raise _fail("image", "image must be a valid URL")
        return url

    @field_validator("badge", mode="before")
    @classmethod
    def _blank_badge(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("category", mode="before")
    @classmethod
    def _check_category(cls, v):
        if v is None:
            return "GB"
        code = v.strip() if isinstance(v, str) else v
        if code not in CATEGORY_CODES:
            raise _fail("category", f"category must be one of {', '.join(CATEGORY_CODES)}")
        return code

    @field_validator("images", mode="before")
    @classmethod
    def _coerce_images(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            urls = split_gallery(v)
        elif isinstance(v, (list, tuple)):
            urls = [str(u).strip() for u in v if str(u).strip()]
        else:
            raise _fail("images", "images must be a list of URLs")
        if len(urls) > MAX_GALLERY_IMAGES:
            raise _fail("images", f"images must contain at most {MAX_GALLERY_IMAGES} URLs")
        if any(not is_valid_url(u) for u in urls):
            raise _fail("images", "images must contain valid URLs")
        return urls

    def to_row(self) -> Dict[str, str]:
        """Serialize back to spreadsheet-style strings (the inverse of validation)."""
        return {
            "name": self.name,
            "description": self.description,
            "price": repr(self.price),
            "image": self.image,
            "badge": self.badge or "",
            "rating": repr(self.rating),
            "reviews": str(self.reviews),
            "isWishlisted": "true" if self.is_wishlisted else "false",
            "isSoldOut": "true" if self.is_sold_out else "false",
            "category": self.category,
            "images": ",".join(self.images),
        }


class RowValidationError(ValueError):
    """All field failures of one row, already flattened to `field: message` pairs."""

    def __init__(self, issues: List[Tuple[str, str]]):
        self.issues = issues
        super().__init__(", ".join(f"{field}: {message}" for field, message in issues))


_FIELD_NAMES = {
    "is_wishlisted": "isWishlisted",
    "is_sold_out": "isSoldOut",
}


def _issues(error: ValidationError) -> List[Tuple[str, str]]:
    issues: List[Tuple[str, str]] = []
    for item in error.errors():
        path = ".".join(str(part) for part in item.get("loc", ()))
        issues.append((_FIELD_NAMES.get(path, path), item.get("msg", "invalid value")))
    return issues


def prepare_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Blank strings mean 'not provided' so optional fields take their defaults."""
    prepared: Dict[str, Any] = {}
    for key, value in row.items():
        if isinstance(value, str):
            value = value.strip()
            if value == "":
                continue
        if value is None:
            continue
        prepared[key] = value
    return prepared


def validate_row(row: Mapping[str, Any]) -> GiftBoxRecord:
    """
    Validate one raw row.

    Raises RowValidationError carrying every failing field of the row.
    """
    try:
        return GiftBoxRecord.model_validate(prepare_row(row))
    except ValidationError as e:
        raise RowValidationError(_issues(e)) from e

