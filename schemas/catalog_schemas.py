"""
Catalog Schemas
===============

Request bodies and response projections for the catalog API.

CARD PROJECTION (storefront listing):
-------------------------------------
id, displayId, name, price, image, badge, rating, reviews, description,
isWishlisted, isSoldOut, category

FULL RECORD (detail / mutation responses):
------------------------------------------
card fields + images, createdAt, updatedAt

Image list bodies only accept direct image URLs (jpg, jpeg, png, gif, webp, svg).
"""

import re
from typing import List, Dict, Any, Optional, Literal

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, field_validator, model_validator

from settings import MAX_CAROUSEL_SLIDES, MAX_GALLERY_IMAGES

IMAGE_URL_RE = re.compile(r"^https?://.+\.(jpg|jpeg|png|gif|webp|svg)(\?.*)?$", re.IGNORECASE)

CategoryCode = Literal["GB", "TY", "BK", "GM", "CL", "AC"]
SortBy = Literal["price-asc", "price-desc", "rating-desc", "newest", "featured"]


def _direct_image(url: str) -> str:
    if not IMAGE_URL_RE.match(url):
        raise ValueError("URL must point to a direct image (jpg, jpeg, png, gif, webp, svg)")
    return url


# =============================================================================
# GIFT BOXES
# =============================================================================

class CreateGiftBoxRequest(BaseModel):
    """Strict JSON body for the single-create path."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    price: float = Field(gt=0, strict=True)
    image: AnyUrl
    badge: Optional[str] = Field(default=None, max_length=50)
    rating: float = Field(ge=0, le=5, strict=True)
    reviews: int = Field(default=0, ge=0, strict=True)
    isWishlisted: bool = Field(default=False, strict=True)
    isSoldOut: bool = Field(default=False, strict=True)
    images: List[AnyUrl] = Field(default_factory=list, max_length=MAX_GALLERY_IMAGES)
    category: CategoryCode = "GB"

    def to_values(self) -> Dict[str, Any]:
        data = self.model_dump()
        data["image"] = str(self.image)
        data["images"] = [str(u) for u in self.images]
        return data


class UpdateGiftBoxRequest(BaseModel):
    """Partial update; at least one field."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    price: Optional[float] = Field(default=None, gt=0, strict=True)
    image: Optional[AnyUrl] = None
    badge: Optional[str] = Field(default=None, max_length=50)
    rating: Optional[float] = Field(default=None, ge=0, le=5, strict=True)
    reviews: Optional[int] = Field(default=None, ge=0, strict=True)
    isWishlisted: Optional[bool] = Field(default=None, strict=True)
    isSoldOut: Optional[bool] = Field(default=None, strict=True)
    images: Optional[List[AnyUrl]] = Field(default=None, max_length=MAX_GALLERY_IMAGES)
    category: Optional[CategoryCode] = None

    @model_validator(mode="after")
    def _at_least_one(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self

    @model_validator(mode="after")
    def _no_null_for_required_columns(self):
        # badge is the only nullable column
        nulls = sorted(f for f in self.model_fields_set if f != "badge" and getattr(self, f) is None)
        if nulls:
            raise ValueError(f"Fields cannot be null: {', '.join(nulls)}")
        return self

    def to_values(self) -> Dict[str, Any]:
        data = self.model_dump(include=self.model_fields_set)
        if "image" in data and data["image"] is not None:
            data["image"] = str(self.image)
        if "images" in data and data["images"] is not None:
            data["images"] = [str(u) for u in self.images]
        return data


class ImagesBody(BaseModel):
    images: List[str] = Field(min_length=1, max_length=MAX_GALLERY_IMAGES)

    @field_validator("images")
    @classmethod
    def _direct_images(cls, v: List[str]) -> List[str]:
        return [_direct_image(u) for u in v]


class RemoveImagesBody(BaseModel):
    images: Optional[List[str]] = None


# =============================================================================
# CAROUSEL
# =============================================================================

class Slide(BaseModel):
    image: str
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)

    @field_validator("image")
    @classmethod
    def _direct_image_url(cls, v: str) -> str:
        return _direct_image(v)


class UpsertCarouselRequest(BaseModel):
    slides: List[Slide] = Field(min_length=1, max_length=MAX_CAROUSEL_SLIDES)

    def to_values(self) -> List[Dict[str, str]]:
        return [s.model_dump() for s in self.slides]


# =============================================================================
# PROJECTIONS
# =============================================================================

def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def gift_box_to_card(gb) -> Dict[str, Any]:
    return {
        "id": gb.id,
        "displayId": gb.display_id,
        "name": gb.name,
        "price": float(gb.price_in_inr),
        "image": gb.image,
        "badge": gb.badge,
        "rating": float(gb.rating),
        "reviews": gb.reviews,
        "description": gb.description,
        "isWishlisted": gb.is_wishlisted,
        "isSoldOut": gb.is_sold_out,
        "category": gb.category,
    }


def gift_box_to_dict(gb) -> Dict[str, Any]:
    data = gift_box_to_card(gb)
    data.update({
        "images": list(gb.images or []),
        "createdAt": _iso(gb.created_at),
        "updatedAt": _iso(gb.updated_at),
    })
    return data


def carousel_to_dict(carousel) -> Dict[str, Any]:
    return {
        "id": carousel.id,
        "slides": list(carousel.slides or []),
        "createdAt": _iso(carousel.created_at),
        "updatedAt": _iso(carousel.updated_at),
    }
