"""
Catalog Schemas Package
Request bodies and response projections for gift boxes and the carousel.
"""

from .catalog_schemas import (
    # Gift box bodies
    CreateGiftBoxRequest,
    UpdateGiftBoxRequest,
    ImagesBody,
    RemoveImagesBody,

    # Carousel bodies
    Slide,
    UpsertCarouselRequest,

    # Types
    CategoryCode,
    SortBy,
    IMAGE_URL_RE,

    # Projections
    gift_box_to_card,
    gift_box_to_dict,
    carousel_to_dict,
)
