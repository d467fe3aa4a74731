"""Utility functions for services"""

from .image_utils import (
    IMAGE_SIZES,
    generate_thumbnail,
    generate_thumbnail_from_bytes,
    is_image_file,
    is_thumbnail_name,
)

__all__ = [
    "IMAGE_SIZES",
    "generate_thumbnail",
    "generate_thumbnail_from_bytes",
    "is_image_file",
    "is_thumbnail_name",
]
