"""
Derived URL component - CDN transform variants for stored images.
"""

from .component import (
    SLOT_VARIANTS,
    derive_urls,
    generate_transformed_url,
    split_asset_path,
    transform_tokens,
)
from .models import DerivedUrls, TextOverlay, Transformation

__all__ = [
    "SLOT_VARIANTS",
    "derive_urls",
    "generate_transformed_url",
    "split_asset_path",
    "transform_tokens",
    "DerivedUrls",
    "TextOverlay",
    "Transformation",
]
