"""
Derived URL component models.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict


@dataclass(frozen=True)
class TextOverlay:
    text: str
    font_size: int = 20
    color: str = "white"


@dataclass(frozen=True)
class Transformation:
    """Resize/quality/format transform applied by the image CDN."""

    width: int | None = None
    height: int | None = None
    crop: str | None = None
    quality: str | None = None
    output_format: str | None = None
    blur: int | None = None
    overlay: TextOverlay | None = None


class DerivedUrls(BaseModel):
    """Presentation variants of one stored original."""

    model_config = ConfigDict(frozen=True)

    original: str
    optimized: str
    thumbnail: str | None = None
    small: str | None = None
    medium: str | None = None
    large: str | None = None
