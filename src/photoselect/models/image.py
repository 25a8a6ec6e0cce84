"""
Gallery image records served by the listing endpoints.

Records are rebuilt from the storage bucket on every cache refresh and are
never persisted.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


def _format_date(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class ImageRecord:
    """A preview image with its temporary link."""

    name: str
    url: str
    date: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON shape returned by ``GET /api/images``."""
        return {"name": self.name, "url": self.url, "date": _format_date(self.date)}


@dataclass(frozen=True)
class FinalImageRecord:
    """A delivered image with links for full and mobile resolution."""

    name: str
    original_url: str
    mobile_url: str
    date: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON shape returned by ``GET /api/final``."""
        return {
            "name": self.name,
            "original_url": self.original_url,
            "mobile_url": self.mobile_url,
            "date": _format_date(self.date),
        }


@dataclass(frozen=True)
class ResizeSpec:
    """Target width in pixels and JPEG quality for a derived copy."""

    width: int
    quality: int

    def __post_init__(self) -> None:
        if self.width <= 0:
            raise ValueError(f"Resize width must be positive, got {self.width}")
        if not 1 <= self.quality <= 100:
            raise ValueError(f"JPEG quality must be between 1 and 100, got {self.quality}")
