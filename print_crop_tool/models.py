"""
Data models and crop-geometry utilities.

SelectionRect, TargetSpec and the result types are the core data structures
shared across the editor, the compositor and the quality estimator.
Selections are stored in percent of the containing image (crop mode) or
frame (placement mode); every ratio check is done in native pixels so that
on-screen scaling never introduces drift.  The helper functions at the
bottom handle aspect-ratio math and minimum-size derivation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from PIL import Image

from print_crop_tool.config import (
    MIN_PX_PER_RATIO_UNIT, RATIO_H, RATIO_TOLERANCE, RATIO_W,
)


# =============================================================================
# Errors
# =============================================================================
class UnsupportedImageError(ValueError):
    """Input is not a PNG/JPEG or cannot be decoded."""


class SelectionNotReadyError(RuntimeError):
    """Export requested before an image is loaded and a selection finalized."""


# =============================================================================
# Data classes
# =============================================================================
class SelectionMode(str, Enum):
    CROP = "crop"            # selection is a region of the image
    PLACEMENT = "placement"  # selection is the image layer inside the frame


@dataclass(frozen=True)
class SelectionRect:
    """Rectangle in percent (0-100) of the containing image or frame."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @classmethod
    def from_native(cls, x: float, y: float, w: float, h: float,
                    img_w: int, img_h: int) -> "SelectionRect":
        """Build a selection from a native pixel rectangle."""
        return cls(
            x=x / img_w * 100.0,
            y=y / img_h * 100.0,
            width=w / img_w * 100.0,
            height=h / img_h * 100.0,
        )

    def native_size(self, img_w: int, img_h: int) -> tuple[float, float]:
        """Width and height in native pixels."""
        return self.width / 100.0 * img_w, self.height / 100.0 * img_h

    def to_native_box(self, img_w: int, img_h: int) -> tuple[float, float, float, float]:
        """Return ``(left, top, right, bottom)`` in native pixels."""
        left = self.x / 100.0 * img_w
        top = self.y / 100.0 * img_h
        w, h = self.native_size(img_w, img_h)
        return left, top, left + w, top + h

    def native_ratio(self, img_w: int, img_h: int) -> float:
        w, h = self.native_size(img_w, img_h)
        return w / h if h else 0.0


@dataclass(frozen=True)
class MinimumSize:
    """Smallest acceptable crop in native pixels, tied to the target ratio."""
    width: int
    height: int


@dataclass(frozen=True)
class SizeAdvisory:
    """Non-blocking feedback when a crop is below the minimum print size."""
    width_px: int
    height_px: int
    minimum: MinimumSize
    source_too_small: bool = False

    @property
    def message(self) -> str:
        mw, mh = self.minimum.width, self.minimum.height
        if self.source_too_small:
            return (
                f"Warning: Your image ({self.width_px}×{self.height_px}px) is smaller than "
                f"the recommended minimum size for printing ({mw}×{mh}px). "
                f"The quality may be reduced."
            )
        return (
            f"Current crop size ({self.width_px}×{self.height_px}px) is below the minimum "
            f"recommended size ({mw}×{mh}px) for quality printing."
        )


@dataclass(frozen=True)
class TargetSpec:
    """Physical print size (inches) and output density."""
    width: float
    height: float
    dpi: float

    @property
    def ratio(self) -> float:
        return self.width / self.height

    @property
    def label(self) -> str:
        return f"{self.width:g}x{self.height:g}"

    def output_size(self) -> tuple[int, int]:
        """Output pixel dimensions; height follows width so the ratio survives rounding."""
        out_w = max(1, int(round(self.width * self.dpi)))
        out_h = max(1, int(round(out_w / self.ratio)))
        return out_w, out_h


@dataclass(frozen=True)
class CompositeResult:
    """Rendered print raster plus the target it was rendered for."""
    image: Image.Image
    target: TargetSpec
    mode: SelectionMode

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size


class QualityTier(str, Enum):
    EXCELLENT = "Excellent"    # >= 300 DPI
    GOOD = "Good"              # 200-299 DPI
    ACCEPTABLE = "Acceptable"  # 150-199 DPI
    LOW = "Low"                # < 150 DPI
    UNKNOWN = "Unknown"        # no dimensions or resolution


@dataclass(frozen=True)
class QualityReport:
    dpi: Optional[int]
    tier: QualityTier
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def dpi_label(self) -> str:
        return "Unknown" if self.dpi is None else str(self.dpi)


@dataclass(frozen=True)
class ImageMetadata:
    """Native dimensions and optional embedded resolution of a source image."""
    native_width: int
    native_height: int
    dpi_x: Optional[float] = None
    dpi_y: Optional[float] = None

    @property
    def ppi(self) -> Optional[float]:
        """Mean of horizontal and vertical DPI, or None unless both are known."""
        if self.dpi_x is None or self.dpi_y is None:
            return None
        return round((self.dpi_x + self.dpi_y) / 2, 2)


@dataclass(frozen=True)
class ImageAsset:
    """A loaded source image; replaced, never mutated."""
    asset_id: str
    name: str
    mime_type: str
    data: bytes = field(repr=False)
    metadata: ImageMetadata = None

    @property
    def byte_size(self) -> int:
        return len(self.data)

    @property
    def size_label(self) -> str:
        return f"{self.byte_size / 1024:.2f} KB"

    @property
    def native_width(self) -> int:
        return self.metadata.native_width

    @property
    def native_height(self) -> int:
        return self.metadata.native_height


# =============================================================================
# Crop math utilities
# =============================================================================
def minimum_size_for(ratio_w: int = RATIO_W, ratio_h: int = RATIO_H) -> MinimumSize:
    """Minimum crop for a ratio. (8, 10) → 800×1000"""
    return MinimumSize(ratio_w * MIN_PX_PER_RATIO_UNIT, ratio_h * MIN_PX_PER_RATIO_UNIT)


def fit_ratio(max_w: float, max_h: float, aspect: float) -> tuple[float, float]:
    """Largest width/height with ``w / h == aspect`` inside ``max_w`` × ``max_h``."""
    w = max_w
    h = w / aspect
    if h <= max_h:
        return w, h
    h = max_h
    return h * aspect, h


def center_origin(img_w: float, img_h: float, crop_w: float, crop_h: float) -> tuple[float, float]:
    """Origin that centers a crop of the given size."""
    return (img_w - crop_w) / 2, (img_h - crop_h) / 2


def is_on_ratio(w: float, h: float, aspect: float, tolerance: float = RATIO_TOLERANCE) -> bool:
    return h > 0 and abs(w / h - aspect) <= tolerance
