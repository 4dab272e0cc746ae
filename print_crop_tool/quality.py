"""DPI analysis for print output.

Derives an effective print DPI from pixel dimensions and a physical size,
or from embedded source resolution, and maps it onto a quality tier.
Reports are cheap and are recomputed every time they are shown.
"""

from typing import Optional

from print_crop_tool.config import DPI_ACCEPTABLE, DPI_EXCELLENT, DPI_GOOD
from print_crop_tool.models import (
    CompositeResult, ImageMetadata, QualityReport, QualityTier,
)


def classify(dpi: Optional[float]) -> QualityTier:
    if not dpi:
        return QualityTier.UNKNOWN
    if dpi >= DPI_EXCELLENT:
        return QualityTier.EXCELLENT
    elif dpi >= DPI_GOOD:
        return QualityTier.GOOD
    elif dpi >= DPI_ACCEPTABLE:
        return QualityTier.ACCEPTABLE
    return QualityTier.LOW


def estimate(
    output_size: Optional[tuple[int, int]],
    physical_size: tuple[float, float],
) -> QualityReport:
    """Average DPI of ``output_size`` printed at ``physical_size`` (inches)."""
    if not output_size or min(output_size) <= 0:
        return QualityReport(dpi=None, tier=QualityTier.UNKNOWN)

    width, height = output_size
    phys_w, phys_h = physical_size
    dpi = int(round((width / phys_w + height / phys_h) / 2))
    return QualityReport(dpi=dpi, tier=classify(dpi), width=width, height=height)


def estimate_composite(result: Optional[CompositeResult]) -> QualityReport:
    """Estimate for a rendered composite at its own target size."""
    if result is None:
        return estimate(None, (1, 1))
    return estimate(result.size, (result.target.width, result.target.height))


def estimate_from_metadata(metadata: Optional[ImageMetadata]) -> QualityReport:
    """Tier from the source's embedded resolution; Unknown when none is embedded."""
    if metadata is None:
        return QualityReport(dpi=None, tier=QualityTier.UNKNOWN)
    ppi = metadata.ppi
    dpi = int(round(ppi)) if ppi is not None else None
    return QualityReport(
        dpi=dpi,
        tier=classify(dpi),
        width=metadata.native_width,
        height=metadata.native_height,
    )
