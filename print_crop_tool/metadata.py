"""
Source image metadata: native dimensions and embedded resolution.

Resolution is read from the EXIF ``XResolution``/``YResolution`` tags first,
then from Pillow's ``info["dpi"]`` (JFIF density for JPEG, pHYs for PNG).
Absent resolution stays ``None`` everywhere; the only place it turns into a
number is ``resolve_export_dpi``.  This module is Qt-free.
"""

import io
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError

from print_crop_tool.config import DEFAULT_EXPORT_DPI
from print_crop_tool.models import ImageMetadata, UnsupportedImageError

logger = logging.getLogger(__name__)

_EXIF_X_RESOLUTION = 0x011A
_EXIF_Y_RESOLUTION = 0x011B
_EXIF_RESOLUTION_UNIT = 0x0128
_EXIF_ORIENTATION = 0x0112
# Orientations stored rotated by 90 or 270 degrees (width and height swap)
_TRANSPOSED_ORIENTATIONS = {5, 6, 7, 8}
_UNIT_CENTIMETER = 3
_CM_PER_INCH = 2.54


def _positive(value) -> Optional[float]:
    """Coerce a resolution value to a positive float, or None."""
    try:
        number = float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    return number if number > 0 else None


def _exif_resolution(img: Image.Image) -> tuple[Optional[float], Optional[float]]:
    exif = img.getexif()
    if not exif:
        return None, None
    dpi_x = _positive(exif.get(_EXIF_X_RESOLUTION))
    dpi_y = _positive(exif.get(_EXIF_Y_RESOLUTION))
    if exif.get(_EXIF_RESOLUTION_UNIT) == _UNIT_CENTIMETER:
        dpi_x = dpi_x * _CM_PER_INCH if dpi_x else None
        dpi_y = dpi_y * _CM_PER_INCH if dpi_y else None
    return dpi_x, dpi_y


def _info_resolution(img: Image.Image) -> tuple[Optional[float], Optional[float]]:
    dpi = img.info.get("dpi")
    if not isinstance(dpi, tuple) or len(dpi) != 2:
        return None, None
    return _positive(dpi[0]), _positive(dpi[1])


def read_metadata(data: bytes) -> ImageMetadata:
    """
    Parse native size and embedded resolution from raw image bytes.

    Sizes are reported upright, after the EXIF orientation is applied, so
    they match what ``image_io.decode_image`` returns.  Only the header is
    read; pixel data is not decoded.  Raises
    ``UnsupportedImageError`` when Pillow cannot identify the bytes.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            dpi_x, dpi_y = _exif_resolution(img)
            if dpi_x is None and dpi_y is None:
                dpi_x, dpi_y = _info_resolution(img)
            if img.getexif().get(_EXIF_ORIENTATION) in _TRANSPOSED_ORIENTATIONS:
                width, height = height, width
                dpi_x, dpi_y = dpi_y, dpi_x
    except (UnidentifiedImageError, OSError) as exc:
        raise UnsupportedImageError(f"Cannot read image metadata: {exc}") from exc

    if width <= 0 or height <= 0:
        raise UnsupportedImageError(f"Invalid image dimensions {width}×{height}")

    return ImageMetadata(width, height, dpi_x, dpi_y)


def combined_ppi(dpi_x: Optional[float], dpi_y: Optional[float]) -> Optional[float]:
    """Mean of both resolutions rounded to 2 decimals; None unless both are known."""
    return ImageMetadata(1, 1, dpi_x, dpi_y).ppi


def format_resolution(value: Optional[float]) -> str:
    """Display text for a resolution value; absent values read ``Unknown``.

    Rounded to 2 decimals: PNG stores density per metre, so 300 DPI reads
    back as 299.9994.
    """
    if value is None:
        return "Unknown"
    return f"{round(value, 2):g}"


def resolve_export_dpi(dpi: Optional[float]) -> float:
    """Export DPI, defaulting to ``DEFAULT_EXPORT_DPI`` when none is configured."""
    if dpi is None:
        logger.debug("No export DPI configured — using default %d", DEFAULT_EXPORT_DPI)
        return float(DEFAULT_EXPORT_DPI)
    return float(dpi)
