"""
Qt-free image I/O utilities.

Provides helpers to accept source images (PNG/JPEG only), decode them,
compute content fingerprints, encode finished composites, and generate
unique export paths.
"""

import hashlib
import io
import logging
import mimetypes
from pathlib import Path
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from print_crop_tool.config import (
    ACCEPTED_MIME_TYPES, JPEG_QUALITY, JPEG_SUBSAMPLING,
    OUTPUT_EXTENSIONS, OUTPUT_FORMATS, PNG_COMPRESS_LEVEL,
)
from print_crop_tool.metadata import read_metadata
from print_crop_tool.models import (
    CompositeResult, ImageAsset, TargetSpec, UnsupportedImageError,
)

logger = logging.getLogger(__name__)

# Allow very large images (Pillow's default limit is ~178MP)
Image.MAX_IMAGE_PIXELS = None

# Number of bytes hashed for fingerprinting (64 KB)
_FINGERPRINT_READ_SIZE = 65_536


def compute_fingerprint(data: bytes) -> str:
    """
    Compute a fast content fingerprint for image bytes.

    Hashes the first 64 KB and combines it with the total size to produce
    a truncated SHA-256 hex string.  Format: ``"{size_hex}_{hash16}"``.
    """
    sha = hashlib.sha256(data[:_FINGERPRINT_READ_SIZE])
    return f"{len(data):x}_{sha.hexdigest()[:16]}"


def guess_mime_type(path: Path) -> Optional[str]:
    mime, _ = mimetypes.guess_type(path.name)
    return mime


def load_asset(data: bytes, name: str = "", mime_type: Optional[str] = None) -> ImageAsset:
    """
    Validate raw bytes and wrap them in an ``ImageAsset``.

    The MIME type (declared, or sniffed from the content when not given)
    must be PNG or JPEG and must agree with what Pillow detects.  Raises
    ``UnsupportedImageError`` otherwise.
    """
    if mime_type is not None and mime_type.lower() not in ACCEPTED_MIME_TYPES:
        raise UnsupportedImageError(
            f"{mime_type} type is not supported. Please choose a PNG, JPG, or JPEG image instead."
        )

    detected = _detect_format(data)
    if detected not in ACCEPTED_MIME_TYPES.values():
        raise UnsupportedImageError(
            f"{detected or 'Unknown'} data is not supported. Please choose a PNG, JPG, or JPEG image instead."
        )
    if mime_type is not None and ACCEPTED_MIME_TYPES[mime_type.lower()] != detected:
        raise UnsupportedImageError(f"Declared type {mime_type} does not match {detected} content")

    metadata = read_metadata(data)
    asset = ImageAsset(
        asset_id=compute_fingerprint(data),
        name=name,
        mime_type=(mime_type or Image.MIME[detected]).lower(),
        data=data,
        metadata=metadata,
    )
    logger.info(
        "Loaded %s (%s, %d×%d, %s)",
        name or asset.asset_id, asset.mime_type,
        metadata.native_width, metadata.native_height, asset.size_label,
    )
    return asset


def read_asset_file(path: Path) -> ImageAsset:
    """Read a file from disk and validate it as a source image."""
    return load_asset(path.read_bytes(), name=path.name, mime_type=guess_mime_type(path))


def _detect_format(data: bytes) -> Optional[str]:
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.format
    except (UnidentifiedImageError, OSError):
        return None


def decode_image(data: bytes) -> Image.Image:
    """
    Fully decode image bytes and rotate them upright per EXIF orientation.

    Raises ``UnsupportedImageError`` on failure.
    """
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise UnsupportedImageError(f"Cannot decode image: {exc}") from exc
    if img.format not in ACCEPTED_MIME_TYPES.values():
        raise UnsupportedImageError(f"{img.format} data is not supported")
    return ImageOps.exif_transpose(img)


# =============================================================================
# Export
# =============================================================================
def export_filename(target: TargetSpec, fmt: str) -> str:
    """Deterministic export name. 8x10 JPEG → '8x10_photo_print_quality.jpg'"""
    return f"{target.label}_photo_print_quality{OUTPUT_EXTENSIONS[fmt]}"


def encode_composite(result: CompositeResult, fmt: str) -> bytes:
    """Encode a composite as PNG or maximum-quality JPEG, tagged with the target DPI."""
    if fmt not in OUTPUT_FORMATS:
        raise ValueError(f"Unsupported output format {fmt!r}")
    dpi = (result.target.dpi, result.target.dpi)
    buf = io.BytesIO()
    if fmt == "JPEG":
        result.image.save(
            buf, "JPEG",
            quality=JPEG_QUALITY,
            subsampling=JPEG_SUBSAMPLING,
            optimize=True,
            dpi=dpi,
        )
    else:
        result.image.save(buf, "PNG", compress_level=PNG_COMPRESS_LEVEL, dpi=dpi)
    return buf.getvalue()


def save_composite(result: CompositeResult, out_dir: Path, fmt: str) -> Path:
    """Write the composite into ``out_dir`` under a unique export name."""
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = unique_path(out_dir / export_filename(result.target, fmt))
    out_path.write_bytes(encode_composite(result, fmt))
    logger.info("Exported %d×%d %s to %s", *result.size, fmt, out_path)
    return out_path


def unique_path(out_path: Path) -> Path:
    """Return a unique path by appending -01, -02, etc. if file already exists."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}-{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
