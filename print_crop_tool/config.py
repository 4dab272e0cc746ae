"""
Application constants and configuration.

DEFAULT_SETTINGS provides the built-in fallback export settings. Runtime
settings are loaded from settings.json via the settings module. All other
constants control crop-editor behaviour, print geometry, and encoding.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules (settings, asset store).
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "print-crop-tool"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory

# =============================================================================
# PRINT GEOMETRY
# =============================================================================
# Target aspect ratio for 8"x10" prints
RATIO_W = 8
RATIO_H = 10

# Minimum crop size is 100 native pixels per ratio unit (800×1000 for 8:10)
MIN_PX_PER_RATIO_UNIT = 100

# Initial crop covers this fraction of the largest ratio rectangle
DEFAULT_CROP_FRACTION = 0.8

# Tolerance for ratio checks in native pixels
RATIO_TOLERANCE = 1e-3

# Placement mode: image layer starts at this fraction of its native size
PLACEMENT_DEFAULT_SCALE = 0.25
# Smallest image layer width, in percent of the frame
PLACEMENT_MIN_SIZE_PCT = 5.0
# Largest image layer side, in percent of the frame
PLACEMENT_MAX_SIZE_PCT = 400.0
# Part of the layer (percent of the frame) that must stay inside the frame
PLACEMENT_MIN_VISIBLE_PCT = 5.0
# On-screen frame width (pixels) when no widget size is known yet
PLACEMENT_FRAME_WIDTH = 400

# =============================================================================
# EXPORT
# =============================================================================
# Only applied when no DPI is configured for an export (see metadata.resolve_export_dpi)
DEFAULT_EXPORT_DPI = 300

# Buffer fill colour; placement mode leaves uncovered area in this colour
BACKGROUND_COLOR = (255, 255, 255)

# PNG compression level (0-9, 9 = maximum compression)
PNG_COMPRESS_LEVEL = 9

# JPEG export uses maximum quality with no chroma subsampling
JPEG_QUALITY = 100
JPEG_SUBSAMPLING = 0  # 4:4:4

# Output format options
OUTPUT_FORMATS = ["JPEG", "PNG"]
OUTPUT_FORMAT_DEFAULT = "JPEG"
OUTPUT_EXTENSIONS = {"JPEG": ".jpg", "PNG": ".png"}

DEFAULT_SETTINGS = {
    "print_sizes": [
        {"name": "8x10", "width": 8, "height": 10},
        {"name": "16x20", "width": 16, "height": 20},
        {"name": "24x30", "width": 24, "height": 30},
    ],
    "selected_size": "8x10",
    "dpi": DEFAULT_EXPORT_DPI,
    "format": OUTPUT_FORMAT_DEFAULT,
}

# DPI bounds accepted by settings validation and the DPI spin box
DPI_MIN = 72
DPI_MAX = 1200

# Quality tier thresholds (DPI)
DPI_EXCELLENT = 300
DPI_GOOD = 200
DPI_ACCEPTABLE = 150

# =============================================================================
# INPUT
# =============================================================================
ACCEPTED_MIME_TYPES = {
    "image/png": "PNG",
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
}
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg"}

# =============================================================================
# EDITOR
# =============================================================================
# Nudge amounts (pixels in image coordinates)
NUDGE_SMALL = 1
NUDGE_LARGE = 10

# Handle size for resize corners (pixels in screen coordinates)
HANDLE_SIZE = 10
