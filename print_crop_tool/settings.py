"""
Settings persistence: load, save, and validate export settings.

Runtime settings are stored in a JSON file in the user's config directory
(provided by ``config.config_dir()``).  On first launch (or if the file is
missing/corrupt), the file is created from DEFAULT_SETTINGS.  This module
is Qt-free.

The on-disk format uses a versioned envelope::

    {"version": 1, "settings": { ... }}

Every print size must share the 8:10 print ratio, so any of them can be
rendered from the same crop.
"""

import json
import logging
from copy import deepcopy
from pathlib import Path

from print_crop_tool.config import (
    DEFAULT_SETTINGS, DPI_MAX, DPI_MIN, OUTPUT_FORMATS,
    RATIO_H, RATIO_TOLERANCE, RATIO_W, config_dir,
)
from print_crop_tool.metadata import resolve_export_dpi
from print_crop_tool.models import TargetSpec

logger = logging.getLogger(__name__)

_SETTINGS_FILENAME = "settings.json"
_FORMAT_VERSION = 1

_REQUIRED_KEYS = {"print_sizes", "selected_size", "dpi", "format"}
_SIZE_REQUIRED_KEYS = {"name", "width", "height"}


def _settings_path() -> Path:
    """Return the full path to settings.json."""
    return config_dir() / _SETTINGS_FILENAME


# =============================================================================
# Validation
# =============================================================================
def _is_positive_number(val) -> bool:
    return isinstance(val, (int, float)) and not isinstance(val, bool) and val > 0


def validate_settings(data: object) -> list[str]:
    """
    Validate a settings data structure.

    Returns a list of error strings (empty means valid).
    """
    errors: list[str] = []

    if not isinstance(data, dict):
        return ["Settings data must be a dict"]

    missing = _REQUIRED_KEYS - data.keys()
    if missing:
        return [f"missing keys: {', '.join(sorted(missing))}"]

    sizes = data["print_sizes"]
    if not isinstance(sizes, list) or len(sizes) == 0:
        errors.append("print_sizes must be a non-empty list")
        sizes = []

    aspect = RATIO_W / RATIO_H
    names_seen: set[str] = set()
    for i, size in enumerate(sizes):
        prefix = f"Print size #{i + 1}"
        if not isinstance(size, dict):
            errors.append(f"{prefix}: must be a dict")
            continue

        size_missing = _SIZE_REQUIRED_KEYS - size.keys()
        if size_missing:
            errors.append(f"{prefix}: missing keys: {', '.join(sorted(size_missing))}")
            continue

        name = size["name"]
        if not isinstance(name, str) or not name.strip():
            errors.append(f"{prefix}: name must be a non-empty string")
        elif name in names_seen:
            errors.append(f"{prefix}: duplicate name '{name}'")
        else:
            names_seen.add(name)

        w, h = size["width"], size["height"]
        if not _is_positive_number(w) or not _is_positive_number(h):
            errors.append(f"{prefix}: width and height must be positive numbers, got {w!r}×{h!r}")
        elif abs(w / h - aspect) > RATIO_TOLERANCE:
            errors.append(f"{prefix} ('{name}'): {w}×{h} is not a {RATIO_W}:{RATIO_H} print size")

    if data["selected_size"] not in names_seen and sizes:
        errors.append(f"selected_size {data['selected_size']!r} is not a configured print size")

    dpi = data["dpi"]
    if dpi is not None and (not _is_positive_number(dpi) or not DPI_MIN <= dpi <= DPI_MAX):
        errors.append(f"dpi must be between {DPI_MIN} and {DPI_MAX} or null, got {dpi!r}")

    if data["format"] not in OUTPUT_FORMATS:
        errors.append(f"format must be one of {', '.join(OUTPUT_FORMATS)}, got {data['format']!r}")

    return errors


# =============================================================================
# Load / Save
# =============================================================================
def load_settings() -> dict:
    """
    Load settings from settings.json.

    If the file is missing, corrupt, or fails validation, writes the
    defaults and returns them.
    """
    path = _settings_path()

    if not path.exists():
        logger.info("settings.json not found — creating with defaults at %s", path)
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read settings.json (%s) — restoring defaults", exc)
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    if not isinstance(raw, dict) or raw.get("version") != _FORMAT_VERSION or "settings" not in raw:
        logger.warning("settings.json missing version envelope — restoring defaults")
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    data = raw["settings"]
    errors = validate_settings(data)
    if errors:
        logger.warning(
            "settings.json validation failed:\n  %s\nRestoring defaults.",
            "\n  ".join(errors),
        )
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    return data


def save_settings(settings: dict) -> None:
    """
    Validate and write settings to settings.json in versioned envelope.

    Raises ValueError if validation fails.
    Raises OSError if the file cannot be written.
    """
    errors = validate_settings(settings)
    if errors:
        raise ValueError("Invalid settings data:\n  " + "\n  ".join(errors))

    envelope = {"version": _FORMAT_VERSION, "settings": settings}
    path = _settings_path()
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved settings to %s", path)


def _write_defaults(path: Path) -> None:
    """Write DEFAULT_SETTINGS to the given path in versioned envelope."""
    try:
        envelope = {"version": _FORMAT_VERSION, "settings": deepcopy(DEFAULT_SETTINGS)}
        path.write_text(
            json.dumps(envelope, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
    except OSError as exc:
        logger.error("Could not write default settings to %s: %s", path, exc)


# =============================================================================
# Targets
# =============================================================================
def target_for(settings: dict, size_name: str | None = None) -> TargetSpec:
    """Build the TargetSpec for a named print size (default: the selected one)."""
    name = size_name or settings["selected_size"]
    for size in settings["print_sizes"]:
        if size["name"] == name:
            return TargetSpec(size["width"], size["height"], resolve_export_dpi(settings.get("dpi")))
    raise KeyError(f"Unknown print size {name!r}")
