"""
Asset store: keep the uploaded source image across application restarts.

Each asset is a single blob plus its MIME type, keyed by a stable
identifier (the content fingerprint from ``image_io.compute_fingerprint``)::

    assets/
        index.json          {"version": 1, "current": "<id>", "assets": {"<id>": {...}}}
        <id>.bin

Missing or unreadable entries mean "no asset present".  This module is
Qt-free.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from print_crop_tool.config import config_dir

logger = logging.getLogger(__name__)

_STORE_DIR_NAME = "assets"
_INDEX_FILENAME = "index.json"
_INDEX_VERSION = 1


def store_dir() -> Path:
    """Return the asset store directory, creating it if needed."""
    d = config_dir() / _STORE_DIR_NAME
    d.mkdir(parents=True, exist_ok=True)
    return d


def _blob_path(asset_id: str) -> Path:
    return store_dir() / f"{asset_id}.bin"


def _load_index() -> dict:
    path = store_dir() / _INDEX_FILENAME
    if not path.exists():
        return {"version": _INDEX_VERSION, "current": None, "assets": {}}
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read asset index (%s) — starting fresh", exc)
        return {"version": _INDEX_VERSION, "current": None, "assets": {}}
    if not isinstance(raw, dict) or raw.get("version") != _INDEX_VERSION or not isinstance(raw.get("assets"), dict):
        logger.warning("Asset index version mismatch or invalid format — starting fresh")
        return {"version": _INDEX_VERSION, "current": None, "assets": {}}
    return raw


def _save_index(index: dict) -> None:
    path = store_dir() / _INDEX_FILENAME
    path.write_text(json.dumps(index, indent=2, ensure_ascii=False), encoding="utf-8")


def store_asset(asset_id: str, data: bytes, mime_type: str, name: str = "") -> None:
    """
    Write a blob and make it the current asset.

    Raises ``ValueError`` for an empty id and ``OSError`` if the blob
    cannot be written.
    """
    if not asset_id:
        raise ValueError("asset_id must be a non-empty string")
    _blob_path(asset_id).write_bytes(data)
    index = _load_index()
    index["assets"][asset_id] = {
        "mime_type": mime_type,
        "name": name,
        "stored": datetime.now(timezone.utc).isoformat(timespec="seconds"),
    }
    index["current"] = asset_id
    _save_index(index)
    logger.info("Stored asset %s (%s, %d bytes)", asset_id, mime_type, len(data))


def load_asset(asset_id: str) -> Optional[tuple[bytes, str, str]]:
    """Return ``(data, mime_type, name)`` for a stored asset, or None."""
    entry = _load_index()["assets"].get(asset_id)
    if not isinstance(entry, dict):
        return None
    try:
        data = _blob_path(asset_id).read_bytes()
    except OSError as exc:
        logger.warning("Asset %s listed but unreadable (%s)", asset_id, exc)
        return None
    return data, entry.get("mime_type", ""), entry.get("name", "")


def current_asset_id() -> Optional[str]:
    current = _load_index().get("current")
    return current if isinstance(current, str) and current else None


def load_current_asset() -> Optional[tuple[bytes, str, str]]:
    """Return the current asset, or None when no asset is present."""
    asset_id = current_asset_id()
    if asset_id is None:
        return None
    return load_asset(asset_id)


def delete_asset(asset_id: str) -> None:
    """Remove an asset; clears the current pointer if it referenced it."""
    index = _load_index()
    index["assets"].pop(asset_id, None)
    if index.get("current") == asset_id:
        index["current"] = None
    try:
        _blob_path(asset_id).unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Failed to delete asset blob %s: %s", asset_id, exc)
    _save_index(index)
    logger.debug("Deleted asset %s", asset_id)
