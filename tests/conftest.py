"""Pytest configuration.

The geometry, compositing and persistence modules are Qt-free, so the suite
runs headless.  Persistence modules are pointed at a per-test config
directory so nothing touches the real user profile.
"""

from __future__ import annotations

import pytest


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Redirect config_dir() for the persistence modules to a temp directory."""
    import print_crop_tool.asset_store as asset_store
    import print_crop_tool.settings as settings

    monkeypatch.setattr(asset_store, "config_dir", lambda: tmp_path)
    monkeypatch.setattr(settings, "config_dir", lambda: tmp_path)
    return tmp_path
