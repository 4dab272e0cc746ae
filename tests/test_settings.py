import json
from copy import deepcopy

import pytest

from print_crop_tool.config import DEFAULT_SETTINGS
from print_crop_tool.models import TargetSpec
from print_crop_tool.settings import load_settings, save_settings, target_for, validate_settings


def _settings(**overrides):
    data = deepcopy(DEFAULT_SETTINGS)
    data.update(overrides)
    return data


def test_defaults_written_on_first_load(isolated_config):
    settings = load_settings()

    assert settings == DEFAULT_SETTINGS
    raw = json.loads((isolated_config / "settings.json").read_text(encoding="utf-8"))
    assert raw == {"version": 1, "settings": DEFAULT_SETTINGS}


def test_corrupt_file_restores_defaults(isolated_config):
    (isolated_config / "settings.json").write_text("{not json", encoding="utf-8")
    assert load_settings() == DEFAULT_SETTINGS


def test_missing_envelope_restores_defaults(isolated_config):
    (isolated_config / "settings.json").write_text(json.dumps(DEFAULT_SETTINGS), encoding="utf-8")
    assert load_settings() == DEFAULT_SETTINGS


def test_invalid_file_restores_defaults(isolated_config):
    bad = {"version": 1, "settings": _settings(format="TIFF")}
    (isolated_config / "settings.json").write_text(json.dumps(bad), encoding="utf-8")
    assert load_settings() == DEFAULT_SETTINGS


def test_save_then_load(isolated_config):
    settings = _settings(selected_size="16x20", dpi=240, format="PNG")
    save_settings(settings)
    assert load_settings() == settings


def test_save_rejects_invalid(isolated_config):
    with pytest.raises(ValueError, match="Invalid settings"):
        save_settings(_settings(dpi=10))
    assert not (isolated_config / "settings.json").exists()


def test_default_settings_are_valid():
    assert validate_settings(DEFAULT_SETTINGS) == []
    assert validate_settings(_settings(dpi=None)) == []


@pytest.mark.parametrize("overrides, fragment", [
    ({"print_sizes": [{"name": "4x6", "width": 4, "height": 6}], "selected_size": "4x6"}, "not a 8:10"),
    ({"print_sizes": []}, "non-empty"),
    ({"selected_size": "5x7"}, "not a configured print size"),
    ({"dpi": 5000}, "dpi must be between"),
    ({"dpi": True}, "dpi must be between"),
    ({"format": "GIF"}, "format must be one of"),
])
def test_validation_errors(overrides, fragment):
    errors = validate_settings(_settings(**overrides))
    assert any(fragment in e for e in errors), errors


def test_duplicate_size_names():
    sizes = [{"name": "8x10", "width": 8, "height": 10}, {"name": "8x10", "width": 16, "height": 20}]
    errors = validate_settings(_settings(print_sizes=sizes))
    assert any("duplicate" in e for e in errors)


def test_missing_keys():
    assert validate_settings({"dpi": 300}) == ["missing keys: format, print_sizes, selected_size"]
    assert validate_settings([]) == ["Settings data must be a dict"]


def test_target_for_selected_and_named_size():
    settings = _settings(dpi=200)
    assert target_for(settings) == TargetSpec(8, 10, 200)
    assert target_for(settings, "24x30").label == "24x30"


def test_target_for_defaults_dpi_when_unset():
    assert target_for(_settings(dpi=None)).dpi == 300


def test_target_for_unknown_size():
    with pytest.raises(KeyError):
        target_for(DEFAULT_SETTINGS, "5x7")
