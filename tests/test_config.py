import json

import pytest

from rpyflow.data.config import AnalysisConfig, LayoutConfig, config_from_mapping, load_config
from rpyflow.data.errors import ConfigError


def test_load_config_defaults_when_file_missing(tmp_path) -> None:
    config = load_config(tmp_path / "missing.json")
    assert config == AnalysisConfig()
    assert load_config(None).entry_labels == ("start",)
    assert config.redeclaration_policy == "first"
    assert config.layout == LayoutConfig()


def test_load_config_reads_overrides(tmp_path) -> None:
    path = tmp_path / "rpyflow.json"
    path.write_text(
        json.dumps(
            {
                "entry_labels": ["prologue"],
                "redeclaration_policy": "last",
                "max_routes": 10,
                "layout": {"x_gap": 90, "overlap_passes": 5},
                "unknown_key": True,
            }
        ),
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.entry_labels == ("prologue",)
    assert config.redeclaration_policy == "last"
    assert config.max_routes == 10
    assert config.layout.x_gap == 90.0
    assert config.layout.overlap_passes == 5
    assert config.layout.y_gap == LayoutConfig().y_gap


def test_load_config_rejects_invalid_json(tmp_path) -> None:
    path = tmp_path / "rpyflow.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


@pytest.mark.parametrize(
    "raw",
    [
        {"entry_labels": "start"},
        {"max_routes": "many"},
        {"max_routes": True},
        {"max_routes": 0},
        {"redeclaration_policy": "newest"},
        {"layout": []},
        {"layout": {"x_gap": "wide"}},
    ],
)
def test_config_from_mapping_rejects_bad_values(raw) -> None:
    with pytest.raises(ConfigError):
        config_from_mapping(raw)


def test_excluded_files_match_by_file_name() -> None:
    config = AnalysisConfig()
    assert config.is_excluded("game/debug_placeholders.rpy")
    assert config.is_excluded("debug_placeholders.rpy")
    assert not config.is_excluded("game/script.rpy")
    assert not config.is_excluded("game/not_debug_placeholders.rpy")
