# tests/core/test_config_management.py
import json
from pathlib import Path

import pytest

from coverage_enhancer.core.managers.config_manager import ConfigManager
from coverage_enhancer.core.utils.path_utils import PathUtils
from coverage_enhancer.model import EnhanceSettings

# A small, predictable configuration for the tests
MOCK_SETTINGS_CONTENT = {
    "debug": {
        "level": "WARNING"
    },
    "enhancer": {
        "root": "reports",
        "concurrency": 3
    },
    "badge": {
        "timeout": 4
    }
}


@pytest.fixture
def config_env(tmp_path, monkeypatch):
    """
    Points the ConfigManager singleton at a temporary settings.json and
    restores the packaged settings afterwards.
    """
    settings_file = tmp_path / "settings.json"
    settings_file.write_text(json.dumps(MOCK_SETTINGS_CONTENT))
    monkeypatch.setattr(PathUtils, "get_settings_file", lambda: settings_file)

    manager = ConfigManager()
    manager.reset()
    yield manager

    monkeypatch.undo()
    manager.reset()


def test_packaged_settings_exist():
    assert PathUtils.get_settings_file().is_file()


def test_config_manager_load(config_env):
    assert config_env.get_nested("debug.level") == "WARNING"
    assert config_env.get_nested("enhancer.concurrency") == 3
    assert config_env.get_nested("enhancer") == {"root": "reports", "concurrency": 3}


def test_config_manager_get_nested(config_env):
    assert config_env.get_nested("badge.timeout") == 4
    assert config_env.get_nested("non.existent.key", "default") == "default"
    # Walking past a leaf value never raises
    assert config_env.get_nested("badge.timeout.seconds", 1) == 1


def test_config_manager_reset_rereads_the_file(config_env, tmp_path):
    changed = dict(MOCK_SETTINGS_CONTENT, debug={"level": "DEBUG"})
    (tmp_path / "settings.json").write_text(json.dumps(changed))
    assert config_env.get_nested("debug.level") == "WARNING"

    config_env.reset()
    assert config_env.get_nested("debug.level") == "DEBUG"


def test_config_manager_is_a_singleton(config_env):
    assert ConfigManager() is config_env


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_unusable_settings_file_gives_empty_config(config_env, tmp_path, content):
    (tmp_path / "settings.json").write_text(content)
    config_env.reset()
    assert config_env.get_nested("debug.level", "INFO") == "INFO"


def test_missing_settings_file_gives_empty_config(tmp_path, monkeypatch):
    monkeypatch.setattr(PathUtils, "get_settings_file", lambda: tmp_path / "nope.json")
    manager = ConfigManager()
    manager.reset()
    try:
        assert manager.get_nested("debug", {}) == {}
        assert manager.get_nested("badge.timeout") is None
    finally:
        monkeypatch.undo()
        manager.reset()


def test_settings_from_config_and_overrides(config_env):
    settings = EnhanceSettings.from_config(config_env, badge=False, concurrency=None)
    assert settings.root == Path("reports")
    assert settings.concurrency == 3
    assert settings.badge_timeout == 4
    assert settings.badge is False
    # Values missing from the file fall back to the defaults
    assert settings.globs == ["**/*.html"]
    assert settings.theme_assets == ["@root", "@syntax-highlighting", "@istanbul-coverage"]


def test_stage_toggles():
    assert EnhanceSettings().writes_documents
    no_write = EnhanceSettings(write=False)
    assert not no_write.theme_enabled and not no_write.highlight_enabled and not no_write.writes_documents
    assert not EnhanceSettings(theme=False, highlight=False).writes_documents
