# tests/core/test_app.py
from unittest.mock import patch

import pytest

from coverage_enhancer.app import build_parser, main, settings_from_args


def test_help_exits_cleanly(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--help"])
    assert exc_info.value.code == 0
    assert "--no-matcha" in capsys.readouterr().out


def test_defaults_enable_every_stage():
    settings = settings_from_args(build_parser().parse_args([]))
    assert settings.globs == ["**/*.html"]
    assert settings.write and settings.theme and settings.highlight and settings.badge and settings.summary


def test_flags_map_to_settings():
    args = build_parser().parse_args([
        "-r", "out", "-e", "vendor", "--exclude", "tmp/**",
        "-s", "-M", "-H", "-W", "-B", "-c", "2", "--no-progress", "pkg/**/*.html",
    ])
    settings = settings_from_args(args)
    assert str(settings.root) == "out"
    assert settings.excludes == ["vendor", "tmp/**"]
    assert settings.globs == ["pkg/**/*.html"]
    assert not (settings.summary or settings.theme or settings.highlight or settings.write or settings.badge)
    assert settings.concurrency == 2
    assert settings.show_progress is False


def test_missing_root_exits_with_error(tmp_path):
    assert main(["--root", str(tmp_path / "missing"), "--no-progress", "-l", "error"]) == 1


def test_full_run_without_network(coverage_root):
    with patch("coverage_enhancer.controllers.enhance_controller.ShieldsBadgeService") as service_class:
        code = main(["--root", str(coverage_root), "--no-badge", "--no-progress", "-l", "warn"])
    assert code == 0
    service_class.assert_not_called()
    assert "global-summary" in (coverage_root / "index.html").read_text(encoding="utf-8")
