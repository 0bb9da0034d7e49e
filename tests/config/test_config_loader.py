# -*- coding: utf-8 -*-
import argparse
from pathlib import Path

import pytest

from config.config_loader import _deep_update, load_app_settings
from config.config_models import AppSettings


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in (
        "GTFS_EXTRACT_LOG_LEVEL",
        "GTFS_EXTRACT_CLIP_TO_BBOX",
        "GTFS_EXTRACT_READER__CHUNK_SIZE",
        "GTFS_EXTRACT_TEMP_DIR",
    ):
        monkeypatch.delenv(name, raising=False)


def _cli(**values):
    defaults = {
        "log_level": None,
        "clip_to_bbox": None,
        "copy_extra_files": None,
        "config": "config.yaml",
    }
    defaults.update(values)
    return argparse.Namespace(**defaults)


def test_deep_update_merges_nested_dicts():
    source = {"reader": {"chunk_size": 10, "encoding": "utf-8"}, "log_level": "INFO"}
    result = _deep_update(source, {"reader": {"chunk_size": 5}, "log_level": None})
    assert result == {"reader": {"chunk_size": 5, "encoding": "utf-8"}, "log_level": "INFO"}


def test_defaults_without_config_file(tmp_path):
    settings = load_app_settings(None, tmp_path / "missing.yaml")
    assert isinstance(settings, AppSettings)
    assert settings.log_level == "INFO"
    assert settings.clip_to_bbox is True
    assert settings.reader.chunk_size == 100_000
    assert settings.writer.copy_extra_files is False


def test_yaml_overrides_defaults(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "log_level: WARNING\n"
        "temp_dir: /var/tmp/extract\n"
        "reader:\n"
        "  chunk_size: 500\n"
    )
    settings = load_app_settings(None, config_file)
    assert settings.log_level == "WARNING"
    assert settings.temp_dir == Path("/var/tmp/extract")
    assert settings.reader.chunk_size == 500
    assert settings.reader.validate_rows is True


def test_environment_overrides_yaml(tmp_path, monkeypatch):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("log_level: WARNING\nreader:\n  chunk_size: 500\n")
    monkeypatch.setenv("GTFS_EXTRACT_LOG_LEVEL", "ERROR")
    monkeypatch.setenv("GTFS_EXTRACT_READER__CHUNK_SIZE", "42")
    settings = load_app_settings(None, config_file)
    assert settings.log_level == "ERROR"
    assert settings.reader.chunk_size == 42


def test_cli_overrides_everything(tmp_path, monkeypatch):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("clip_to_bbox: true\n")
    monkeypatch.setenv("GTFS_EXTRACT_LOG_LEVEL", "ERROR")
    settings = load_app_settings(
        _cli(log_level="DEBUG", clip_to_bbox=False, copy_extra_files=True),
        config_file,
    )
    assert settings.log_level == "DEBUG"
    assert settings.clip_to_bbox is False
    assert settings.writer.copy_extra_files is True


def test_malformed_yaml_is_ignored(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("reader: [unclosed\n")
    settings = load_app_settings(None, config_file)
    assert settings.reader.chunk_size == 100_000


def test_non_mapping_yaml_is_ignored(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("- just\n- a list\n")
    assert load_app_settings(None, config_file).log_level == "INFO"


def test_invalid_values_exit(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("reader:\n  chunk_size: -1\n")
    with pytest.raises(SystemExit):
        load_app_settings(None, config_file)
