"""Tests for settings loading."""

from __future__ import annotations

import pytest

from file_converter.config import Settings, get_settings, read_config_file, reload_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    reload_settings()
    yield
    reload_settings()


def test_settings_defaults():
    settings = Settings()
    assert settings.clear_job_on_download is True
    assert settings.file_size_limit_bytes is None
    assert settings.monitoring.enabled is False


def test_settings_from_yaml_with_overrides(tmp_path):
    config_file = tmp_path / "settings.yaml"
    config_file.write_text(
        "service_name: converter\n"
        "clear_job_on_download: false\n"
        "file_size_limit_bytes: 1024\n"
        "logging:\n  level: DEBUG\n",
        encoding="utf-8",
    )

    settings = Settings.load(config_file, service_name="override")

    assert settings.service_name == "override"
    assert settings.clear_job_on_download is False
    assert settings.file_size_limit_bytes == 1024
    assert settings.logging.level == "DEBUG"


def test_missing_config_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        Settings.load(tmp_path / "absent.yaml")


def test_non_mapping_yaml_rejected(tmp_path):
    config_file = tmp_path / "settings.yaml"
    config_file.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_config_file(config_file)


def test_get_settings_reads_env_file(monkeypatch, tmp_path):
    config_file = tmp_path / "settings.yaml"
    config_file.write_text("environment: staging\n", encoding="utf-8")
    monkeypatch.setenv("FILE_CONVERTER_CONFIG_FILE", str(config_file))

    settings = get_settings()

    assert settings.environment == "staging"
    assert get_settings() is settings


def test_env_overrides_nested_settings(monkeypatch):
    monkeypatch.delenv("FILE_CONVERTER_CONFIG_FILE", raising=False)
    monkeypatch.setenv("FILE_CONVERTER_MONITORING__PROMETHEUS_PORT", "9400")
    monkeypatch.setenv("FILE_CONVERTER_FILE_SIZE_LIMIT_BYTES", "2048")

    settings = Settings()

    assert settings.monitoring.prometheus_port == 9400
    assert settings.file_size_limit_bytes == 2048
