"""Settings for the converter, read from YAML and ``FILE_CONVERTER_*`` env vars."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILE_ENV = "FILE_CONVERTER_CONFIG_FILE"
DEFAULT_CONFIG_FILE = Path("config") / "settings.yaml"


class LoggingSettings(BaseModel):
    level: str = "INFO"
    log_dir: Optional[str] = "./logs"
    max_log_file_size_mb: int = Field(50, ge=1)
    backup_count: int = Field(5, ge=0)


class MonitoringSettings(BaseModel):
    enabled: bool = False
    prometheus_port: int = Field(9091, ge=1, le=65535)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FILE_CONVERTER_", env_nested_delimiter="__", extra="ignore"
    )

    service_name: str = "file-converter"
    environment: str = "dev"

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    # Job retention and upload limits.
    clear_job_on_download: bool = True
    file_size_limit_bytes: Optional[int] = Field(None, ge=0)

    # Dotted import paths exposing ``MODULES``; the file is used when the list is empty.
    module_paths: List[str] = Field(default_factory=list)
    module_paths_file: Optional[str] = "./config/modules.yaml"

    @classmethod
    def load(cls, config_file: str | Path | None = None, **overrides: Any) -> "Settings":
        """Build settings from an optional YAML file; keyword overrides win."""

        data = read_config_file(config_file) if config_file else {}
        data.update(overrides)
        return cls(**data)


def read_config_file(path: str | Path) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Settings file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {config_path} must contain a mapping")
    return data


@lru_cache
def get_settings() -> Settings:
    explicit = os.getenv(CONFIG_FILE_ENV)
    if explicit:
        return Settings.load(explicit)

    fallback = Path.cwd() / DEFAULT_CONFIG_FILE
    return Settings.load(fallback if fallback.is_file() else None)


def reload_settings() -> None:
    get_settings.cache_clear()


__all__ = [
    "LoggingSettings",
    "MonitoringSettings",
    "Settings",
    "get_settings",
    "read_config_file",
    "reload_settings",
]
