"""Shared pytest fixtures for the file converter tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict

import pytest

from file_converter.config import LoggingSettings, MonitoringSettings, Settings
from file_converter.converter import FileConverter
from file_converter.files import FileRef
from file_converter.modules import Module, ReturnMode


@pytest.fixture()
def test_settings(tmp_path) -> Settings:
    return Settings(
        service_name="file-converter-test",
        environment="test",
        logging=LoggingSettings(level="DEBUG", log_dir=str(tmp_path / "logs")),
        monitoring=MonitoringSettings(enabled=False),
        clear_job_on_download=True,
        file_size_limit_bytes=10_000_000,
        module_paths=[],
        module_paths_file=None,
    )


@pytest.fixture()
def make_file(tmp_path) -> Callable[..., FileRef]:
    """Write a stored upload and return its file record."""

    counter = {"value": 0}

    def _make(originalname: str = "a.png", mimetype: str = "image/png", content: bytes = b"payload") -> FileRef:
        counter["value"] += 1
        stored = tmp_path / "uploads" / f"upload{counter['value']}"
        stored.parent.mkdir(parents=True, exist_ok=True)
        stored.write_bytes(content)
        return FileRef(
            originalname=originalname,
            mimetype=mimetype,
            path=str(stored),
            size=len(content),
        )

    return _make


def _noop(file: FileRef, options: Dict[str, Any]) -> None:
    return None


@pytest.fixture()
def png_to_jpeg() -> Module:
    return Module(
        label="PngToJpeg",
        description="Retag PNG uploads as JPEG.",
        from_="image/png",
        to="image/jpeg",
        options=[
            {"label": "width", "type": "number"},
            {"label": "size", "type": "number", "default": 10},
            {"label": "grayscale", "type": "boolean", "default": False},
        ],
        transform=_noop,
    )


@pytest.fixture()
def replace_to_text() -> Module:
    async def _transform(file: FileRef, options: Dict[str, Any]) -> Dict[str, Any]:
        target = Path(file.path).with_suffix(".txt")
        target.write_text("converted", encoding="utf-8")
        return {
            "fieldname": "files",
            "originalname": "converted.txt",
            "encoding": "utf-8",
            "mimetype": "text/plain",
            "destination": str(target.parent),
            "filename": target.name,
            "path": str(target),
            "size": target.stat().st_size,
        }

    return Module(
        label="PngToText",
        from_=["image/png", "image/jpeg"],
        to="text/plain",
        return_mode=ReturnMode.REPLACE,
        transform=_transform,
    )


@pytest.fixture()
def converter(test_settings, png_to_jpeg, replace_to_text) -> FileConverter:
    return FileConverter([png_to_jpeg, replace_to_text], settings=test_settings)
