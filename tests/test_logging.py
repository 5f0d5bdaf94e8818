"""Tests for logging configuration helpers."""

from __future__ import annotations

import logging

import structlog

from file_converter.config import LoggingSettings
from file_converter.logging import configure_logging, job_log_context


def test_configure_logging_writes_rotating_file(tmp_path):
    log_dir = tmp_path / "logs"
    configure_logging(LoggingSettings(level="INFO", log_dir=str(log_dir)), force=True)

    logging.getLogger("file_converter.test").info("hello %s", "world")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "hello world" in (log_dir / "file_converter.log").read_text(encoding="utf-8")


def test_job_log_context_binds_and_clears():
    with job_log_context("job-1", "TextToText"):
        bound = structlog.contextvars.get_contextvars()
        assert bound["job_id"] == "job-1"
        assert bound["module"] == "TextToText"

    assert "job_id" not in structlog.contextvars.get_contextvars()
