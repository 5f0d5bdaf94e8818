"""Prometheus metrics for jobs and converted files."""

from __future__ import annotations

import logging

from prometheus_client import Counter, Gauge, start_http_server

logger = logging.getLogger(__name__)

JOBS_CREATED = Counter(
    "file_converter_jobs_created_total",
    "Total number of conversion jobs created",
    labelnames=("module",),
)
JOBS_FINISHED = Counter(
    "file_converter_jobs_finished_total",
    "Total number of conversion jobs that reached a terminal state",
    labelnames=("module", "status"),
)
FILES_CONVERTED = Counter(
    "file_converter_files_converted_total",
    "Total number of files converted",
    labelnames=("module",),
)
DATA_CONVERTED_MB = Counter(
    "file_converter_data_converted_megabytes_total",
    "Total size of converted input files in megabytes",
    labelnames=("module",),
)
RUNNING_JOBS = Gauge(
    "file_converter_running_jobs",
    "Number of conversion jobs currently running",
)

_metrics_started = False


def ensure_metrics_server(port: int) -> None:
    global _metrics_started
    if _metrics_started:
        return
    start_http_server(port)
    _metrics_started = True
    logger.info("Prometheus metrics server started on port %s", port)


def record_job_created(module: str) -> None:
    JOBS_CREATED.labels(module=module).inc()


def record_job_started() -> None:
    RUNNING_JOBS.inc()


def record_job_finished(module: str, status: str) -> None:
    RUNNING_JOBS.dec()
    JOBS_FINISHED.labels(module=module, status=status).inc()


def record_file_converted(module: str, size_mb: float) -> None:
    FILES_CONVERTED.labels(module=module).inc()
    DATA_CONVERTED_MB.labels(module=module).inc(size_mb)
