"""The converter context: module registry, job set and statistics."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .config import Settings, get_settings
from .errors import (
    FileTooLarge,
    InvalidFileList,
    JobNotFound,
    JobNotTerminal,
    UnknownOption,
    UnsupportedMimeType,
)
from .files import FileRef
from .jobs import Job, StepCallback
from .mime import DEFAULT_MIME_LOOKUP, DefaultMimeLookup, MimeLookup, canonical_mimetype
from .modules import Module, ModuleRegistry, load_modules_from_settings
from .monitoring import ensure_metrics_server
from .schemas import JobView, MimeTypeInfo, ModuleView, StatisticsView

logger = logging.getLogger(__name__)


@dataclass
class Statistics:
    """Process-wide conversion counters; only ever increase."""

    initialized_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    files_converted: int = 0
    data_converted_mb: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, size_bytes: int | float) -> None:
        with self._lock:
            self.files_converted += 1
            self.data_converted_mb += size_bytes / 1e6

    def snapshot(self) -> StatisticsView:
        with self._lock:
            return StatisticsView(
                initialized_at=self.initialized_at,
                files_converted=self.files_converted,
                data_converted_mb=self.data_converted_mb,
            )


def normalize_files(files: Any) -> List[FileRef]:
    """Copy an upload batch into ``FileRef`` records with canonical mimetypes.

    Records passed in are never modified; the job works on the copies.
    """

    if isinstance(files, (str, bytes, Mapping)) or not isinstance(files, Sequence):
        raise InvalidFileList("expected a sequence of files")
    if not files:
        raise InvalidFileList("no files provided")

    normalized: List[FileRef] = []
    for index, entry in enumerate(files):
        if isinstance(entry, FileRef):
            file = entry.snapshot()
        elif isinstance(entry, Mapping):
            try:
                file = FileRef.from_mapping(entry)
            except TypeError as exc:
                raise InvalidFileList(f"file {index}: {exc}") from exc
        else:
            raise InvalidFileList(f"file {index} is a {type(entry).__name__}, expected a file record")
        file.mimetype = canonical_mimetype(file.mimetype)
        normalized.append(file)
    return normalized


class FileConverter:
    """Host object owning the registered modules and every job.

    Modules are registered at startup and never change afterwards. Jobs are
    created, listed and removed only through this object; the job map is
    guarded by a lock so status polling can run alongside submissions.
    """

    def __init__(
        self,
        modules: Iterable[Module] = (),
        *,
        settings: Settings | None = None,
        mime_lookup: MimeLookup | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.mime_lookup = mime_lookup or DEFAULT_MIME_LOOKUP
        self.clear_job_on_download = self.settings.clear_job_on_download
        self.file_size_limit = self.settings.file_size_limit_bytes
        self.modules = ModuleRegistry()
        self.statistics = Statistics()
        self._jobs: Dict[str, Job] = {}
        self._jobs_lock = threading.Lock()

        for module in modules:
            self.register_module(module)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> "FileConverter":
        settings = settings or get_settings()
        if settings.monitoring.enabled:
            ensure_metrics_server(settings.monitoring.prometheus_port)
        return cls(load_modules_from_settings(settings), settings=settings, **kwargs)

    # Modules

    def register_module(self, module: Module) -> Module:
        self.modules.register(module)
        return module

    def find_module(self, label: str) -> Module | None:
        return self.modules.find(label)

    def get_module(self, label: str) -> Module:
        return self.modules.get(label)

    def list_modules(self) -> List[ModuleView]:
        return [ModuleView.model_validate(module.describe()) for module in self.modules]

    # Jobs

    def _register_job(self, job: Job) -> None:
        with self._jobs_lock:
            self._jobs[job.id] = job

    def _validate_files(self, files: Sequence[FileRef], module: Module) -> None:
        for file in files:
            if not module.converts_from(file.mimetype):
                raise UnsupportedMimeType(file.mimetype, module.label, module.from_types)
            if self.file_size_limit is not None and file.size > self.file_size_limit:
                raise FileTooLarge(file.originalname, file.size, self.file_size_limit)

    def _validate_options(self, module: Module, raw_options: Mapping[str, Any]) -> None:
        for label, value in raw_options.items():
            option = module.option(label)
            if option is None:
                raise UnknownOption(label, module.label)
            option.validate(value)
        for option in module.options:
            if option.label not in raw_options:
                option.validate()

    def create_job(
        self,
        files: Sequence[FileRef | Mapping[str, Any]],
        module: Module,
        raw_options: Mapping[str, Any] | None = None,
    ) -> Job:
        """Validate a request against ``module`` and register a pending job.

        Nothing is registered when validation fails.
        """

        raw_options = dict(raw_options or {})
        normalized = normalize_files(files)
        if isinstance(module, Module):
            self._validate_files(normalized, module)
            self._validate_options(module, raw_options)
        return Job(self, normalized, module, raw_options)

    def submit_job(
        self,
        files: Sequence[FileRef | Mapping[str, Any]],
        module_label: str,
        options: Mapping[str, Any] | None = None,
    ) -> str:
        return self.create_job(files, self.get_module(module_label), options).id

    async def start_job(self, job_id: str, on_progress: StepCallback | None = None) -> JobView:
        job = self.get_job(job_id)
        await job.run(on_progress)
        return job.returnable

    def find_job(self, job_id: str) -> Job | None:
        with self._jobs_lock:
            return self._jobs.get(job_id)

    def get_job(self, job_id: str) -> Job:
        job = self.find_job(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    def get_job_status(self, job_id: str) -> JobView:
        return self.get_job(job_id).returnable

    def list_jobs(self) -> List[JobView]:
        with self._jobs_lock:
            jobs = list(self._jobs.values())
        return [job.returnable for job in jobs]

    def delete_job(self, job_id: str) -> Job:
        """Forget a finished job; its stored files are left to the caller."""

        with self._jobs_lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFound(job_id)
            if not job.is_terminal:
                raise JobNotTerminal(job_id, job.status.step.value)
            del self._jobs[job_id]
        logger.info("Deleted job %s", job_id)
        return job

    def delete_all_terminal_jobs(self) -> int:
        with self._jobs_lock:
            finished = [job_id for job_id, job in self._jobs.items() if job.is_terminal]
            for job_id in finished:
                del self._jobs[job_id]
        if finished:
            logger.info("Deleted %d finished jobs", len(finished))
        return len(finished)

    def mark_downloaded(self, job_id: str) -> bool:
        """Apply the post-download policy; True when the job was removed."""

        job = self.get_job(job_id)
        if not self.clear_job_on_download or not job.is_terminal:
            return False
        self.delete_job(job_id)
        return True

    # Statistics and mimetypes

    def get_statistics(self) -> StatisticsView:
        return self.statistics.snapshot()

    def mime_types(self, kind: Optional[str] = None) -> List[str]:
        lookup = self.mime_lookup if isinstance(self.mime_lookup, DefaultMimeLookup) else DEFAULT_MIME_LOOKUP
        return lookup.all_types(kind)

    def describe_mime_type(self, value: str) -> MimeTypeInfo:
        lookup = self.mime_lookup if isinstance(self.mime_lookup, DefaultMimeLookup) else DEFAULT_MIME_LOOKUP
        return MimeTypeInfo(**lookup.describe(value))


__all__ = ["FileConverter", "Statistics", "normalize_files"]
