"""Conversion jobs: one module applied to one batch of files."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence
from uuid import uuid4

from .errors import InvalidModuleReference, JobAlreadyStarted
from .files import FileRef
from .logging import job_log_context
from .modules.base import Module, maybe_await
from .monitoring import record_file_converted, record_job_created, record_job_finished, record_job_started
from .schemas import JobStatusView, JobView

if TYPE_CHECKING:  # pragma: no cover
    from .converter import FileConverter

logger = logging.getLogger(__name__)


class JobStep(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStep.DONE, JobStep.FAILED)


@dataclass
class JobStatus:
    step: JobStep = JobStep.PENDING
    files_converted: int = 0
    error: Optional[str] = None


StepCallback = Callable[[JobStatus], Optional[Awaitable[None]]]


def resolve_options(module: Module, raw_options: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Module defaults overlaid with every supplied key.

    A default only fills a key that is absent; an explicit ``None`` stays.
    """

    resolved = module.defaults()
    resolved.update(raw_options or {})
    return resolved


class Job:
    """A trackable run of a module over a batch of files.

    The job registers itself with its converter on construction. Its status
    only moves forward: ``pending`` -> ``running`` -> ``done`` or ``failed``.
    """

    def __init__(
        self,
        converter: "FileConverter",
        files: Sequence[FileRef],
        module: Module,
        raw_options: Mapping[str, Any] | None = None,
    ) -> None:
        if not isinstance(module, Module):
            raise InvalidModuleReference(module)

        self.id = str(uuid4())
        self.created_at = datetime.now(timezone.utc)
        self.module = module
        self.files: List[FileRef] = list(files)
        self.options = resolve_options(module, raw_options)
        self.status = JobStatus()
        self._converter = converter
        self._started = False

        converter._register_job(self)
        record_job_created(module.label)
        logger.info("Created job %s for module %s with %d files", self.id, module.label, len(self.files))

    def __repr__(self) -> str:
        return f"Job(id={self.id!r}, module={self.module.label!r}, step={self.status.step.value!r})"

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def is_terminal(self) -> bool:
        return self.status.step.is_terminal

    def status_snapshot(self) -> JobStatus:
        return replace(self.status)

    @property
    def returnable(self) -> JobView:
        status = self.status_snapshot()
        return JobView(
            id=self.id,
            status=JobStatusView(
                step=status.step.value,
                files_converted=status.files_converted,
                total_files=self.total_files,
                error=status.error,
            ),
            module=self.module.label,
            unlimited_downloads=not self._converter.clear_job_on_download,
            options=dict(self.options),
            created_at=self.created_at,
        )

    async def run(self, on_step: StepCallback | None = None) -> List[FileRef]:
        """Convert every file, reporting progress through ``on_step``.

        Raises :class:`JobAlreadyStarted` on a second call. A conversion
        failure leaves the job ``failed`` with the error message recorded and
        is re-raised to the caller.
        """

        if self._started:
            raise JobAlreadyStarted(self.id)
        self._started = True

        self.status.step = JobStep.RUNNING
        record_job_started()
        label = self.module.label

        async def _file_done(before: FileRef, after: FileRef) -> None:
            # Worker threads outlive cancellation; a finished job takes no more progress.
            if self.status.step.is_terminal:
                return
            self.status.files_converted += 1
            self._converter.statistics.record(before.size)
            record_file_converted(label, before.size / 1e6)
            logger.debug(
                "Job %s converted %s -> %s (%d/%d)",
                self.id,
                before.originalname,
                after.originalname,
                self.status.files_converted,
                self.total_files,
            )
            if on_step is not None:
                await maybe_await(on_step(self.status_snapshot()))

        with job_log_context(self.id, label):
            try:
                converted = await self.module.convert(self.files, self.options, _file_done)
            except Exception as exc:
                self.status.step = JobStep.FAILED
                self.status.error = str(exc)
                record_job_finished(label, JobStep.FAILED.value)
                logger.error("Job %s failed: %s", self.id, exc)
                raise

            self.files = converted
            self.status.step = JobStep.DONE
            record_job_finished(label, JobStep.DONE.value)
            logger.info("Job %s finished converting %d files", self.id, len(converted))
        return converted


__all__ = ["Job", "JobStatus", "JobStep", "resolve_options"]
