"""Exception hierarchy and error code registry for consistent reporting.

The core never talks to a transport, so every failure is a typed exception
carrying a ``code``. :data:`ERRORS` maps each code onto a numeric status and
an HTTP status so a host transport can translate failures without knowing
the hierarchy.
"""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ErrorCodeSpec:
    code: str
    message: str
    status: int
    http_status: int


class ErrorRegistry:
    """Code -> :class:`ErrorCodeSpec` table; each code may be registered once."""

    def __init__(self) -> None:
        self._specs: Dict[str, ErrorCodeSpec] = {}

    def __contains__(self, code: object) -> bool:
        return code in self._specs

    def register(self, spec: ErrorCodeSpec) -> None:
        if spec.code in self._specs:
            raise ValueError(f"duplicate error code {spec.code!r}")
        self._specs[spec.code] = spec

    def get(self, code: str) -> ErrorCodeSpec:
        try:
            return self._specs[code]
        except KeyError:
            raise KeyError(f"error code {code!r} is not registered") from None

    def to_dict(self) -> Dict[str, ErrorCodeSpec]:
        return self._specs.copy()


ERRORS = ErrorRegistry()


def register_default_errors() -> None:
    for code, message, status, http_status in (
        ("ERR_INTERNAL", "Unexpected converter failure", 5000, HTTPStatus.INTERNAL_SERVER_ERROR),
        ("ERR_MODULE_CONFIG", "Invalid conversion module configuration", 5001, HTTPStatus.INTERNAL_SERVER_ERROR),
        ("ERR_MODULE_DUPLICATE", "A module with this label is already registered", 5002, HTTPStatus.INTERNAL_SERVER_ERROR),
        ("ERR_MODULE_UNKNOWN", "No conversion module exists with this label", 4001, HTTPStatus.BAD_REQUEST),
        ("ERR_MODULE_REFERENCE", "Job module reference is not a conversion module", 4002, HTTPStatus.BAD_REQUEST),
        ("ERR_OPTION_UNKNOWN", "Option is not declared by the module", 4003, HTTPStatus.BAD_REQUEST),
        ("ERR_OPTION_INVALID", "Option value is invalid", 4004, HTTPStatus.BAD_REQUEST),
        ("ERR_FILES_INVALID", "Invalid file list", 4005, HTTPStatus.BAD_REQUEST),
        ("ERR_MIMETYPE_UNSUPPORTED", "Module does not convert from this mimetype", 4006, HTTPStatus.BAD_REQUEST),
        ("ERR_FILE_TOO_LARGE", "File exceeds the configured size limit", 4007, HTTPStatus.REQUEST_ENTITY_TOO_LARGE),
        ("ERR_JOB_NOT_FOUND", "No job found with this ID", 4041, HTTPStatus.NOT_FOUND),
        ("ERR_JOB_NOT_TERMINAL", "Job has not finished yet", 4091, HTTPStatus.CONFLICT),
        ("ERR_JOB_STARTED", "Job has already been started", 4092, HTTPStatus.CONFLICT),
        ("ERR_MODULE_CONTRACT", "Module output violates its declared contract", 5003, HTTPStatus.INTERNAL_SERVER_ERROR),
        ("ERR_TRANSFORM_FAILED", "Module transform failed", 5004, HTTPStatus.INTERNAL_SERVER_ERROR),
    ):
        ERRORS.register(
            ErrorCodeSpec(code=code, message=message, status=status, http_status=int(http_status))
        )


register_default_errors()


class FileConverterError(Exception):
    code = "ERR_INTERNAL"

    @property
    def spec(self) -> ErrorCodeSpec:
        return ERRORS.get(self.code)


# Configuration errors: raised while building modules/options, fatal at startup.


class ConfigurationError(FileConverterError):
    code = "ERR_MODULE_CONFIG"


class InvalidModuleConfig(ConfigurationError):
    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid module config field '{field}': {reason}")


class InvalidOptionConfig(InvalidModuleConfig):
    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"options.{field}" if field else "options", reason)


class DuplicateModuleLabel(ConfigurationError):
    code = "ERR_MODULE_DUPLICATE"

    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"A module has already been loaded with the label '{label}'")


# Request validation errors: recoverable, the job is never created.


class RequestValidationError(FileConverterError):
    code = "ERR_FILES_INVALID"


class UnknownModule(RequestValidationError):
    code = "ERR_MODULE_UNKNOWN"

    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"No file conversion module exists with label '{label}'")


class InvalidModuleReference(RequestValidationError):
    code = "ERR_MODULE_REFERENCE"

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(f"Expected a Module instance, got {type(value).__name__}")


class UnknownOption(RequestValidationError):
    code = "ERR_OPTION_UNKNOWN"

    def __init__(self, label: str, module: str) -> None:
        self.label = label
        self.module = module
        super().__init__(f"Module '{module}' does not declare an option named '{label}'")


class InvalidOptionValue(RequestValidationError):
    code = "ERR_OPTION_INVALID"

    def __init__(self, label: str, reason: str) -> None:
        self.label = label
        self.reason = reason
        super().__init__(f"Invalid value for option '{label}': {reason}")


class InvalidFileList(RequestValidationError):
    code = "ERR_FILES_INVALID"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid file list: {reason}")


class UnsupportedMimeType(RequestValidationError):
    code = "ERR_MIMETYPE_UNSUPPORTED"

    def __init__(self, mimetype: str, module: str, supported: tuple[str, ...]) -> None:
        self.mimetype = mimetype
        self.module = module
        self.supported = supported
        super().__init__(
            f"Module '{module}' does not support mimetype '{mimetype}'. "
            f"Supported mimetypes: {', '.join(supported)}"
        )


class FileTooLarge(RequestValidationError):
    code = "ERR_FILE_TOO_LARGE"

    def __init__(self, filename: str, size: int, limit: int) -> None:
        self.filename = filename
        self.size = size
        self.limit = limit
        super().__init__(f"File '{filename}' is {size} bytes; maximum file size is {limit} bytes")


# Job state errors.


class JobStateError(FileConverterError):
    pass


class JobNotFound(JobStateError):
    code = "ERR_JOB_NOT_FOUND"

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"No job found with ID '{job_id}'")


class JobNotTerminal(JobStateError):
    code = "ERR_JOB_NOT_TERMINAL"

    def __init__(self, job_id: str, step: str) -> None:
        self.job_id = job_id
        self.step = step
        super().__init__(f"Job '{job_id}' is still {step}; only finished jobs can be deleted")


class JobAlreadyStarted(JobStateError):
    code = "ERR_JOB_STARTED"

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Job '{job_id}' has already been started")


# Conversion-time errors: surfaced as the job's run failure.


class ContractViolationError(FileConverterError):
    code = "ERR_MODULE_CONTRACT"


class ModuleContractViolation(ContractViolationError):
    def __init__(self, module: str, reason: str) -> None:
        self.module = module
        self.reason = reason
        super().__init__(f"Module '{module}' violated its contract: {reason}")


class TransformError(FileConverterError):
    code = "ERR_TRANSFORM_FAILED"

    def __init__(self, module: str, filename: str, cause: BaseException) -> None:
        self.module = module
        self.filename = filename
        self.cause = cause
        super().__init__(f"Module '{module}' failed to convert '{filename}': {cause}")


def error_payload(exc: BaseException, *, detail: Optional[str] = None) -> Dict[str, Any]:
    """Structured failure body a transport can return as-is."""

    code = exc.code if isinstance(exc, FileConverterError) else "ERR_INTERNAL"
    spec = ERRORS.get(code)
    message = detail or (str(exc) if isinstance(exc, FileConverterError) else spec.message)
    return {
        "status": "failure",
        "error_code": spec.code,
        "error_status": spec.status,
        "http_status": spec.http_status,
        "message": message,
    }
