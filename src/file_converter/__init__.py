"""Pluggable file conversion modules and asynchronous conversion jobs."""

from __future__ import annotations

from .converter import FileConverter, Statistics
from .errors import (
	ConfigurationError,
	ContractViolationError,
	FileConverterError,
	RequestValidationError,
	TransformError,
)
from .files import FileRef, replace_file_extension
from .jobs import Job, JobStatus, JobStep
from .modules import Module, Option, OptionType, ReturnMode


__all__ = [
	"ConfigurationError",
	"ContractViolationError",
	"FileConverter",
	"FileConverterError",
	"FileRef",
	"Job",
	"JobStatus",
	"JobStep",
	"Module",
	"Option",
	"OptionType",
	"RequestValidationError",
	"ReturnMode",
	"Statistics",
	"TransformError",
	"replace_file_extension",
]
