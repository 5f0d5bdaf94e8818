"""Conversion module package exports and convenience loaders."""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from .base import Module, ModuleConfig, ReturnMode
from .options import MISSING, Option, OptionConfig, OptionType
from .registry import (
	DEFAULT_MODULE_PATHS,
	ModuleRegistry,
	load_modules,
	read_module_file,
)

if TYPE_CHECKING:  # pragma: no cover - import guard for type checkers
	from file_converter.config import Settings


def _paths_from_settings(settings: "Settings" | None) -> List[str]:
	if not settings:
		return []

	explicit = [path for path in settings.module_paths if path]
	if explicit:
		return explicit

	if settings.module_paths_file:
		paths = read_module_file(settings.module_paths_file)
		if paths:
			return paths

	return []


def load_modules_from_settings(settings: "Settings" | None = None) -> List[Module]:
	"""Load modules named in settings or fall back to the bundled ones."""

	paths = _paths_from_settings(settings)
	if not paths:
		paths = list(DEFAULT_MODULE_PATHS)
	return load_modules(paths)


__all__ = [
	"DEFAULT_MODULE_PATHS",
	"MISSING",
	"Module",
	"ModuleConfig",
	"ModuleRegistry",
	"Option",
	"OptionConfig",
	"OptionType",
	"ReturnMode",
	"load_modules",
	"load_modules_from_settings",
]
