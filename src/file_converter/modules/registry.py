"""Module registry and loader for conversion capabilities."""

from __future__ import annotations

import logging
from importlib import import_module
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Sequence

import yaml

from ..errors import DuplicateModuleLabel, InvalidModuleConfig, UnknownModule
from .base import Module

logger = logging.getLogger(__name__)

DEFAULT_MODULE_PATHS: Sequence[str] = (
    "file_converter.modules.builtin.text_to_text",
    "file_converter.modules.builtin.jpg_to_base64",
    "file_converter.modules.builtin.image_to_base64",
)


class ModuleRegistry:
    """Label-unique, insertion-ordered set of modules.

    Populated once at startup; lookups afterwards are read-only.
    """

    def __init__(self, modules: Iterable[Module] = ()) -> None:
        self._registry: Dict[str, Module] = {}
        for module in modules:
            self.register(module)

    def register(self, module: Module) -> None:
        if not isinstance(module, Module):
            raise InvalidModuleConfig(
                "modules", f"expected a Module instance, got {type(module).__name__}"
            )
        if module.label in self._registry:
            raise DuplicateModuleLabel(module.label)
        self._registry[module.label] = module
        logger.info("Registered conversion module %s (%s -> %s)", module.label, ", ".join(module.from_types), module.to)

    def get(self, label: str) -> Module:
        if label not in self._registry:
            raise UnknownModule(label)
        return self._registry[label]

    def find(self, label: str) -> Module | None:
        return self._registry.get(label)

    def list(self) -> List[Module]:
        return list(self._registry.values())

    def labels(self) -> List[str]:
        return list(self._registry)

    def __contains__(self, label: object) -> bool:
        return label in self._registry

    def __iter__(self) -> Iterator[Module]:
        return iter(list(self._registry.values()))

    def __len__(self) -> int:
        return len(self._registry)


def load_modules(module_paths: Iterable[str] | None = None) -> List[Module]:
    """Import module paths and collect the ``MODULES`` each one exposes."""

    paths = list(module_paths or DEFAULT_MODULE_PATHS)
    loaded: List[Module] = []
    for path in paths:
        imported = import_module(path)
        exported = getattr(imported, "MODULES", None)
        if exported is None:
            raise InvalidModuleConfig("module_paths", f"'{path}' does not define MODULES")
        loaded.extend(exported)
    return loaded


def read_module_file(path: str | Path) -> List[str]:
    """Module paths listed under ``modules:``; a missing file lists none."""

    source = Path(path)
    if not source.is_file():
        return []

    loaded = yaml.safe_load(source.read_text(encoding="utf-8"))
    if not isinstance(loaded, dict):
        return []
    return [str(entry) for entry in loaded.get("modules") or []]


def write_module_file(path: str | Path, modules: Iterable[str]) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    unique: List[str] = []
    for entry in modules:
        if entry and str(entry) not in unique:
            unique.append(str(entry))
    target.write_text(yaml.safe_dump({"modules": unique}, sort_keys=False), encoding="utf-8")


__all__ = [
    "DEFAULT_MODULE_PATHS",
    "ModuleRegistry",
    "load_modules",
    "read_module_file",
    "write_module_file",
]
