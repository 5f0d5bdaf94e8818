#!/usr/bin/env python3
"""Maintain the YAML list of conversion module paths loaded at startup.

Examples::

    python scripts/manage_modules.py list
    python scripts/manage_modules.py register my_package.converters.webp
    python scripts/manage_modules.py describe
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, Dict, List, Sequence

import yaml

from file_converter.errors import ConfigurationError
from file_converter.modules.registry import (
    DEFAULT_MODULE_PATHS,
    ModuleRegistry,
    load_modules,
    read_module_file,
    write_module_file,
)

MODULE_FILE = Path(__file__).resolve().parents[1] / "config" / "modules.yaml"


def _module_file(args: argparse.Namespace) -> Path:
    return Path(args.file).resolve()


def _verified_registry(paths: Sequence[str]) -> ModuleRegistry:
    """Import every path and register its modules; exits on the first problem."""

    try:
        return ModuleRegistry(load_modules(paths))
    except ImportError as exc:
        sys.exit(f"Cannot import module path: {exc}")
    except ConfigurationError as exc:
        sys.exit(f"Module configuration rejected: {exc}")


def cmd_list(args: argparse.Namespace) -> int:
    paths = read_module_file(_module_file(args))
    if paths:
        print("\n".join(paths))
    else:
        print("No module paths configured; the bundled modules will be loaded.")
    return 0


def cmd_register(args: argparse.Namespace) -> int:
    target = _module_file(args)
    new_path = args.module.strip()
    if not new_path:
        sys.exit("Module path cannot be empty.")

    current: List[str] = read_module_file(target) if target.exists() else list(DEFAULT_MODULE_PATHS)
    if new_path in current:
        print(f"{new_path} is already registered.")
        return 0

    updated = [*current, new_path]
    if not args.no_verify:
        _verified_registry(updated)
    write_module_file(target, updated)
    print(f"Registered {new_path} in {target}.")
    return 0


def cmd_unregister(args: argparse.Namespace) -> int:
    target = _module_file(args)
    current = read_module_file(target)
    old_path = args.module.strip()
    if old_path not in current:
        print(f"{old_path} is not registered in {target}.")
        return 0

    write_module_file(target, [path for path in current if path != old_path])
    print(f"Removed {old_path} from {target}.")
    return 0


def cmd_reset(args: argparse.Namespace) -> int:
    target = _module_file(args)
    write_module_file(target, DEFAULT_MODULE_PATHS)
    print(f"Restored the bundled module paths in {target}.")
    return 0


def cmd_describe(args: argparse.Namespace) -> int:
    paths = read_module_file(_module_file(args)) or list(DEFAULT_MODULE_PATHS)
    declarations = []
    for module in _verified_registry(paths):
        described = module.describe()
        del described["id"]
        described["options"] = [
            {key: value for key, value in option.items() if key != "id"}
            for option in described["options"]
        ]
        declarations.append(described)
    sys.stdout.write(yaml.safe_dump({"modules": declarations}, sort_keys=False))
    return 0


COMMANDS: Dict[str, tuple[str, Callable[[argparse.Namespace], int]]] = {
    "list": ("Print the configured module paths", cmd_list),
    "register": ("Add a module path after checking it imports cleanly", cmd_register),
    "unregister": ("Remove a module path", cmd_unregister),
    "reset": ("Replace the file with the bundled module paths", cmd_reset),
    "describe": ("Load all configured modules and print their declarations", cmd_describe),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--file",
        default=str(MODULE_FILE),
        help="module path YAML file (default: %(default)s)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, (summary, handler) in COMMANDS.items():
        command = subparsers.add_parser(name, help=summary)
        if name in ("register", "unregister"):
            command.add_argument("module", help="dotted import path exposing MODULES")
        if name == "register":
            command.add_argument(
                "--no-verify",
                action="store_true",
                help="write the path without importing it first",
            )
        command.set_defaults(handler=handler)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
