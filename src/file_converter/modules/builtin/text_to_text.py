"""Module that normalizes plain text files in place."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from ...files import FileRef
from ..base import Module, ReturnMode


def _normalize_text(file: FileRef, options: Dict[str, Any]) -> None:
    path = Path(file.path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    content = path.read_text(encoding="utf-8", errors="replace")
    lines = content.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    if options.get("strip_trailing_whitespace"):
        lines = [line.rstrip() for line in lines]

    data = "\n".join(lines).encode("utf-8")
    path.write_bytes(data)
    file.size = len(data)


TextToText = Module(
    label="TextToText",
    description="Convert plaintext files to plaintext files with normalized line endings.",
    from_="text/plain",
    to="text/plain",
    return_mode=ReturnMode.MUTATE,
    options=[
        {
            "label": "strip_trailing_whitespace",
            "description": "Remove trailing whitespace from every line.",
            "type": "boolean",
            "default": False,
        },
    ],
    transform=_normalize_text,
)

MODULES = [TextToText]
