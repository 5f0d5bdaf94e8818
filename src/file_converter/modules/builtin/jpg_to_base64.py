"""Module that rewrites JPEG files as base64 text."""

from __future__ import annotations

import base64
import textwrap
from pathlib import Path
from typing import Any, Dict

from ...files import FileRef
from ..base import Module, ReturnMode


def _encode_file(file: FileRef, options: Dict[str, Any]) -> None:
    path = Path(file.path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    line_length = int(options.get("line_length") or 0)
    if line_length > 0:
        encoded = "\n".join(textwrap.wrap(encoded, line_length))

    path.write_text(encoded, encoding="utf-8")
    file.size = path.stat().st_size


JPGToBase64 = Module(
    label="JPGToBase64",
    description="Convert JPEG images to base64-encoded plaintext files.",
    from_="image/jpeg",
    to="text/plain",
    return_mode=ReturnMode.MUTATE,
    options=[
        {
            "label": "line_length",
            "description": "Wrap the base64 text at this many characters; 0 keeps a single line.",
            "type": "number",
            "default": 0,
        },
    ],
    transform=_encode_file,
)

MODULES = [JPGToBase64]
