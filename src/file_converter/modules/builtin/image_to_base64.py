"""Module that produces a base64 text copy of JPEG or PNG images."""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Any, Dict

from ...files import FileRef, replace_file_extension
from ..base import Module, ReturnMode


def _encode_copy(file: FileRef, options: Dict[str, Any]) -> Dict[str, Any]:
    source = Path(file.path)
    if not source.exists():
        raise FileNotFoundError(f"Input file not found: {source}")

    encoded = base64.b64encode(source.read_bytes()).decode("ascii")
    if options.get("data_uri"):
        encoded = f"data:{file.mimetype};base64,{encoded}"

    target = source.with_name(f"{source.name}.b64")
    target.write_text(encoded, encoding="utf-8")
    source.unlink()

    return {
        "fieldname": file.fieldname,
        "originalname": replace_file_extension(file.originalname, "txt"),
        "encoding": "utf-8",
        "mimetype": "text/plain",
        "destination": str(target.parent),
        "filename": target.name,
        "path": str(target),
        "size": target.stat().st_size,
    }


ImageToBase64 = Module(
    label="ImageToBase64",
    description="Convert JPEG and PNG images to base64-encoded plaintext files.",
    from_=["image/jpeg", "image/png"],
    to="text/plain",
    return_mode=ReturnMode.REPLACE,
    options=[
        {
            "label": "data_uri",
            "description": "Prefix the output with a data URI header.",
            "type": "boolean",
            "default": False,
        },
    ],
    transform=_encode_copy,
)

MODULES = [ImageToBase64]
