"""File references handed over by the upload layer."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Mapping

FILES_FIELD = "files"


@dataclass
class FileRef:
    """Handle to a file already stored by the upload layer.

    Field names mirror the upload middleware's file records: ``path`` is the
    storage location and ``size`` is in bytes. Only ``mimetype``,
    ``originalname`` and ``encoding`` are rewritten in place by conversion.
    """

    originalname: str
    mimetype: str
    path: str
    size: int
    fieldname: str = FILES_FIELD
    encoding: str = "7bit"
    destination: str = ""
    filename: str = ""

    def __post_init__(self) -> None:
        if not self.destination:
            self.destination = os.path.dirname(self.path)
        if not self.filename:
            self.filename = os.path.basename(self.path)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FileRef":
        known = {f.name for f in fields(cls)}
        unexpected = sorted(set(data) - known)
        if unexpected:
            raise TypeError(f"Unexpected file fields: {', '.join(unexpected)}")
        return cls(**dict(data))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def snapshot(self) -> "FileRef":
        return replace(self)


def replace_file_extension(filename: str, extension: str) -> str:
    """Swap the last extension of ``filename`` (``notes.txt`` -> ``notes.json``).

    Names without a dot get the extension appended.
    """

    extension = extension.lstrip(".")
    stem, dot, _ = filename.rpartition(".")
    if not dot:
        return f"{filename}.{extension}"
    return f"{stem}.{extension}"
