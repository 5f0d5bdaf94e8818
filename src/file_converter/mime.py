"""Mimetype lookup capability used by modules and the converter."""

from __future__ import annotations

import mimetypes
from typing import Dict, List, Optional, Protocol, runtime_checkable

# Upload layers report some types under legacy aliases.
MIMETYPE_ALIASES: Dict[str, str] = {
    "video/avi": "video/x-msvideo",
    "image/jpg": "image/jpeg",
}

_UTF8_APPLICATION_TYPES = {
    "application/json",
    "application/javascript",
    "application/xml",
    "application/x-yaml",
    "application/yaml",
}


@runtime_checkable
class MimeLookup(Protocol):
    def extension_of(self, mimetype: str) -> Optional[str]:
        """Canonical extension (without the dot) for a mimetype."""

    def charset_of(self, mimetype: str) -> Optional[str]:
        """Default charset for a mimetype, or None for binary types."""

    def is_known_type(self, value: str) -> bool:
        """Whether ``value`` is a recognised mimetype."""

    def type_of(self, name: str) -> Optional[str]:
        """Mimetype for a file name or bare extension."""


class DefaultMimeLookup:
    """MimeLookup backed by a private copy of the stdlib mimetype tables.

    A fresh ``mimetypes.MimeTypes`` instance only carries the interpreter's
    built-in defaults, so results do not depend on host ``mime.types`` files.
    """

    def __init__(self, extra_types: Optional[Dict[str, str]] = None) -> None:
        self._db = mimetypes.MimeTypes()
        for extension, mimetype in (extra_types or {}).items():
            self._db.add_type(mimetype, extension if extension.startswith(".") else f".{extension}")
        self._known = {
            mimetype.lower()
            for table in self._db.types_map
            for mimetype in table.values()
        }

    def extension_of(self, mimetype: str) -> Optional[str]:
        extension = self._db.guess_extension(_normalize(mimetype), strict=False)
        return extension[1:] if extension else None

    def charset_of(self, mimetype: str) -> Optional[str]:
        normalized = _normalize(mimetype)
        if normalized.startswith("text/") or normalized in _UTF8_APPLICATION_TYPES:
            return "UTF-8"
        return None

    def is_known_type(self, value: str) -> bool:
        if not isinstance(value, str) or not value:
            return False
        return _normalize(value) in self._known

    def type_of(self, name: str) -> Optional[str]:
        if not name:
            return None
        probe = name if "." in name else f"file.{name}"
        mimetype, _ = self._db.guess_type(probe, strict=False)
        return mimetype

    def all_types(self, kind: Optional[str] = None) -> List[str]:
        types = sorted(self._known)
        if kind:
            types = [mimetype for mimetype in types if mimetype.split("/")[0] == kind.lower()]
        return types

    def describe(self, value: str) -> Dict[str, Optional[object]]:
        """Validate a mimetype or file extension and report what it maps to."""

        mimetype = value if self.is_known_type(value) else self.type_of(value.lstrip("."))
        if not mimetype:
            return {"valid": False, "extension": None, "charset": None, "content_type": None}

        charset = self.charset_of(mimetype)
        content_type = f"{mimetype}; charset={charset.lower()}" if charset else mimetype
        return {
            "valid": True,
            "extension": self.extension_of(mimetype),
            "charset": charset,
            "content_type": content_type,
        }


def _normalize(mimetype: str) -> str:
    base = mimetype.split(";", 1)[0].strip().lower()
    return MIMETYPE_ALIASES.get(base, base)


def canonical_mimetype(mimetype: str) -> str:
    return _normalize(mimetype)


DEFAULT_MIME_LOOKUP = DefaultMimeLookup()


__all__ = [
    "DEFAULT_MIME_LOOKUP",
    "DefaultMimeLookup",
    "MIMETYPE_ALIASES",
    "MimeLookup",
    "canonical_mimetype",
]
