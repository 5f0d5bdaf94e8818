"""Typed option descriptors exposed by conversion modules."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..errors import InvalidOptionConfig, InvalidOptionValue

LABEL_PATTERN = r"^[A-Za-z0-9_]{1,32}$"
MAX_DESCRIPTION_LENGTH = 512


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


class OptionType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"

    def accepts(self, value: Any) -> bool:
        if self is OptionType.BOOLEAN:
            return isinstance(value, bool)
        if self is OptionType.NUMBER:
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        return isinstance(value, str)


class OptionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    label: str = Field(..., pattern=LABEL_PATTERN)
    description: str | None = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    type: OptionType
    default: Any = None
    required: bool = False

    @model_validator(mode="after")
    def _default_matches_type(self) -> "OptionConfig":
        if self.default is not None and not self.type.accepts(self.default):
            raise ValueError(
                f"default {self.default!r} does not match option type '{self.type.value}'"
            )
        return self


def _first_error(exc: ValidationError) -> tuple[str, str]:
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error.get("loc", ()))
    return field, error.get("msg", "invalid value")


class Option:
    """A named, typed input a module accepts from callers.

    Immutable once built. ``validate`` is only meaningful for values that were
    actually supplied, or for required options (where a missing value fails).
    """

    __slots__ = ("_id", "_config")

    def __init__(self, config: OptionConfig | Mapping[str, Any] | None = None, /, **fields: Any) -> None:
        if isinstance(config, OptionConfig) and not fields:
            resolved = config
        else:
            data: Dict[str, Any] = dict(config.model_dump() if isinstance(config, OptionConfig) else config or {})
            data.update(fields)
            try:
                resolved = OptionConfig.model_validate(data)
            except ValidationError as exc:
                raise InvalidOptionConfig(*_first_error(exc)) from exc

        object.__setattr__(self, "_config", resolved)
        object.__setattr__(self, "_id", uuid4().hex)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __repr__(self) -> str:
        return f"Option(label={self.label!r}, type={self.type.value!r}, required={self.required})"

    @property
    def id(self) -> str:
        return self._id

    @property
    def label(self) -> str:
        return self._config.label

    @property
    def description(self) -> str | None:
        return self._config.description

    @property
    def type(self) -> OptionType:
        return self._config.type

    @property
    def default(self) -> Any:
        return self._config.default

    @property
    def has_default(self) -> bool:
        return self._config.default is not None

    @property
    def required(self) -> bool:
        return self._config.required

    def validate(self, value: Any = MISSING) -> None:
        if value is MISSING:
            if self.required:
                raise InvalidOptionValue(self.label, "a value is required")
            return
        if not self.type.accepts(value):
            shown = "null" if value is None else type(value).__name__
            raise InvalidOptionValue(self.label, f"expected {self.type.value}, got {shown}")

    def describe(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "description": self.description,
            "type": self.type.value,
            "default": self.default,
            "required": self.required,
        }


__all__ = ["LABEL_PATTERN", "MISSING", "Option", "OptionConfig", "OptionType"]
