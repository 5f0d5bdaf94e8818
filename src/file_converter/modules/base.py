"""Conversion module descriptors and per-file conversion driver."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import fields as dataclass_fields
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Literal, Mapping, Optional, Sequence
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import InvalidModuleConfig, ModuleContractViolation, TransformError
from ..files import FILES_FIELD, FileRef, replace_file_extension
from ..mime import DEFAULT_MIME_LOOKUP, MimeLookup
from .options import LABEL_PATTERN, MAX_DESCRIPTION_LENGTH, Option

logger = logging.getLogger(__name__)

FileDoneCallback = Callable[[FileRef, FileRef], Optional[Awaitable[None]]]


class ReturnMode(str, Enum):
    MUTATE = "mutate"
    REPLACE = "replace"


class ModuleConfig(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    label: str = Field(..., pattern=LABEL_PATTERN)
    description: str | None = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    from_: str | tuple[str, ...] = Field(..., alias="from")
    to: str = Field(..., min_length=1)
    options: tuple[Any, ...] = ()
    transform: Callable[..., Any]
    return_mode: ReturnMode = ReturnMode.MUTATE

    @field_validator("from_")
    @classmethod
    def _non_empty_from(cls, value: str | tuple[str, ...]) -> str | tuple[str, ...]:
        values = (value,) if isinstance(value, str) else value
        if not values or not all(values):
            raise ValueError("at least one non-empty media type is required")
        return value


class ReplacementFile(BaseModel):
    """Schema a REPLACE-mode transform's return value must satisfy."""

    model_config = ConfigDict(extra="forbid")

    fieldname: Literal["files"]
    originalname: str = Field(..., min_length=1)
    encoding: str = Field(..., min_length=1)
    mimetype: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    filename: str = Field(..., min_length=1)
    path: str = Field(..., min_length=1)
    size: Any

    @field_validator("size")
    @classmethod
    def _non_negative_size(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise ValueError("must be a non-negative number")
        return value


def _first_error(exc: ValidationError) -> tuple[str, str]:
    error = exc.errors()[0]
    loc = list(error.get("loc", ()))
    # Report the public name (``from``) whichever key the caller used.
    if loc and loc[0] in ModuleConfig.model_fields:
        loc[0] = ModuleConfig.model_fields[loc[0]].alias or loc[0]
    field = ".".join(str(part) for part in loc)
    return field, error.get("msg", "invalid value")


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Module:
    """An immutable conversion capability.

    Declares the media type(s) it converts from, the one it converts to, the
    options it accepts and the transform applied to every file. The return
    mode decides how the transform reports its result:

    - ``MUTATE``: the transform rewrites the stored bytes and returns nothing;
      the module then retags and renames the file record itself.
    - ``REPLACE``: the transform returns a complete replacement record which
      is validated field by field before use.
    """

    __slots__ = ("_id", "_config", "_from", "_options", "_mime", "_self_declared")

    def __init__(
        self,
        config: ModuleConfig | Mapping[str, Any] | None = None,
        /,
        *,
        mime_lookup: MimeLookup | None = None,
        **fields: Any,
    ) -> None:
        if isinstance(config, ModuleConfig) and not fields:
            resolved = config
        else:
            data: Dict[str, Any] = (
                config.model_dump(by_alias=True) if isinstance(config, ModuleConfig) else dict(config or {})
            )
            data.update(fields)
            try:
                resolved = ModuleConfig.model_validate(data)
            except ValidationError as exc:
                raise InvalidModuleConfig(*_first_error(exc)) from exc

        mime = mime_lookup or DEFAULT_MIME_LOOKUP
        from_types = (resolved.from_,) if isinstance(resolved.from_, str) else tuple(resolved.from_)

        if resolved.return_mode is ReturnMode.MUTATE:
            for mimetype in from_types:
                if not mime.is_known_type(mimetype):
                    raise InvalidModuleConfig("from", f"'{mimetype}' is not a recognised media type")
            if not mime.is_known_type(resolved.to):
                raise InvalidModuleConfig("to", f"'{resolved.to}' is not a recognised media type")

        options = tuple(
            option if isinstance(option, Option) else Option(option) for option in resolved.options
        )
        labels = [option.label for option in options]
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            raise InvalidModuleConfig("options", f"duplicate option labels: {', '.join(duplicates)}")

        set_ = object.__setattr__
        set_(self, "_id", uuid4().hex)
        set_(self, "_config", resolved)
        set_(self, "_from", from_types)
        set_(self, "_options", options)
        set_(self, "_mime", mime)
        set_(
            self,
            "_self_declared",
            resolved.return_mode is ReturnMode.REPLACE and not mime.is_known_type(resolved.to),
        )

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __repr__(self) -> str:
        return f"Module(label={self.label!r}, from={self._from!r}, to={self.to!r}, mode={self.return_mode.value!r})"

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
    def from_types(self) -> tuple[str, ...]:
        return self._from

    @property
    def to(self) -> str:
        return self._config.to

    @property
    def options(self) -> tuple[Option, ...]:
        return self._options

    @property
    def transform(self) -> Callable[..., Any]:
        return self._config.transform

    @property
    def return_mode(self) -> ReturnMode:
        return self._config.return_mode

    @property
    def self_declared(self) -> bool:
        """REPLACE module whose target is outside the known media types."""
        return self._self_declared

    @property
    def mime_lookup(self) -> MimeLookup:
        return self._mime

    def option(self, label: str) -> Option | None:
        for option in self._options:
            if option.label == label:
                return option
        return None

    def defaults(self) -> Dict[str, Any]:
        return {option.label: option.default for option in self._options if option.has_default}

    def converts_from(self, mimetype: str) -> bool:
        return mimetype in self._from

    def converts_to(self, mimetype: str) -> bool:
        return mimetype == self.to

    def describe(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "description": self.description,
            "from": list(self._from),
            "to": self.to,
            "return_mode": self.return_mode.value,
            "options": [option.describe() for option in self._options],
        }

    async def convert(
        self,
        files: Sequence[FileRef],
        options: Mapping[str, Any] | None = None,
        on_file_done: FileDoneCallback | None = None,
    ) -> List[FileRef]:
        """Run the transform over every file concurrently and wait for all.

        ``on_file_done(before, after)`` fires once per file as soon as that
        file settles; no ordering across files is implied. The first failure
        cancels the files still in flight and propagates; files already
        converted are not rolled back.
        """

        resolved = dict(options or {})
        tasks = [
            asyncio.ensure_future(self._convert_file(file, resolved, on_file_done)) for file in files
        ]
        logger.debug("Module %s converting %d files", self.label, len(tasks))
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                logger.debug("Module %s cancelled %d unfinished files", self.label, len(pending))
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _convert_file(
        self,
        file: FileRef,
        options: Dict[str, Any],
        on_file_done: FileDoneCallback | None,
    ) -> FileRef:
        before = file.snapshot()
        result = await self._invoke(file, options)

        if self.return_mode is ReturnMode.MUTATE:
            if result is not None:
                raise ModuleContractViolation(
                    self.label,
                    f"transform returned a {type(result).__name__} but mutate-mode transforms must return nothing",
                )
            after = self._retag(file)
        elif self.return_mode is ReturnMode.REPLACE:
            if result is None:
                raise ModuleContractViolation(
                    self.label, "transform returned nothing but replace-mode transforms must return a file"
                )
            after = self._validate_replacement(result)
        else:  # pragma: no cover - enum is exhaustive
            raise ModuleContractViolation(self.label, f"unsupported return mode {self.return_mode!r}")

        if on_file_done is not None:
            await maybe_await(on_file_done(before, after))
        return after

    async def _invoke(self, file: FileRef, options: Dict[str, Any]) -> Any:
        transform = self.transform
        try:
            if inspect.iscoroutinefunction(transform):
                return await transform(file, options)
            return await maybe_await(await asyncio.to_thread(transform, file, options))
        except Exception as exc:
            logger.exception("Transform of module %s failed for %s", self.label, file.originalname)
            raise TransformError(self.label, file.originalname, exc) from exc

    def _retag(self, file: FileRef) -> FileRef:
        mime = self._mime
        charset = mime.charset_of(self.to)
        file.mimetype = self.to
        file.encoding = charset.lower() if charset else "binary"
        extension = mime.extension_of(self.to)
        if extension:
            file.originalname = replace_file_extension(file.originalname, extension)
        return file

    def _validate_replacement(self, result: Any) -> FileRef:
        if isinstance(result, FileRef):
            payload: Any = result.to_dict()
        elif isinstance(result, Mapping):
            payload = dict(result)
        else:
            raise ModuleContractViolation(
                self.label, f"replace-mode transform returned a {type(result).__name__}, expected a file mapping"
            )

        try:
            replacement = ReplacementFile.model_validate(payload)
        except ValidationError as exc:
            field, reason = _first_error(exc)
            if field == "fieldname":
                reason = f"must be '{FILES_FIELD}'"
            raise ModuleContractViolation(self.label, f"invalid '{field}' in returned file: {reason}") from exc

        if not self._self_declared:
            if not self._mime.is_known_type(replacement.mimetype):
                raise ModuleContractViolation(
                    self.label, f"invalid 'mimetype' in returned file: '{replacement.mimetype}' is not a recognised media type"
                )
            extension_type = self._mime.type_of(replacement.originalname)
            if extension_type is None or not self.converts_to(extension_type):
                raise ModuleContractViolation(
                    self.label,
                    f"invalid 'originalname' in returned file: extension of '{replacement.originalname}' "
                    f"does not map to '{self.to}'",
                )
        if not self.converts_to(replacement.mimetype):
            raise ModuleContractViolation(
                self.label,
                f"invalid 'mimetype' in returned file: '{replacement.mimetype}' is not the module target '{self.to}'",
            )

        data = replacement.model_dump()
        return FileRef(**{f.name: data[f.name] for f in dataclass_fields(FileRef)})


__all__ = ["Module", "ModuleConfig", "ReplacementFile", "ReturnMode"]
