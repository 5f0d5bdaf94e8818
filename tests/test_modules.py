"""Tests for module construction and per-file conversion."""

from __future__ import annotations

import asyncio
from typing import Any, Dict

import pytest

from file_converter.errors import InvalidModuleConfig, ModuleContractViolation, TransformError
from file_converter.files import FileRef
from file_converter.modules import Module, Option, ReturnMode


def _noop(file, options):
    return None


def _module(**overrides: Any) -> Module:
    fields: Dict[str, Any] = dict(label="PngToJpeg", from_="image/png", to="image/jpeg", transform=_noop)
    fields.update(overrides)
    return Module(**fields)


def _replacement(file: FileRef, **overrides: Any) -> Dict[str, Any]:
    data = {
        "fieldname": "files",
        "originalname": "out.txt",
        "encoding": "utf-8",
        "mimetype": "text/plain",
        "destination": file.destination,
        "filename": "out",
        "path": file.path + ".out",
        "size": 3,
    }
    data.update(overrides)
    return data


@pytest.mark.parametrize(
    "overrides, field_name",
    [
        ({"label": "has space"}, "label"),
        ({"label": "L" * 33}, "label"),
        ({"description": "d" * 513}, "description"),
        ({"from_": "image/not-a-type"}, "from"),
        ({"from_": []}, "from"),
        ({"to": "image/not-a-type"}, "to"),
        ({"transform": "not callable"}, "transform"),
        ({"priority": 1}, "priority"),
    ],
)
def test_module_rejects_invalid_config(overrides, field_name):
    with pytest.raises(InvalidModuleConfig) as exc:
        _module(**overrides)
    assert exc.value.field == field_name


def test_module_accepts_mapping_with_from_key():
    module = Module({"label": "Text", "from": ["text/plain", "text/csv"], "to": "text/plain", "transform": _noop})
    assert module.from_types == ("text/plain", "text/csv")


def test_module_rejects_duplicate_option_labels():
    with pytest.raises(InvalidModuleConfig) as exc:
        _module(options=[{"label": "width", "type": "number"}, Option(label="width", type="string")])
    assert exc.value.field == "options"
    assert "width" in exc.value.reason


def test_replace_module_skips_media_type_recognition():
    module = _module(from_="application/x-custom", to="application/x-custom-out", return_mode=ReturnMode.REPLACE)
    assert module.self_declared
    assert module.converts_to("application/x-custom-out")


def test_module_is_immutable_and_describable():
    module = _module(options=[{"label": "size", "type": "number", "default": 10}])
    with pytest.raises(AttributeError):
        module.label = "Other"

    described = module.describe()
    assert described["from"] == ["image/png"]
    assert described["return_mode"] == "mutate"
    assert described["options"][0]["default"] == 10
    assert module.defaults() == {"size": 10}


def test_converts_from_and_to_handle_scalar_and_collection():
    single = _module()
    multiple = _module(from_=("image/png", "image/gif"))

    assert single.converts_from("image/png")
    assert not single.converts_from("image/gif")
    assert multiple.converts_from("image/gif")
    assert single.converts_to("image/jpeg")
    assert not single.converts_to("image/png")


@pytest.mark.asyncio
async def test_mutate_conversion_renames_and_retags(make_file):
    file = make_file("a.png", "image/png")
    converted = await _module().convert([file])

    assert converted[0] is file
    assert file.originalname == "a.jpg"
    assert file.mimetype == "image/jpeg"
    assert file.encoding == "binary"


@pytest.mark.asyncio
async def test_mutate_conversion_sets_charset_encoding(make_file):
    module = _module(label="PngToText", to="text/plain")
    file = make_file("scan", "image/png")
    await module.convert([file])

    assert file.originalname == "scan.txt"
    assert file.encoding == "utf-8"


@pytest.mark.asyncio
async def test_mutate_transform_must_not_return(make_file):
    module = _module(transform=lambda file, options: file)
    with pytest.raises(ModuleContractViolation) as exc:
        await module.convert([make_file()])
    assert "must return nothing" in str(exc.value)


@pytest.mark.asyncio
async def test_replace_transform_must_return(make_file):
    module = _module(to="text/plain", return_mode=ReturnMode.REPLACE)
    with pytest.raises(ModuleContractViolation) as exc:
        await module.convert([make_file()])
    assert "must return a file" in str(exc.value)


@pytest.mark.asyncio
async def test_replace_conversion_uses_returned_record(make_file):
    module = _module(to="text/plain", return_mode=ReturnMode.REPLACE, transform=lambda f, o: _replacement(f))
    file = make_file()
    converted = await module.convert([file])

    assert converted[0] is not file
    assert converted[0].originalname == "out.txt"
    assert converted[0].mimetype == "text/plain"
    assert converted[0].path == file.path + ".out"


@pytest.mark.asyncio
async def test_replace_rejects_missing_mimetype(make_file):
    def _transform(file, options):
        data = _replacement(file)
        del data["mimetype"]
        return data

    module = _module(to="text/plain", return_mode=ReturnMode.REPLACE, transform=_transform)
    with pytest.raises(ModuleContractViolation) as exc:
        await module.convert([make_file()])
    assert "'mimetype'" in exc.value.reason


@pytest.mark.parametrize(
    "overrides, field_name",
    [
        ({"fieldname": "upload"}, "fieldname"),
        ({"originalname": ""}, "originalname"),
        ({"encoding": ""}, "encoding"),
        ({"size": -1}, "size"),
        ({"size": "12"}, "size"),
        ({"checksum": "abc"}, "checksum"),
        ({"mimetype": "image/png"}, "mimetype"),
        ({"mimetype": "made/up"}, "mimetype"),
        ({"originalname": "out.png"}, "originalname"),
    ],
)
@pytest.mark.asyncio
async def test_replace_rejects_invalid_fields(make_file, overrides, field_name):
    module = _module(
        to="text/plain",
        return_mode=ReturnMode.REPLACE,
        transform=lambda f, o: _replacement(f, **overrides),
    )
    with pytest.raises(ModuleContractViolation) as exc:
        await module.convert([make_file()])
    assert f"'{field_name}'" in exc.value.reason


@pytest.mark.asyncio
async def test_self_declared_module_only_checks_target(make_file):
    module = _module(
        to="application/x-custom",
        return_mode=ReturnMode.REPLACE,
        transform=lambda f, o: _replacement(f, mimetype="application/x-custom", originalname="out.custom"),
    )
    converted = await module.convert([make_file()])
    assert converted[0].mimetype == "application/x-custom"


@pytest.mark.asyncio
async def test_transform_errors_are_wrapped(make_file):
    def _boom(file, options):
        raise RuntimeError("codec crashed")

    with pytest.raises(TransformError) as exc:
        await _module(transform=_boom).convert([make_file("broken.png")])
    assert exc.value.filename == "broken.png"
    assert isinstance(exc.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_convert_passes_options_and_reports_before_after_pairs(make_file):
    seen_options: list[dict] = []
    pairs: list[tuple[str, str]] = []

    def _transform(file, options):
        seen_options.append(options)

    async def _done(before, after):
        pairs.append((before.originalname, after.originalname))

    files = [make_file("one.png"), make_file("two.png")]
    result = await _module(transform=_transform).convert(files, {"size": 5}, _done)

    assert [file.originalname for file in result] == ["one.jpg", "two.jpg"]
    assert sorted(pairs) == [("one.png", "one.jpg"), ("two.png", "two.jpg")]
    assert seen_options == [{"size": 5}, {"size": 5}]


@pytest.mark.asyncio
async def test_files_convert_concurrently_and_keep_order(make_file):
    started: list[str] = []
    both_started = asyncio.Event()

    async def _transform(file, options):
        started.append(file.originalname)
        if len(started) == 2:
            both_started.set()
        await asyncio.wait_for(both_started.wait(), timeout=1)
        if file.originalname == "first.png":
            await asyncio.sleep(0.01)

    files = [make_file("first.png"), make_file("second.png")]
    result = await _module(transform=_transform).convert(files)

    assert set(started) == {"first.png", "second.png"}
    assert [file.originalname for file in result] == ["first.jpg", "second.jpg"]


@pytest.mark.asyncio
async def test_first_failure_cancels_files_in_flight(make_file):
    finished: list[str] = []
    cancelled = asyncio.Event()

    async def _transform(file, options):
        if file.originalname == "bad.png":
            raise ValueError("corrupt header")
        try:
            await asyncio.sleep(0.2)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    async def _done(before, after):
        finished.append(before.originalname)

    files = [make_file("bad.png"), make_file("good.png")]
    with pytest.raises(TransformError):
        await _module(transform=_transform).convert(files, on_file_done=_done)
    await asyncio.sleep(0.3)

    assert cancelled.is_set()
    assert finished == []
    assert files[1].originalname == "good.png"


def test_module_error_names_public_from_field():
    with pytest.raises(InvalidModuleConfig) as exc:
        Module({"label": "Text", "from": [], "to": "text/plain", "transform": _noop})
    assert exc.value.field == "from"
    assert "from_" not in str(exc.value)
