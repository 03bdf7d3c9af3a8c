from __future__ import annotations

import json
from pathlib import Path

import allure
import pytest

from vm_shim.contracts import (
    TASK_FILE_NAME,
    TASK_RESULT_FILE_NAME,
    ResultEnvelope,
    Task,
    TaskResult,
    decode_envelope,
    decode_task,
    encode_envelope,
    read_result_envelope,
    read_task,
    write_result_envelope,
    write_task,
)
from vm_shim.errors import DecodeError

pytestmark = [
    allure.epic("Task Handoff"),
    allure.feature("Descriptor Contracts"),
]


def test_get_task_files_path_joins_names_against_workspace() -> None:
    task = Task(id="t", args=[], files=["a.txt", "sub/b.bin"])

    assert task.get_task_files_path("/workspace") == [
        ("a.txt", Path("/workspace/a.txt")),
        ("sub/b.bin", Path("/workspace/sub/b.bin")),
    ]


def test_get_task_files_path_does_no_io(tmp_path: Path) -> None:
    task = Task(id="t", files=["missing.txt"])

    [(name, path)] = task.get_task_files_path(tmp_path / "nowhere")

    assert name == "missing.txt"
    assert not path.exists()


def test_task_result_copies_task_id() -> None:
    task = Task(id="task01", args=["--x"])

    result = task.result(b"\x01\x02", ["out.bin"])

    assert result == TaskResult(id="task01", data=b"\x01\x02", files=["out.bin"])


def test_task_round_trip(workspace: Path) -> None:
    task = Task(id="task01", args=["--x", "ünïcode"], files=["a.txt", "sub/b.bin"])
    path = workspace / TASK_FILE_NAME

    write_task(path, task)

    assert json.loads(path.read_text("utf-8")) == {
        "id": "task01",
        "args": ["--x", "ünïcode"],
        "files": ["a.txt", "sub/b.bin"],
    }
    assert read_task(path) == task


def test_write_task_replaces_previous_descriptor(workspace: Path) -> None:
    path = workspace / TASK_FILE_NAME
    write_task(path, Task(id="old", args=["a", "b", "c"]))
    write_task(path, Task(id="new"))

    assert read_task(path) == Task(id="new")


def test_envelope_wire_format_matches_tagged_union() -> None:
    ok = ResultEnvelope.success(TaskResult(id="task01", data=bytes([1, 2, 3]), files=[]))
    err = ResultEnvelope.failure("boom")

    assert encode_envelope(ok) == {"Ok": {"id": "task01", "data": [1, 2, 3], "files": []}}
    assert encode_envelope(err) == {"Err": "boom"}
    assert decode_envelope(encode_envelope(ok)) == ok
    assert decode_envelope(encode_envelope(err)) == err


def test_envelope_requires_exactly_one_arm() -> None:
    with pytest.raises(ValueError, match="exactly one"):
        ResultEnvelope()
    with pytest.raises(ValueError, match="exactly one"):
        ResultEnvelope(result=TaskResult(id="x"), error="boom")


def test_result_write_is_exclusive_and_preserves_existing_file(workspace: Path) -> None:
    path = workspace / TASK_RESULT_FILE_NAME
    write_result_envelope(path, ResultEnvelope.failure("first"))
    original = path.read_bytes()

    with pytest.raises(FileExistsError):
        write_result_envelope(
            path,
            ResultEnvelope.success(TaskResult(id="task01", data=b"x")),
        )

    assert path.read_bytes() == original
    assert read_result_envelope(path) == ResultEnvelope.failure("first")


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ("[]", "must be a JSON object"),
        ('{"id": "t", "args": []}', "missing required fields: files"),
        ('{"id": 1, "args": [], "files": []}', "task.id must be a string"),
        ('{"id": "t", "args": "x", "files": []}', "task.args must be an array"),
        ('{"id": "t", "args": [1], "files": []}', "task.args entries must be strings"),
        ("{not json", "Invalid JSON"),
    ],
)
def test_read_task_rejects_malformed_descriptor(workspace: Path, payload: str, message: str) -> None:
    path = workspace / TASK_FILE_NAME
    path.write_text(payload, "utf-8")

    with pytest.raises(DecodeError, match=message):
        read_task(path)


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"Ok": {"id": "t", "data": [256], "files": []}},
        {"Ok": {"id": "t", "data": [True], "files": []}},
        {"Ok": {"id": "t", "data": "AQID", "files": []}},
        {"Ok": {"id": "t", "data": []}},
        {"Err": 42},
        {"Maybe": "x"},
        {"Ok": {"id": "t", "data": [], "files": []}, "Err": "both"},
    ],
)
def test_decode_envelope_rejects_invalid_payloads(raw: object) -> None:
    with pytest.raises(DecodeError):
        decode_envelope(raw)


def test_decode_errors_are_value_errors() -> None:
    with pytest.raises(ValueError):
        decode_task({"id": "t"})


def test_read_result_envelope_missing_file_raises_file_not_found(workspace: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_result_envelope(workspace / TASK_RESULT_FILE_NAME)


def test_read_task_rejects_non_utf8_bytes(workspace: Path) -> None:
    path = workspace / TASK_FILE_NAME
    path.write_bytes(b"\xff\xfe\x00")

    with pytest.raises(DecodeError):
        read_task(path)
