"""File-based descriptors exchanged between host and guest through the workspace."""

from __future__ import annotations

import json
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from vm_shim.errors import DecodeError

TASK_FILE_NAME = "task.json"
TASK_RESULT_FILE_NAME = "task_result.json"

_OK_KEY = "Ok"
_ERR_KEY = "Err"


@dataclass(slots=True)
class TaskResult:
    """Outcome produced by the guest callback."""

    id: str
    data: bytes = b""
    files: list[str] = field(default_factory=list)


@dataclass(slots=True)
class Task:
    """Unit of work handed to the guest."""

    id: str
    args: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)

    def result(self, data: bytes, files: Iterable[str] = ()) -> TaskResult:
        """Build a result correlated with this task."""

        return TaskResult(id=self.id, data=bytes(data), files=list(files))

    def get_task_files_path(self, workspace: str | Path) -> list[tuple[str, Path]]:
        """Resolve task input files against the mounted workspace root."""

        root = Path(workspace)
        return [(name, root / name) for name in self.files]


@dataclass(slots=True)
class ResultEnvelope:
    """Success/failure union persisted as ``task_result.json``."""

    result: TaskResult | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError("ResultEnvelope requires exactly one of result or error")

    @classmethod
    def success(cls, result: TaskResult) -> ResultEnvelope:
        return cls(result=result)

    @classmethod
    def failure(cls, message: str) -> ResultEnvelope:
        return cls(error=message)

    @property
    def ok(self) -> bool:
        return self.result is not None


def encode_task(task: Task) -> dict[str, Any]:
    return {"id": task.id, "args": list(task.args), "files": list(task.files)}


def decode_task(raw: object) -> Task:
    """Validate a decoded JSON document and build a task descriptor."""

    if not isinstance(raw, dict):
        raise DecodeError("task descriptor must be a JSON object")
    missing = [key for key in ("id", "args", "files") if key not in raw]
    if missing:
        raise DecodeError(f"task descriptor missing required fields: {', '.join(missing)}")
    return Task(
        id=_require_str(raw["id"], "task.id"),
        args=_require_str_list(raw["args"], "task.args"),
        files=_require_str_list(raw["files"], "task.files"),
    )


def encode_task_result(result: TaskResult) -> dict[str, Any]:
    return {"id": result.id, "data": list(result.data), "files": list(result.files)}


def decode_task_result(raw: object) -> TaskResult:
    if not isinstance(raw, dict):
        raise DecodeError("task result must be a JSON object")
    missing = [key for key in ("id", "data", "files") if key not in raw]
    if missing:
        raise DecodeError(f"task result missing required fields: {', '.join(missing)}")
    return TaskResult(
        id=_require_str(raw["id"], "task_result.id"),
        data=_require_bytes(raw["data"], "task_result.data"),
        files=_require_str_list(raw["files"], "task_result.files"),
    )


def encode_envelope(envelope: ResultEnvelope) -> dict[str, Any]:
    if envelope.result is not None:
        return {_OK_KEY: encode_task_result(envelope.result)}
    return {_ERR_KEY: envelope.error}


def decode_envelope(raw: object) -> ResultEnvelope:
    """Decode the externally tagged ``{"Ok": ...}`` / ``{"Err": ...}`` union."""

    if not isinstance(raw, dict) or len(raw) != 1:
        raise DecodeError("result envelope must be an object with exactly one of Ok or Err")
    if _OK_KEY in raw:
        return ResultEnvelope.success(decode_task_result(raw[_OK_KEY]))
    if _ERR_KEY in raw:
        return ResultEnvelope.failure(_require_str(raw[_ERR_KEY], "task_result.Err"))
    raise DecodeError(f"unknown result envelope variant: {next(iter(raw))!r}")


def write_task(path: Path, task: Task) -> None:
    """Persist the task descriptor, replacing any previous one."""

    with path.open("w", encoding="utf-8") as handle:
        json.dump(encode_task(task), handle, ensure_ascii=False)
        handle.flush()


def read_task(path: Path) -> Task:
    return decode_task(_load_json(path))


def write_result_envelope(path: Path, envelope: ResultEnvelope) -> None:
    """Persist the result envelope with exclusive create.

    Raises ``FileExistsError`` when a result is already present; the existing
    file is left untouched.
    """

    payload = json.dumps(encode_envelope(envelope), ensure_ascii=False)
    with path.open("x", encoding="utf-8") as handle:
        handle.write(payload)
        handle.flush()
        os.fsync(handle.fileno())


def read_result_envelope(path: Path) -> ResultEnvelope:
    return decode_envelope(_load_json(path))


def _load_json(path: Path) -> object:
    raw = path.read_bytes()
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise DecodeError(f"Invalid JSON in {path}: {error}") from error


def _require_str(value: object, name: str) -> str:
    if not isinstance(value, str):
        raise DecodeError(f"{name} must be a string")
    return value


def _require_str_list(value: object, name: str) -> list[str]:
    if not isinstance(value, list):
        raise DecodeError(f"{name} must be an array")
    for item in value:
        if not isinstance(item, str):
            raise DecodeError(f"{name} entries must be strings")
    return list(value)


def _require_bytes(value: object, name: str) -> bytes:
    if not isinstance(value, list):
        raise DecodeError(f"{name} must be an array of byte values")
    for item in value:
        # bool is an int subclass; reject it explicitly
        if isinstance(item, bool) or not isinstance(item, int) or not 0 <= item <= 255:
            raise DecodeError(f"{name} entries must be integers in 0..255")
    return bytes(value)
