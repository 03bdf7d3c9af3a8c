"""Guest runtime: wait for the workspace, run the task, persist the result once."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from vm_shim.config import GuestSettings
from vm_shim.contracts import (
    TASK_FILE_NAME,
    TASK_RESULT_FILE_NAME,
    ResultEnvelope,
    Task,
    TaskResult,
    decode_task_result,
    encode_task_result,
    read_task,
    write_result_envelope,
)
from vm_shim.mounts import wait_for_mount

logger = logging.getLogger(__name__)


class GuestState(str, Enum):
    """Guest runtime lifecycle states."""

    AWAITING_MOUNT = "awaiting_mount"
    DESCRIPTOR_LOADED = "descriptor_loaded"
    CALLBACK_RUNNING = "callback_running"
    RESULT_PERSISTED = "result_persisted"
    FAILED = "failed"


class TaskExecutor(Protocol):
    """Capability implemented by guest programs."""

    def execute(self, task: Task) -> TaskResult:
        """Run the task; raising reports a failure back to the host."""


class CallbackExecutor:
    """Adapt a plain ``Task -> TaskResult`` function to ``TaskExecutor``."""

    def __init__(self, callback: Callable[[Task], TaskResult]) -> None:
        self.callback = callback

    def execute(self, task: Task) -> TaskResult:
        return self.callback(task)


class GuestRuntime:
    """Drives one task through the guest lifecycle."""

    def __init__(
        self,
        executor: TaskExecutor,
        settings: GuestSettings | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        shutdown_requested: Callable[[], bool] | None = None,
    ) -> None:
        self.executor = executor
        self.settings = settings or GuestSettings.from_env()
        self.state = GuestState.AWAITING_MOUNT
        self._sleep = sleep
        self._clock = clock
        self._shutdown_requested = shutdown_requested

    def run(self) -> ResultEnvelope:
        """Execute the whole lifecycle and return the persisted envelope.

        Callback failures are captured in the envelope. Mount timeouts,
        descriptor decode errors and I/O errors propagate.
        """

        try:
            return self._run()
        except BaseException:
            self.state = GuestState.FAILED
            raise

    def _run(self) -> ResultEnvelope:
        settings = self.settings
        self.state = GuestState.AWAITING_MOUNT
        wait_for_mount(
            settings.mount_point,
            timeout_seconds=settings.mount_timeout_seconds,
            poll_interval_seconds=settings.mount_poll_interval_seconds,
            mount_table=settings.mount_table_path,
            shutdown_requested=self._shutdown_requested,
            clock=self._clock,
            sleep=self._sleep,
        )

        task = read_task(settings.workspace_path / TASK_FILE_NAME)
        self.state = GuestState.DESCRIPTOR_LOADED
        logger.info("Loaded task %s (args=%d files=%d)", task.id, len(task.args), len(task.files))

        self.state = GuestState.CALLBACK_RUNNING
        envelope = self._execute(task)

        write_result_envelope(settings.workspace_path / TASK_RESULT_FILE_NAME, envelope)
        self.state = GuestState.RESULT_PERSISTED
        logger.info("Persisted %s result for task %s", "ok" if envelope.ok else "error", task.id)
        return envelope

    def _execute(self, task: Task) -> ResultEnvelope:
        try:
            result = self.executor.execute(task)
        except Exception as error:  # noqa: BLE001
            logger.warning("Task %s callback failed: %s", task.id, error)
            return ResultEnvelope.failure(str(error))

        if not isinstance(result, TaskResult):
            return ResultEnvelope.failure(
                f"callback returned {type(result).__name__}, expected TaskResult",
            )
        if result.id != task.id:
            return ResultEnvelope.failure(
                f"task result id {result.id!r} does not match task id {task.id!r}",
            )
        try:
            checked = decode_task_result(encode_task_result(result))
        except (TypeError, ValueError) as error:
            logger.warning("Task %s returned an unencodable result: %s", task.id, error)
            return ResultEnvelope.failure(f"invalid task result: {error}")
        return ResultEnvelope.success(checked)


def run(
    callback: TaskExecutor | Callable[[Task], TaskResult],
    settings: GuestSettings | None = None,
) -> ResultEnvelope:
    """Run the guest lifecycle with ``callback`` as the task executor.

    Settings default to ``GuestSettings.from_env()``.
    """

    executor = callback if hasattr(callback, "execute") else CallbackExecutor(callback)
    return GuestRuntime(executor, settings).run()
