"""Host orchestrator: write the task, boot the VM, collect the result."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from vm_shim.contracts import (
    TASK_FILE_NAME,
    TASK_RESULT_FILE_NAME,
    Task,
    TaskResult,
    read_result_envelope,
    write_task,
)
from vm_shim.errors import (
    CallbackError,
    DecodeError,
    LaunchError,
    MissingResultError,
    PreflightError,
)
from vm_shim.launcher.base import LaunchRequest, LaunchResult, ResourceProfile, VmLauncher

logger = logging.getLogger(__name__)


class HostState(str, Enum):
    """Host orchestrator lifecycle states."""

    PREFLIGHT_CHECK = "preflight_check"
    DESCRIPTOR_WRITTEN = "descriptor_written"
    VM_RUNNING = "vm_running"
    RESULT_COLLECTED = "result_collected"
    ABORTED = "aborted"


@dataclass(slots=True)
class HostRunRequest:
    """Caller parameters for one task run."""

    workspace: Path
    program_image: Path
    task_id: str = "task01"
    args: Sequence[str] = ()
    files: Sequence[str] = ()
    resources: ResourceProfile = field(default_factory=ResourceProfile)
    devices: Sequence[str] = ()
    timeout_seconds: float | None = None
    graceful_shutdown_seconds: float = 2.0


@dataclass(slots=True)
class HostRunResult:
    """Successful run outcome."""

    task_result: TaskResult
    launch_result: LaunchResult


class HostOrchestrator:
    """Runs one task per VM lifetime through a shared workspace."""

    def __init__(
        self,
        launcher: VmLauncher,
        *,
        confirm_stale_removal: Callable[[Path], bool] | None = None,
        mount_tag: str = "0",
    ) -> None:
        self.launcher = launcher
        self.confirm_stale_removal = confirm_stale_removal
        self.mount_tag = mount_tag
        self.state = HostState.PREFLIGHT_CHECK

    def run(self, request: HostRunRequest) -> HostRunResult:
        """Execute the full host lifecycle.

        Raises ``PreflightError``, ``TransportError`` subclasses, ``DecodeError``
        or ``CallbackError`` depending on where the run stopped.
        """

        try:
            self.preflight(request.workspace)
            task = self.write_task(request)
            launch_result = self.launch(request)
            task_result = self.collect_result(
                request.workspace,
                task_id=task.id,
                launch_result=launch_result,
            )
        except BaseException:
            self.state = HostState.ABORTED
            raise
        return HostRunResult(task_result=task_result, launch_result=launch_result)

    def preflight(self, workspace: Path) -> None:
        self.state = HostState.PREFLIGHT_CHECK
        if not workspace.is_dir():
            raise PreflightError(
                f"Configured workspace directory {str(workspace)!r} doesn't exist.",
            )

        stale_result = workspace / TASK_RESULT_FILE_NAME
        if not stale_result.exists():
            return
        logger.warning("%s already exists", stale_result)
        confirmed = self.confirm_stale_removal is not None and self.confirm_stale_removal(
            stale_result,
        )
        if not confirmed:
            raise PreflightError(f"{stale_result} already exists; cannot proceed.")
        try:
            stale_result.unlink()
        except OSError as error:
            raise PreflightError(f"Cannot remove stale result {stale_result}: {error}") from error
        logger.info("Removed stale result %s", stale_result)

    def write_task(self, request: HostRunRequest) -> Task:
        task = Task(id=request.task_id, args=list(request.args), files=list(request.files))
        try:
            write_task(request.workspace / TASK_FILE_NAME, task)
        except OSError as error:
            raise PreflightError(f"Cannot write task descriptor: {error}") from error
        self.state = HostState.DESCRIPTOR_WRITTEN
        logger.info("Wrote task %s descriptor to %s", task.id, request.workspace)
        return task

    def launch(self, request: HostRunRequest) -> LaunchResult:
        """Boot the VM and block until it exits; the exit status is only logged."""

        self.state = HostState.VM_RUNNING
        launch_request = LaunchRequest(
            program_image=request.program_image,
            workspace=request.workspace,
            resources=request.resources,
            devices=tuple(request.devices),
            mount_tag=self.mount_tag,
            timeout_seconds=request.timeout_seconds,
            graceful_shutdown_seconds=request.graceful_shutdown_seconds,
        )
        try:
            result = self.launcher.launch(launch_request)
        except LaunchError as error:
            raise MissingResultError(f"VM did not start: {error}") from error
        logger.info(
            "VM exit status: %s (timed_out=%s elapsed=%.1fs)",
            result.exit_code,
            result.timed_out,
            result.elapsed_seconds,
        )
        return result

    def collect_result(
        self,
        workspace: Path,
        *,
        task_id: str | None = None,
        launch_result: LaunchResult | None = None,
    ) -> TaskResult:
        """Read the result envelope left by the guest."""

        result_path = workspace / TASK_RESULT_FILE_NAME
        exit_code = launch_result.exit_code if launch_result is not None else None
        try:
            envelope = read_result_envelope(result_path)
        except FileNotFoundError as error:
            raise MissingResultError(
                f"{result_path} was not produced (VM exit status: {exit_code})",
                exit_code=exit_code,
            ) from error
        except OSError as error:
            raise MissingResultError(
                f"Cannot read {result_path}: {error}",
                exit_code=exit_code,
            ) from error

        if envelope.result is None:
            logger.warning("Task %s reported failure: %s", task_id, envelope.error)
            raise CallbackError(str(envelope.error), task_id=task_id)
        if task_id is not None and envelope.result.id != task_id:
            raise DecodeError(
                f"result id {envelope.result.id!r} does not match task id {task_id!r}",
            )
        self.state = HostState.RESULT_COLLECTED
        logger.info("Collected result for task %s", envelope.result.id)
        return envelope.result
