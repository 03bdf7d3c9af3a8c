"""Controllers for host CLI commands."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from vm_shim.config import Settings
from vm_shim.errors import CallbackError, MissingResultError, ShimError
from vm_shim.host import HostOrchestrator, HostRunRequest
from vm_shim.launcher import LocalProcessLauncher, QemuLauncher, ResourceProfile, VmLauncher


@dataclass(slots=True)
class RunTaskCommand:
    """CLI input for a single VM task run."""

    workspace: Path
    program: Path
    task_id: str
    args: tuple[str, ...]
    files: tuple[str, ...]
    devices: tuple[str, ...]
    smp: int | None
    mem_mb: int | None
    timeout_seconds: float | None
    qemu_binary: str | None
    launcher: str | None = None


@dataclass(slots=True)
class RunTaskResult:
    """Run report to render in CLI."""

    lines: list[str]
    success: bool
    failure_class: str | None = None


class HostCliController:
    """Builds the orchestrator from settings and renders its outcome."""

    def __init__(
        self,
        launcher_factory: Callable[[Settings, RunTaskCommand], VmLauncher] | None = None,
    ) -> None:
        self.launcher_factory = launcher_factory or build_launcher

    def run_task(
        self,
        command: RunTaskCommand,
        *,
        confirm_stale_removal: Callable[[Path], bool] | None = None,
    ) -> RunTaskResult:
        settings = Settings.from_env()
        settings.validate()
        orchestrator = HostOrchestrator(
            self.launcher_factory(settings, command),
            confirm_stale_removal=confirm_stale_removal,
            mount_tag=settings.host.mount_tag,
        )
        request = HostRunRequest(
            workspace=command.workspace,
            program_image=command.program,
            task_id=command.task_id,
            args=command.args,
            files=command.files,
            resources=ResourceProfile(
                smp=command.smp if command.smp is not None else settings.host.smp,
                mem_mb=command.mem_mb if command.mem_mb is not None else settings.host.mem_mb,
            ),
            devices=command.devices,
            timeout_seconds=(
                command.timeout_seconds
                if command.timeout_seconds is not None
                else settings.host.launch_timeout_seconds
            ),
            graceful_shutdown_seconds=settings.host.graceful_shutdown_seconds,
        )

        try:
            outcome = orchestrator.run(request)
        except CallbackError as error:
            return RunTaskResult(
                lines=[f"Task {command.task_id} failed (callback): {error}"],
                success=False,
                failure_class=error.failure_class.value,
            )
        except MissingResultError as error:
            lines = [f"Task {command.task_id} produced no result (transport): {error}"]
            return RunTaskResult(
                lines=lines,
                success=False,
                failure_class=error.failure_class.value,
            )
        except ShimError as error:
            return RunTaskResult(
                lines=[f"Task {command.task_id} failed ({error.failure_class.value}): {error}"],
                success=False,
                failure_class=error.failure_class.value,
            )

        result = outcome.task_result
        lines = [
            f"Task {result.id} succeeded: exit_code={outcome.launch_result.exit_code} "
            f"data_bytes={len(result.data)}",
            f"data: {result.data.decode('utf-8', errors='replace')}",
        ]
        lines.extend(f"file: {name}" for name in result.files)
        return RunTaskResult(lines=lines, success=True)


def build_launcher(settings: Settings, command: RunTaskCommand) -> VmLauncher:
    """Pick the launcher named on the command line or in settings."""

    launcher = command.launcher or settings.host.launcher
    if launcher == "local":
        return LocalProcessLauncher(settings.host.local_guest_command or None)
    if launcher == "qemu":
        return QemuLauncher(command.qemu_binary or settings.host.qemu_binary)
    raise ValueError(f"Unsupported launcher: {launcher!r}")
