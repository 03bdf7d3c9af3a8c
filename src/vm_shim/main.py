"""CLI entrypoint for vm-shim."""

from pathlib import Path

import rich_click as click

from vm_shim import __version__
from vm_shim.config import SUPPORTED_LAUNCHERS
from vm_shim.controllers import HostCliController, RunTaskCommand
from vm_shim.logging_setup import setup_logging

click.rich_click.USE_MARKDOWN = True
HOST_CONTROLLER = HostCliController()


@click.group()
@click.version_option(version=__version__, prog_name="vm-shim")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Logging verbosity (logs go to stderr).",
)
def vm_shim(log_level: str) -> None:
    """Run one task inside an ephemeral VM through a shared workspace."""

    setup_logging(log_level)


@vm_shim.command("run", context_settings={"ignore_unknown_options": True})
@click.option(
    "--workspace",
    "-w",
    type=click.Path(path_type=Path),
    required=True,
    help="Workspace directory shared with the VM.",
)
@click.option(
    "--file",
    "-f",
    "files",
    multiple=True,
    help="File (relative to the workspace) to be added to program execution. Can be repeated.",
)
@click.option("--gpu", "-g", "gpus", multiple=True, help="PCI device path to GPU device.")
@click.option(
    "--smp",
    "-s",
    type=click.IntRange(min=1),
    default=None,
    help="Number of CPU cores to allocate to VM.  [default: 1]",
)
@click.option(
    "--mem",
    "-m",
    type=click.IntRange(min=1),
    default=None,
    help="Memory in MBs.  [default: 512]",
)
@click.option(
    "--task-id",
    default="task01",
    show_default=True,
    help="Task ID to be used in the task descriptor.",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Kill the VM after this many seconds. Waits forever when omitted.",
)
@click.option("--qemu-binary", default=None, help="QEMU executable to run.")
@click.option(
    "--launcher",
    type=click.Choice(SUPPORTED_LAUNCHERS),
    default=None,
    help="VM launcher; `local` runs the program as a host subprocess.",
)
@click.option("--yes", "-y", is_flag=True, help="Remove a stale task_result.json without asking.")
@click.argument("program", type=click.Path(path_type=Path))
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def run(  # noqa: PLR0913
    workspace: Path,
    files: tuple[str, ...],
    gpus: tuple[str, ...],
    smp: int | None,
    mem: int | None,
    task_id: str,
    timeout: float | None,
    qemu_binary: str | None,
    launcher: str | None,
    yes: bool,
    program: Path,
    args: tuple[str, ...],
) -> None:
    """Write a task descriptor, boot PROGRAM and print the task result.

    Program arguments go after `--`.
    """

    try:
        result = HOST_CONTROLLER.run_task(
            RunTaskCommand(
                workspace=workspace,
                program=program,
                task_id=task_id,
                args=args,
                files=files,
                devices=gpus,
                smp=smp,
                mem_mb=mem,
                timeout_seconds=timeout,
                qemu_binary=qemu_binary,
                launcher=launcher,
            ),
            confirm_stale_removal=_auto_confirm if yes else _confirm_stale_removal,
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException(f"Task run failed ({result.failure_class}).")


def _confirm_stale_removal(path: Path) -> bool:
    click.echo(f"{path} already exists", err=True)
    answer = click.prompt(
        "Do you want to remove it (yes/no)?",
        default="",
        show_default=False,
    )
    return answer == "yes"


def _auto_confirm(_path: Path) -> bool:
    return True


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    vm_shim()
