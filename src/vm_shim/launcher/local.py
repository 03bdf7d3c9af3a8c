"""Run a guest program as a plain host subprocess, without a hypervisor."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path

from vm_shim.launcher.base import LaunchRequest, LaunchResult
from vm_shim.launcher.process import run_process

logger = logging.getLogger(__name__)


class LocalProcessLauncher:
    """Execute the guest directly, simulating the workspace mount.

    ``command`` replaces the program image as the argv to run; when omitted the
    image path itself is executed. The child sees the workspace through
    ``VM_SHIM_WORKSPACE_PATH`` and a private mount table listing it.
    """

    def __init__(self, command: Sequence[str] | None = None) -> None:
        self.command = list(command) if command is not None else None

    def launch(self, request: LaunchRequest) -> LaunchResult:
        workspace = str(request.workspace.resolve())
        argv = self.command or [str(request.program_image)]
        with tempfile.TemporaryDirectory(prefix="vm-shim-") as scratch:
            mount_table = Path(scratch) / "mounts"
            mount_table.write_text(
                f"{request.mount_tag} {workspace} 9p rw,relatime,trans=virtio 0 0\n",
                "utf-8",
            )
            env = os.environ.copy()
            env["VM_SHIM_WORKSPACE_PATH"] = workspace
            env["VM_SHIM_MOUNT_POINT"] = workspace
            env["VM_SHIM_MOUNT_TABLE"] = str(mount_table)
            logger.debug("Starting local guest: %s", argv)
            return run_process(
                argv,
                timeout_seconds=request.timeout_seconds,
                graceful_shutdown_seconds=request.graceful_shutdown_seconds,
                env=env,
            )
