"""QEMU launcher booting the program image with the workspace shared over virtfs."""

from __future__ import annotations

import logging
import shlex

from vm_shim.launcher.base import LaunchRequest, LaunchResult
from vm_shim.launcher.process import run_process

logger = logging.getLogger(__name__)

DEFAULT_QEMU_BINARY = "qemu-system-x86_64"


class QemuLauncher:
    """Boot one guest under QEMU and wait for it to power off."""

    def __init__(self, qemu_binary: str = DEFAULT_QEMU_BINARY) -> None:
        self.qemu_binary = qemu_binary

    def launch(self, request: LaunchRequest) -> LaunchResult:
        argv = build_qemu_args(request, qemu_binary=self.qemu_binary)
        logger.debug("Starting VM: %s", shlex.join(argv))
        return run_process(
            argv,
            timeout_seconds=request.timeout_seconds,
            graceful_shutdown_seconds=request.graceful_shutdown_seconds,
        )


def build_qemu_args(request: LaunchRequest, *, qemu_binary: str = DEFAULT_QEMU_BINARY) -> list[str]:
    """Render the QEMU command line for ``request``."""

    argv = [
        qemu_binary,
        "-machine", "q35",
        "-device",
        "pcie-root-port,port=0x10,chassis=1,id=pci.1,bus=pcie.0,multifunction=on,addr=0x3",
        "-device", "pcie-root-port,port=0x11,chassis=2,id=pci.2,bus=pcie.0,addr=0x3.0x1",
        "-device", "pcie-root-port,port=0x12,chassis=3,id=pci.3,bus=pcie.0,addr=0x3.0x2",
        # program image is attached read-only over virtio-scsi
        "-device", "virtio-scsi-pci,bus=pci.2,addr=0x0,id=scsi0",
        "-device", "scsi-hd,bus=scsi0.0,drive=hd0",
        "-vga", "none",
        "-smp", str(request.resources.smp),
        "-device", "isa-debug-exit",
        "-m", f"{request.resources.mem_mb}M",
        "-device", "virtio-rng-pci",
        "-machine", "accel=kvm:tcg",
        "-cpu", "max",
        "-drive", f"file={request.program_image},format=raw,if=none,id=hd0,readonly=on",
        "-display", "none",
        "-serial", "stdio",
        "-virtfs",
        (
            f"local,path={request.workspace},mount_tag={request.mount_tag},"
            "security_model=none,multidevs=remap,id=hd0"
        ),
    ]  # fmt: skip
    for device in request.devices:
        argv.extend(["-device", f"vfio-pci,rombar=0,host={device}"])
    return argv
