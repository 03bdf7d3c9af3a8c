"""VM launcher implementations."""

from vm_shim.launcher.base import LaunchRequest, LaunchResult, ResourceProfile, VmLauncher
from vm_shim.launcher.local import LocalProcessLauncher
from vm_shim.launcher.qemu import QemuLauncher, build_qemu_args

__all__ = [
    "LaunchRequest",
    "LaunchResult",
    "LocalProcessLauncher",
    "QemuLauncher",
    "ResourceProfile",
    "VmLauncher",
    "build_qemu_args",
]
