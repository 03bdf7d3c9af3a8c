"""VM launcher interface used by the host orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol


@dataclass(slots=True)
class ResourceProfile:
    """CPU and memory allotted to the VM."""

    smp: int = 1
    mem_mb: int = 512


@dataclass(slots=True)
class LaunchRequest:
    """Inputs required to boot one guest."""

    program_image: Path
    workspace: Path
    resources: ResourceProfile = field(default_factory=ResourceProfile)
    devices: tuple[str, ...] = ()
    mount_tag: str = "0"
    timeout_seconds: float | None = None
    graceful_shutdown_seconds: float = 2.0


@dataclass(slots=True)
class LaunchResult:
    """Exit metadata reported once the VM process is gone."""

    exit_code: int
    timed_out: bool
    elapsed_seconds: float


class VmLauncher(Protocol):
    """Protocol implemented by VM launchers."""

    def launch(self, request: LaunchRequest) -> LaunchResult:
        """Boot the guest and block until it exits."""
