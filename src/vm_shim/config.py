"""Runtime configuration for host and guest sides of the handoff."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_WORKSPACE_PATH = Path("/workspace")
SUPPORTED_LAUNCHERS = ("qemu", "local")


@dataclass(slots=True)
class GuestSettings:
    """Guest runtime settings."""

    workspace_path: Path = DEFAULT_WORKSPACE_PATH
    mount_point: str = str(DEFAULT_WORKSPACE_PATH)
    mount_table_path: Path = Path("/proc/mounts")
    mount_timeout_seconds: float = 30.0
    mount_poll_interval_seconds: float = 1.0

    @classmethod
    def from_env(cls) -> GuestSettings:
        workspace_path = Path(os.getenv("VM_SHIM_WORKSPACE_PATH", str(DEFAULT_WORKSPACE_PATH)))
        return cls(
            workspace_path=workspace_path,
            mount_point=os.getenv("VM_SHIM_MOUNT_POINT", str(workspace_path)),
            mount_table_path=Path(os.getenv("VM_SHIM_MOUNT_TABLE", "/proc/mounts")),
            mount_timeout_seconds=_env_float("VM_SHIM_MOUNT_TIMEOUT_SECONDS", 30.0),
            mount_poll_interval_seconds=_env_float("VM_SHIM_MOUNT_POLL_INTERVAL_SECONDS", 1.0),
        )


@dataclass(slots=True)
class HostSettings:
    """VM launch settings used by the host orchestrator."""

    qemu_binary: str = "qemu-system-x86_64"
    smp: int = 1
    mem_mb: int = 512
    mount_tag: str = "0"
    launch_timeout_seconds: float | None = None
    graceful_shutdown_seconds: float = 2.0
    launcher: str = "qemu"
    local_guest_command: tuple[str, ...] = ()

    @classmethod
    def from_env(cls) -> HostSettings:
        return cls(
            qemu_binary=os.getenv("VM_SHIM_QEMU_BINARY", "qemu-system-x86_64"),
            smp=_env_int("VM_SHIM_SMP", 1),
            mem_mb=_env_int("VM_SHIM_MEM_MB", 512),
            mount_tag=os.getenv("VM_SHIM_MOUNT_TAG", "0"),
            launch_timeout_seconds=_env_optional_float("VM_SHIM_LAUNCH_TIMEOUT_SECONDS"),
            graceful_shutdown_seconds=_env_float("VM_SHIM_GRACEFUL_SHUTDOWN_SECONDS", 2.0),
            launcher=os.getenv("VM_SHIM_LAUNCHER", "qemu").strip().lower(),
            local_guest_command=tuple(shlex.split(os.getenv("VM_SHIM_LOCAL_GUEST_COMMAND", ""))),
        )


@dataclass(slots=True)
class Settings:
    """Application settings grouped by side of the handoff."""

    guest: GuestSettings = field(default_factory=GuestSettings)
    host: HostSettings = field(default_factory=HostSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults matching the stock guest image."""

        return cls(guest=GuestSettings.from_env(), host=HostSettings.from_env())

    def validate(self) -> None:
        """Raise configuration error for non-positive timeouts and sizes."""

        if self.guest.mount_timeout_seconds <= 0:
            raise ValueError("VM_SHIM_MOUNT_TIMEOUT_SECONDS must be > 0.")
        if self.guest.mount_poll_interval_seconds <= 0:
            raise ValueError("VM_SHIM_MOUNT_POLL_INTERVAL_SECONDS must be > 0.")
        if not self.guest.mount_point.strip():
            raise ValueError("VM_SHIM_MOUNT_POINT must not be empty.")
        if self.host.smp <= 0:
            raise ValueError("VM_SHIM_SMP must be a positive integer.")
        if self.host.mem_mb <= 0:
            raise ValueError("VM_SHIM_MEM_MB must be a positive integer.")
        if self.host.launch_timeout_seconds is not None and self.host.launch_timeout_seconds <= 0:
            raise ValueError("VM_SHIM_LAUNCH_TIMEOUT_SECONDS must be > 0 when set.")
        if self.host.graceful_shutdown_seconds < 0:
            raise ValueError("VM_SHIM_GRACEFUL_SHUTDOWN_SECONDS must be >= 0.")
        if self.host.launcher not in SUPPORTED_LAUNCHERS:
            raise ValueError(
                f"VM_SHIM_LAUNCHER must be one of {', '.join(SUPPORTED_LAUNCHERS)}: "
                f"{self.host.launcher!r}",
            )


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_float(name: str, default: float) -> float:
    value = _env_optional_float(name)
    return default if value is None else value


def _env_optional_float(name: str) -> float | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError as error:
        raise ValueError(f"Invalid number for {name}: {value!r}") from error
