"""Shared test fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from vm_shim.config import GuestSettings

ECHO_GUEST_COMMAND = (sys.executable, "-m", "vm_shim.echo_guest")


class FakeClock:
    """Monotonic clock advanced only by ``sleep``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def workspace(tmp_path: Path) -> Path:
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture()
def mount_table(tmp_path: Path, workspace: Path) -> Path:
    """Mount table listing the workspace the way a 9p share appears in the guest."""

    path = tmp_path / "mounts"
    path.write_text(
        "proc /proc proc rw,nosuid,nodev,noexec,relatime 0 0\n"
        f"0 {workspace} 9p rw,relatime,trans=virtio 0 0\n",
        "utf-8",
    )
    return path


@pytest.fixture()
def guest_settings(workspace: Path, mount_table: Path) -> GuestSettings:
    return GuestSettings(
        workspace_path=workspace,
        mount_point=str(workspace),
        mount_table_path=mount_table,
        mount_timeout_seconds=2.0,
        mount_poll_interval_seconds=0.01,
    )


@pytest.fixture()
def echo_guest_command() -> tuple[str, ...]:
    return ECHO_GUEST_COMMAND
