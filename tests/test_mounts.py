from __future__ import annotations

from pathlib import Path

import allure
import pytest

from vm_shim.errors import MountTimeoutError
from vm_shim.mounts import is_mounted, wait_for_mount

pytestmark = [
    allure.epic("Task Handoff"),
    allure.feature("Mount Readiness"),
]


def _table(tmp_path: Path, *lines: str) -> Path:
    path = tmp_path / "mounts"
    path.write_text("".join(f"{line}\n" for line in lines), "utf-8")
    return path


def test_is_mounted_finds_mount_point(tmp_path: Path) -> None:
    table = _table(
        tmp_path,
        "proc /proc proc rw 0 0",
        "0 /workspace 9p rw,trans=virtio 0 0",
    )

    assert is_mounted("/workspace", mount_table=table)
    assert not is_mounted("/data", mount_table=table)


def test_is_mounted_uses_substring_match(tmp_path: Path) -> None:
    table = _table(tmp_path, "0 /mnt/workspace-old 9p rw 0 0")

    assert is_mounted("/workspace", mount_table=table)


def test_is_mounted_propagates_unreadable_table(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        is_mounted("/workspace", mount_table=tmp_path / "absent")


def test_wait_for_mount_times_out_after_ceiling_and_not_before(tmp_path: Path, fake_clock) -> None:
    table = _table(tmp_path, "proc /proc proc rw 0 0")

    with pytest.raises(MountTimeoutError, match="/workspace mount timeout"):
        wait_for_mount(
            "/workspace",
            timeout_seconds=30.0,
            poll_interval_seconds=1.0,
            mount_table=table,
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )

    assert fake_clock.now > 30.0
    assert fake_clock.now <= 31.0
    assert fake_clock.sleeps == [1.0] * 31


def test_wait_for_mount_returns_once_mount_appears(tmp_path: Path, fake_clock) -> None:
    table = _table(tmp_path, "proc /proc proc rw 0 0")
    appear_after_polls = 5

    def sleep(seconds: float) -> None:
        fake_clock.sleep(seconds)
        if len(fake_clock.sleeps) == appear_after_polls:
            table.write_text("0 /workspace 9p rw 0 0\n", "utf-8")

    elapsed = wait_for_mount(
        "/workspace",
        timeout_seconds=30.0,
        poll_interval_seconds=1.0,
        mount_table=table,
        clock=fake_clock,
        sleep=sleep,
    )

    assert elapsed == pytest.approx(5.0)
    assert len(fake_clock.sleeps) == appear_after_polls


def test_wait_for_mount_already_present_does_not_sleep(tmp_path: Path, fake_clock) -> None:
    table = _table(tmp_path, "0 /workspace 9p rw 0 0")

    elapsed = wait_for_mount(
        "/workspace",
        mount_table=table,
        clock=fake_clock,
        sleep=fake_clock.sleep,
    )

    assert elapsed == 0.0
    assert fake_clock.sleeps == []


def test_wait_for_mount_can_be_cancelled(tmp_path: Path, fake_clock) -> None:
    table = _table(tmp_path, "proc /proc proc rw 0 0")

    with pytest.raises(MountTimeoutError, match="cancelled"):
        wait_for_mount(
            "/workspace",
            mount_table=table,
            shutdown_requested=lambda: len(fake_clock.sleeps) >= 3,
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )

    assert len(fake_clock.sleeps) == 3


def test_wait_for_mount_propagates_io_error(tmp_path: Path, fake_clock) -> None:
    with pytest.raises(OSError):
        wait_for_mount(
            "/workspace",
            mount_table=tmp_path / "absent",
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )
