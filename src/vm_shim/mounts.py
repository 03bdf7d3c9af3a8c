"""Guest-side mount readiness polling."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

from vm_shim.errors import MountTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_MOUNT_TABLE = Path("/proc/mounts")


def is_mounted(mount_point: str, *, mount_table: Path = DEFAULT_MOUNT_TABLE) -> bool:
    """Return True when any mount table line contains ``mount_point``.

    Matching is substring containment, not path equality: a tag that appears
    inside a longer path also matches. An unreadable mount table raises
    ``OSError`` instead of reporting "not mounted".
    """

    with mount_table.open(encoding="utf-8", errors="replace") as handle:
        for line in handle:
            if mount_point in line:
                return True
    return False


def wait_for_mount(  # noqa: PLR0913
    mount_point: str,
    *,
    timeout_seconds: float = 30.0,
    poll_interval_seconds: float = 1.0,
    mount_table: Path = DEFAULT_MOUNT_TABLE,
    shutdown_requested: Callable[[], bool] | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> float:
    """Block until ``mount_point`` is mounted and return the elapsed wait."""

    logger.info("Waiting for %s mount to be present", mount_point)
    started = clock()
    while True:
        elapsed = clock() - started
        if elapsed > timeout_seconds:
            logger.error("%s mount timeout after %.1fs", mount_point, elapsed)
            raise MountTimeoutError(
                f"{mount_point} mount timeout after {elapsed:.1f}s "
                f"(limit {timeout_seconds:.1f}s)",
            )
        if shutdown_requested is not None and shutdown_requested():
            raise MountTimeoutError(f"wait for {mount_point} mount cancelled")

        if is_mounted(mount_point, mount_table=mount_table):
            logger.info("%s mount is now present", mount_point)
            return elapsed

        sleep(poll_interval_seconds)
