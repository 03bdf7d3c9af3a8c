"""Subprocess wait helpers shared by launchers."""

from __future__ import annotations

import logging
import subprocess
import time
from collections.abc import Mapping, Sequence

from vm_shim.errors import LaunchError
from vm_shim.launcher.base import LaunchResult

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124
_POLL_INTERVAL_SECONDS = 0.1


def run_process(
    argv: Sequence[str],
    *,
    timeout_seconds: float | None,
    graceful_shutdown_seconds: float,
    env: Mapping[str, str] | None = None,
) -> LaunchResult:
    """Start ``argv`` and block until it exits or the optional timeout elapses.

    On timeout the process gets SIGTERM, then SIGKILL after the grace period.
    """

    try:
        process = subprocess.Popen(list(argv), env=dict(env) if env is not None else None)  # noqa: S603
    except FileNotFoundError as error:
        raise LaunchError(f"launcher command not found: {argv[0]}") from error
    except OSError as error:
        raise LaunchError(f"launcher failed to start: {error}") from error

    started = time.monotonic()
    if timeout_seconds is None:
        returncode = process.wait()
        return LaunchResult(
            exit_code=returncode,
            timed_out=False,
            elapsed_seconds=time.monotonic() - started,
        )

    while True:
        returncode = process.poll()
        elapsed = time.monotonic() - started
        if returncode is not None:
            return LaunchResult(exit_code=returncode, timed_out=False, elapsed_seconds=elapsed)

        if elapsed >= timeout_seconds:
            logger.warning("Process %s timed out after %.1fs; terminating", process.pid, elapsed)
            _terminate_process(process, graceful_shutdown_seconds)
            return LaunchResult(
                exit_code=TIMEOUT_EXIT_CODE,
                timed_out=True,
                elapsed_seconds=time.monotonic() - started,
            )

        time.sleep(_POLL_INTERVAL_SECONDS)


def _terminate_process(process: subprocess.Popen[bytes], grace_seconds: float) -> None:
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=grace_seconds)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.wait(timeout=2)
