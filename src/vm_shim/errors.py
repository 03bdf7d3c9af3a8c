"""Error taxonomy shared by host and guest sides of the handoff."""

from __future__ import annotations

from enum import Enum


class FailureClass(str, Enum):
    """Normalized failure classes surfaced to the host's caller."""

    PREFLIGHT = "preflight"
    MOUNT_TIMEOUT = "mount_timeout"
    DECODE = "decode"
    CALLBACK = "callback"
    TRANSPORT = "transport"


class ShimError(RuntimeError):
    """Base class for all handoff protocol failures."""

    failure_class: FailureClass = FailureClass.TRANSPORT


class PreflightError(ShimError):
    """Workspace is not usable for a new task."""

    failure_class = FailureClass.PREFLIGHT


class MountTimeoutError(ShimError):
    """Workspace mount did not appear before the wait ceiling."""

    failure_class = FailureClass.MOUNT_TIMEOUT


class DecodeError(ShimError, ValueError):
    """Descriptor file could not be decoded."""

    failure_class = FailureClass.DECODE


class CallbackError(ShimError):
    """Guest callback reported a failure through the result envelope."""

    failure_class = FailureClass.CALLBACK

    def __init__(self, message: str, *, task_id: str | None = None) -> None:
        super().__init__(message)
        self.task_id = task_id


class TransportError(ShimError):
    """VM never produced a usable result."""

    failure_class = FailureClass.TRANSPORT


class LaunchError(TransportError):
    """VM launcher failed to start the guest."""


class MissingResultError(TransportError):
    """Result descriptor is absent after the VM exited."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code
