"""Host/guest task handoff through a shared workspace directory."""

from vm_shim.contracts import (
    TASK_FILE_NAME,
    TASK_RESULT_FILE_NAME,
    ResultEnvelope,
    Task,
    TaskResult,
)
from vm_shim.errors import (
    CallbackError,
    DecodeError,
    FailureClass,
    LaunchError,
    MissingResultError,
    MountTimeoutError,
    PreflightError,
    ShimError,
    TransportError,
)
from vm_shim.guest import CallbackExecutor, GuestRuntime, TaskExecutor, run
from vm_shim.host import HostOrchestrator, HostRunRequest, HostRunResult

__version__ = "0.1.0"

__all__ = [
    "TASK_FILE_NAME",
    "TASK_RESULT_FILE_NAME",
    "CallbackError",
    "CallbackExecutor",
    "DecodeError",
    "FailureClass",
    "GuestRuntime",
    "HostOrchestrator",
    "HostRunRequest",
    "HostRunResult",
    "LaunchError",
    "MissingResultError",
    "MountTimeoutError",
    "PreflightError",
    "ResultEnvelope",
    "ShimError",
    "Task",
    "TaskExecutor",
    "TaskResult",
    "TransportError",
    "__version__",
    "run",
]
