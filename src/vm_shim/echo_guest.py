"""Demo guest program echoing its task back through the workspace."""

from __future__ import annotations

import argparse
import logging
import shutil
import sys

from vm_shim.config import GuestSettings
from vm_shim.contracts import Task, TaskResult
from vm_shim.errors import ShimError
from vm_shim.guest import GuestRuntime
from vm_shim.logging_setup import setup_logging

logger = logging.getLogger(__name__)

ECHO_SUFFIX = ".echo"


class EchoExecutor:
    """Return task args as data and copy each present input file to ``<name>.echo``."""

    def __init__(self, settings: GuestSettings) -> None:
        self.settings = settings

    def execute(self, task: Task) -> TaskResult:
        parser = argparse.ArgumentParser(
            prog="echo-guest",
            add_help=False,
            allow_abbrev=False,
            exit_on_error=False,
        )
        parser.add_argument("--fail", default=None)
        known, _ = parser.parse_known_args(task.args)
        if known.fail is not None:
            raise RuntimeError(known.fail)

        outputs: list[str] = []
        for name, path in task.get_task_files_path(self.settings.workspace_path):
            if not path.is_file():
                logger.warning("Input file %s is missing; skipping", name)
                continue
            shutil.copyfile(path, path.with_name(path.name + ECHO_SUFFIX))
            outputs.append(name + ECHO_SUFFIX)

        return task.result(" ".join(task.args).encode("utf-8"), outputs)


def main(argv: list[str] | None = None) -> int:
    """Run the guest lifecycle with the echo executor."""

    parser = argparse.ArgumentParser()
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        settings = GuestSettings.from_env()
        GuestRuntime(EchoExecutor(settings), settings).run()
    except (ShimError, OSError, ValueError) as error:
        logger.error("Guest failed: %s", error)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
