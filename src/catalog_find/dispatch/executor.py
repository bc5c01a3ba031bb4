"""Subprocess-based executor for rendered shell commands."""

from __future__ import annotations

import logging
import subprocess
from typing import Protocol

from catalog_find.errors import DispatchError

logger = logging.getLogger(__name__)


class CommandExecutor(Protocol):
    """Protocol implemented by command executors."""

    def run_shell(self, command: str) -> int:
        """Run command through the shell and return its exit status.

        A negative status ``-N`` means the child was terminated by signal ``N``.
        """


class ShellExecutor:
    """Run commands with ``/bin/sh -c`` and wait for completion."""

    def __init__(self, *, shell: str | None = None) -> None:
        self.shell = shell

    def run_shell(self, command: str) -> int:
        if not command:
            raise DispatchError("Command is the empty string")
        logger.debug("Running command %r", command)
        try:
            process = subprocess.Popen(  # noqa: S602
                command,
                shell=True,
                executable=self.shell,
            )
        except OSError as error:
            raise DispatchError(
                f"There was a system error running {command!r}: {error}",
            ) from error
        return process.wait()
