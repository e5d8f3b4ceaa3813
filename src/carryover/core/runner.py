"""Command execution on top of invoke."""

from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from carryover.core.log import logger

TIMED_OUT = -1


class Runner(Context):
    """invoke.Context with a single execute() entry point.

    All git invocations go through here so that output capture,
    timeouts and debug logging behave the same everywhere.
    """

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        check: bool = True,
    ) -> Result:
        """Run a shell command.

        Args:
            command: Command string to execute
            cwd: Working directory for the command
            timeout: Maximum execution time in seconds
            check: Raise invoke.UnexpectedExit on non-zero exit

        Returns:
            invoke.Result; a timed out command has exited == -1
        """
        kwargs = {
            "hide": True,
            "warn": not check,
            "in_stream": False,
        }
        if timeout:
            kwargs["timeout"] = timeout

        logger.trace("Running command", command=command, cwd=str(cwd))
        try:
            if cwd:
                with self.cd(str(cwd)):
                    result = self.run(command, **kwargs)
            else:
                result = self.run(command, **kwargs)
        except CommandTimedOut as e:
            logger.warn(
                "Command timed out", command=command, timeout=timeout
            )
            result = e.result
            result.exited = TIMED_OUT

        return result
