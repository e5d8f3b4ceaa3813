"""Formatting and running git command templates."""

from __future__ import annotations

import shlex
from pathlib import Path

from invoke import Result

from carryover.core.errors import BackendFailure
from carryover.core.log import logger
from carryover.core.runner import TIMED_OUT, Runner


class GitCommand:
    """Runs the `commands.git` templates against one working directory.

    Templates come from configuration, e.g.

        cherry_pick: git cherry-pick --allow-empty {sha}

    Every parameter is shell-quoted before substitution; list
    parameters expand to several quoted arguments.
    """

    def __init__(
        self,
        workdir: Path,
        templates: dict[str, str],
        runner: Runner | None = None,
    ):
        self.workdir = Path(workdir)
        self.templates = templates
        self.runner = runner or Runner()

    def format(self, name: str, **params) -> str:
        try:
            template = self.templates[name]
        except KeyError:
            raise BackendFailure(
                f"no git command template named '{name}'"
            ) from None

        quoted = {}
        for key, value in params.items():
            if isinstance(value, (list, tuple)):
                quoted[key] = " ".join(shlex.quote(str(v)) for v in value)
            else:
                quoted[key] = shlex.quote(str(value))
        return template.format(**quoted)

    def run(
        self,
        name: str,
        operation: str,
        check: bool = True,
        timeout: int | None = None,
        **params,
    ) -> Result:
        """Run template `name`.

        Args:
            name: Template key under commands.git
            operation: Human description used in errors
            check: Raise BackendFailure on non-zero exit
            timeout: Seconds before the command is killed
            **params: Values substituted into the template

        Raises:
            BackendFailure: If check is set and the command fails
        """
        command = self.format(name, **params)
        result = self.runner.execute(
            command, cwd=self.workdir, timeout=timeout, check=False
        )
        if result.exited != 0:
            logger.debug(
                "git command failed",
                command=command,
                exit_code=result.exited,
                output=(result.stdout + result.stderr)[-4000:],
            )
            if check:
                raise BackendFailure(operation, describe_failure(result))
        return result


def describe_failure(result: Result) -> str:
    if result.exited == TIMED_OUT:
        return "timed out"
    return (result.stderr.strip() or result.stdout.strip()
            or f"exit code {result.exited}")
