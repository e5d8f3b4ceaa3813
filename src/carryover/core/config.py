"""Application state and configuration."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, PositiveInt, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from carryover.core.base import BaseConfig, BaseState
from carryover.core.log import Logger
from carryover.core.yaml_settings import YamlWithIncludesSettingsSource
from carryover.git.model import Commit
from carryover.rebase.outcome import (
    Errored,
    NotAttempted,
    Outcome,
    RebaseReport,
    SessionStatus,
)

# Modules reachable from {module.attr} templates in YAML values,
# e.g. {platformdirs.user_state_dir}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}

# ============================================================
# CONFIG MODELS (loaded from YAML/env/CLI)
# ============================================================


class GitConfig(BaseConfig):
    """Repository and ref configuration."""

    repository: Path = Field(
        default=Path("."),
        description="Path to the downstream repository working directory",
    )
    from_ref: str = Field(
        default="",
        description=(
            "Upstream-side starting reference; commits reachable from "
            "it are not replayed (e.g. the previous upstream tag)"
        ),
    )
    upstream_ref: str = Field(
        default="refs/remotes/upstream/master",
        description="Upstream ref the rebase branch is created from",
    )
    downstream_ref: str = Field(
        default="openshift/master",
        description="Fork branch whose carries are replayed",
    )
    branch_prefix: str = Field(
        default="rebase",
        description="Rebase branch name prefix; the date is appended",
    )
    merge_strategy: str | None = Field(
        default="ours",
        description=(
            "Strategy used to merge the fork branch into the rebase "
            "branch. 'ours' records history without content"
        ),
    )
    stop_at: str | None = Field(
        default=None,
        description="Oldest commit hash to consider (inclusive)",
    )


class RemotesConfig(BaseConfig):
    """Expected remotes of the downstream repository."""

    verify: bool = Field(
        default=False,
        description="Check remote fetch URLs before creating the branch",
    )
    expected: dict[str, str] = Field(
        default_factory=dict,
        description="Remote name -> substring its fetch URL must contain",
    )


class CarriesConfig(BaseConfig):
    """Resolution patch store configuration."""

    directory: Path = Field(
        default=Path("carries"),
        description=(
            "Directory of resolution patches named by full commit "
            "hash; relative paths resolve against the current directory"
        ),
    )
    commit_url: str = Field(
        default="https://github.com/openshift/kubernetes/commit/{sha}",
        description="Link printed for carries that need manual work",
    )
    annotate: bool = Field(
        default=True,
        description=(
            "Add a Carry-Resolution trailer to commits rebuilt from a "
            "resolution patch"
        ),
    )


class PolicyConfig(BaseConfig):
    """Failure handling policy."""

    max_consecutive_failures: PositiveInt = Field(
        default=1,
        description=(
            "Abort after this many carries in a row need manual "
            "intervention (1 stops at the first one)"
        ),
    )
    replay_timeout: int | None = Field(
        default=600,
        description="Seconds allowed for one cherry-pick or patch apply",
    )
    fail_on_unclassified: bool = Field(
        default=False,
        description=(
            "Exit non-zero when a commit has no recognizable "
            "UPSTREAM marker"
        ),
    )


class Config(BaseConfig):
    """Application configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance",
    )
    git: GitConfig = Field(default_factory=GitConfig)
    remotes: RemotesConfig = Field(default_factory=RemotesConfig)
    carries: CarriesConfig = Field(default_factory=CarriesConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)

    session_name: str = Field(
        default="rebase",
        description="Name used for log and report directories",
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "carryover"
        ),
        description=(
            "Root directory for log files and run reports "
            "(supports {platformdirs.*} templates)"
        ),
    )
    commands: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="Command templates by category (git, ...)",
    )

    @model_validator(mode='after')
    def _setup_logger(self) -> Config:
        """Install the global logger once the config is loaded."""
        from carryover.core.log import setup_logger
        from carryover.core.yaml_settings import _cleanup_bootstrap_logger

        if self.logger is None:
            self.logger = Logger()

        setup_logger(
            log_root=self.log_root,
            session_name=self.session_name,
            level=self.logger.level,
            console=self.logger.console,
            otlp=self.logger.otlp,
            file=self.logger.file,
            logfire=self.logger.logfire,
        )
        _cleanup_bootstrap_logger()
        return self

    def git_commands(self) -> dict[str, str]:
        return self.commands.get("git", {})

    def close(self):
        from carryover.core.log import logger
        logger.close()
        super().close()


# ============================================================
# RUNTIME STATE MODELS (mutable during workflow execution)
# ============================================================


class GlobalState(BaseState):
    """Runtime state shared by every command."""

    current_command: str | None = Field(
        default=None, description="Subcommand being run"
    )


class RebaseState(BaseState):
    """The rebase session: branch, commit queue and outcome ledger."""

    status: SessionStatus = Field(
        default="initializing",
        description=(
            "initializing, branch-prepared, processing, completed "
            "or aborted"
        ),
    )
    branch: str | None = Field(
        default=None, description="Working branch created for this run"
    )
    queue: list[Commit] = Field(
        default_factory=list,
        description="Commits to process, oldest first",
    )
    position: int = Field(
        default=0, description="Index of the next commit in queue"
    )
    outcomes: list[Outcome] = Field(
        default_factory=list,
        description="One outcome per processed commit, in order",
    )
    consecutive_failures: int = Field(
        default=0,
        description="Carries in a row that needed manual intervention",
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def pending(self) -> list[Commit]:
        return self.queue[self.position:]

    def record(self, outcome: Outcome) -> None:
        self.outcomes.append(outcome)
        self.position += 1

    def skip_remaining(self) -> None:
        """Give every unprocessed commit a NotAttempted outcome."""
        for commit in self.pending:
            self.record(NotAttempted(sha=commit.sha))

    def abort(self, error: str) -> None:
        """Stop on a fatal error, closing the outcome ledger.

        The commit in flight is recorded as Errored and every later
        one as NotAttempted.
        """
        if self.status == "processing" and self.pending:
            self.record(Errored(sha=self.pending[0].sha, error=error))
        self.status = "aborted"
        self.skip_remaining()

    def report(self) -> RebaseReport:
        return RebaseReport(
            branch=self.branch,
            status=self.status,
            outcomes=list(self.outcomes),
        )


class Runtime(BaseModel):
    """All runtime state, one section per workflow."""

    global_: GlobalState = Field(
        default_factory=GlobalState, alias="global"
    )
    rebase: RebaseState = Field(default_factory=RebaseState)

    model_config = ConfigDict(populate_by_name=True)


# ============================================================
# STATE (config + runtime combined)
# ============================================================


class State(BaseSettings):
    """Configuration plus runtime state; flows through every workflow.

    Loaded from YAML, .env and CARRYOVER_* environment variables,
    and from the command line when run through CliApp.
    """

    config: Config = Field(
        description="Application configuration (from YAML/env/CLI)"
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description="Runtime state (mutates during workflow execution)",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to merge over the configuration. "
            "Files are deep-merged in the order given."
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file="carryover.yaml",
        env_file=".env",
        env_prefix="CARRYOVER_",
        env_nested_delimiter="__",
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore',
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> State:
        """Expand {config.*} and {module.*} templates in every value.

        Placeholders that do not resolve, such as {sha} in command
        templates, are left for the code that formats them later.
        """
        self._substitute_recursive(self)
        return self

    def _substitute_recursive(self, obj: Any) -> None:
        if isinstance(obj, BaseModel):
            if obj.model_config.get("frozen"):
                return
            for field_name in obj.__class__.model_fields:
                value = getattr(obj, field_name)
                new_value = self._substitute_value(value)
                if new_value is not value:
                    setattr(obj, field_name, new_value)
        elif isinstance(obj, dict):
            for key in obj:
                obj[key] = self._substitute_value(obj[key])
        elif isinstance(obj, list):
            for i, item in enumerate(obj):
                obj[i] = self._substitute_value(item)

    def _substitute_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self._substitute_string(value)
        if isinstance(value, Path):
            return Path(self._substitute_string(str(value)))
        if isinstance(value, (BaseModel, dict, list)):
            self._substitute_recursive(value)
        return value

    def _substitute_string(self, value: str) -> str:
        """Replace {dotted.path} with the value it names.

        Examples:
            "{config.git.repository}/carries" -> "/src/fork/carries"
            "{platformdirs.user_log_dir}" -> "~/.local/state/carryover/log"
        """
        def replace_template(match):
            parts = match.group(1).split(".")
            if parts[0] in TEMPLATE_NAMESPACE:
                obj = TEMPLATE_NAMESPACE[parts[0]]
                parts = parts[1:]
            else:
                obj = self

            try:
                for part in parts:
                    obj = getattr(obj, part)
                if callable(obj):
                    obj = obj('carryover', appauthor=False)
                return str(obj)
            except (AttributeError, TypeError):
                return match.group(0)

        return re.sub(r'\{([a-z._]+)\}', replace_template, value)


__all__ = ["State", "Config", "BaseConfig", "BaseState"]
