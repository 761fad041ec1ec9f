# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Execute commands declared in a hooks manifest."""

from __future__ import annotations

import logging
import re
import shlex
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Final

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..adapters.base import CommandRunner
from ..core.context import RunContext
from ..core.errors import AssessmentError, ConfigError, ToolExecutionError, ToolTimeoutError, format_seconds
from ..core.process import CommandOptions, run_command

LOGGER = logging.getLogger(__name__)

DEFAULT_HOOK_TIMEOUT: Final[float] = 120.0
DEFAULT_MANIFEST_PATH: Final[str] = ".pyassess/hooks.yaml"
INTERNAL_COMMANDS: Final[frozenset[str]] = frozenset(
    {"assess", "format", "lint", "security", "dependencies", "validate"},
)

_DURATION_PART: Final[re.Pattern[str]] = re.compile(r"(?P<value>\d+(?:\.\d+)?)(?P<unit>ms|h|m|s)")
_UNIT_SECONDS: Final[dict[str, float]] = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}

type InternalHandler = Callable[[RunContext, str, Sequence[str]], None]


class HookCommand(BaseModel):
    """Single command entry of a hooks manifest."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    command: str = Field(min_length=1)
    args: tuple[str, ...] = ()
    priority: int = 0
    timeout: str = ""
    # Parsed for manifest compatibility; never executed.
    fallback: str = ""

    def render(self) -> str:
        """Return the command line as a shell-quoted string."""

        return shlex.join([self.command, *self.args])


class HookManifest(BaseModel):
    """Hooks manifest mapping hook names (``pre-commit``...) to commands."""

    model_config = ConfigDict(extra="ignore")

    version: str = ""
    hooks: dict[str, list[HookCommand]] = Field(default_factory=dict)

    def commands_for(self, hook: str) -> list[HookCommand]:
        """Return the commands declared for ``hook`` (empty when absent)."""

        return list(self.hooks.get(hook, []))


class HookExecutionError(AssessmentError):
    """Raised when a hook command fails, stopping the remaining commands."""

    def __init__(self, command: str, detail: str) -> None:
        super().__init__(f"hook command failed: {command}: {detail}")
        self.command = command
        self.detail = detail


def is_internal_command(command: str) -> bool:
    """Return ``True`` when ``command`` names a built-in pyassess command."""

    return command in INTERNAL_COMMANDS


def parse_duration(text: str) -> float:
    """Return the seconds described by a duration such as ``30s`` or ``1m30s``.

    Raises:
        ValueError: If ``text`` is not a sequence of ``<number><unit>`` parts.
    """

    value = text.strip()
    if not value:
        raise ValueError("empty duration")
    total = 0.0
    position = 0
    while position < len(value):
        match = _DURATION_PART.match(value, position)
        if match is None:
            raise ValueError(f"invalid duration: {text!r}")
        total += float(match.group("value")) * _UNIT_SECONDS[match.group("unit")]
        position = match.end()
    return total


def resolve_timeout(command: HookCommand) -> float:
    """Return the timeout of ``command`` in seconds, defaulting to two minutes."""

    if not command.timeout:
        return DEFAULT_HOOK_TIMEOUT
    try:
        return parse_duration(command.timeout)
    except ValueError:
        LOGGER.warning("invalid timeout %r for %s, using default 2m", command.timeout, command.command)
        return DEFAULT_HOOK_TIMEOUT


class HookExecutor:
    """Run hook commands in priority order, stopping at the first failure.

    Internal commands are routed to ``handler`` when one is installed and run
    as external processes otherwise.
    """

    def __init__(
        self,
        work_dir: Path,
        *,
        handler: InternalHandler | None = None,
        runner: CommandRunner = run_command,
        verbose: bool = False,
    ) -> None:
        self.work_dir = work_dir
        self.handler = handler
        self.runner = runner
        self.verbose = verbose

    def execute(self, commands: Sequence[HookCommand], ctx: RunContext | None = None) -> None:
        """Execute ``commands`` sequentially.

        Commands run by ascending ``priority``; equal priorities keep manifest
        order.

        Raises:
            HookExecutionError: On the first failing or timed-out command.
        """

        if not commands:
            LOGGER.debug("hook-executor: no commands to execute")
            return
        parent = ctx or RunContext(label="hooks")
        ordered = sorted(commands, key=lambda command: command.priority)
        self._log(f"hook-executor: executing {len(ordered)} command(s)")
        for index, command in enumerate(ordered, start=1):
            self._log(f"hook-executor: [{index}/{len(ordered)}] running: {command.render()}")
            self._execute_one(parent, command)
            self._log(f"hook-executor: [{index}/{len(ordered)}] completed: {command.command}")
        self._log("hook-executor: all commands completed successfully")

    def _execute_one(self, parent: RunContext, command: HookCommand) -> None:
        timeout = resolve_timeout(command)
        local = parent.child(timeout=timeout, label=command.command)
        try:
            if is_internal_command(command.command) and self.handler is not None:
                LOGGER.debug("hook-executor: routing internal command %r to handler", command.command)
                self.handler(local, command.command, command.args)
                local.raise_if_done(command.command)
            else:
                if is_internal_command(command.command):
                    LOGGER.warning(
                        "hook-executor: no internal handler for %r, executing as external command",
                        command.command,
                    )
                self._execute_external(local, command)
        except ToolTimeoutError as exc:
            message = f"command timed out after {format_seconds(timeout)}"
            LOGGER.error("hook-executor: %s: %s", command.render(), message)
            raise HookExecutionError(command.command, message) from exc
        except ToolExecutionError as exc:
            LOGGER.error("hook-executor: command failed: %s: %s", command.render(), exc.detail)
            raise HookExecutionError(command.command, exc.detail) from exc

    def _execute_external(self, ctx: RunContext, command: HookCommand) -> None:
        completed = self.runner(
            [command.command, *command.args],
            ctx=ctx,
            options=CommandOptions(cwd=self.work_dir),
            tool=command.command,
        )
        for stream in (completed.stdout, completed.stderr):
            if stream:
                LOGGER.debug("%s output:\n%s", command.command, stream.rstrip())
        if completed.returncode != 0:
            tail = (completed.stderr or completed.stdout).strip().splitlines()[-5:]
            detail = f"exit status {completed.returncode}"
            if tail:
                detail = f"{detail}: " + " | ".join(tail)
            raise ToolExecutionError(command.command, detail)

    def _log(self, message: str) -> None:
        LOGGER.log(logging.INFO if self.verbose else logging.DEBUG, message)


def load_hook_manifest(path: Path) -> HookManifest:
    """Load and validate the YAML hooks manifest at ``path``.

    Raises:
        ConfigError: If the file cannot be read, is not YAML, or does not
            describe a valid manifest.
    """

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"failed to read hooks manifest {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse hooks manifest {path}: {exc}") from exc
    if data is None:
        return HookManifest()
    if not isinstance(data, dict):
        raise ConfigError(f"hooks manifest {path} must be a mapping")
    try:
        return HookManifest.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"invalid hooks manifest {path}: {exc}") from exc


__all__ = [
    "DEFAULT_HOOK_TIMEOUT",
    "DEFAULT_MANIFEST_PATH",
    "INTERNAL_COMMANDS",
    "HookCommand",
    "HookExecutionError",
    "HookExecutor",
    "HookManifest",
    "InternalHandler",
    "is_internal_command",
    "load_hook_manifest",
    "parse_duration",
    "resolve_timeout",
]
