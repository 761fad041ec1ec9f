# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Safe wrappers around ``subprocess`` execution bound to a run context."""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import signal

# Bandit: subprocess usage is intentional; arguments are passed as lists and
# ``shell=True`` is never used.
import subprocess  # nosec B404
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from subprocess import CompletedProcess
from typing import Final

from .context import RunContext
from .errors import ToolExecutionError

LOGGER = logging.getLogger(__name__)

_POLL_INTERVAL: Final[float] = 0.1


@dataclass(slots=True, frozen=True)
class CommandOptions:
    """Immutable command execution options."""

    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    timeout: float | None = None
    check: bool = False


def find_executable(name: str) -> str | None:
    """Return the absolute path of ``name`` when it is on ``PATH``."""

    return shutil.which(name)


def _normalize_args(args: Sequence[str]) -> list[str]:
    """Normalise the subprocess argument sequence.

    Args:
        args: Raw command arguments supplied by the caller.

    Returns:
        list[str]: Validated argument list with a resolved executable.

    Raises:
        ValueError: If no arguments are provided.
        ToolExecutionError: If the executable cannot be found on ``PATH``.
    """

    if not args:
        raise ValueError("subprocess command requires at least one argument")

    head, *rest = args
    head_path = Path(head)
    if head_path.is_absolute():
        return [str(head_path), *rest]

    resolved = shutil.which(head)
    if resolved is None:
        raise ToolExecutionError(head, "executable was not found on PATH")
    return [resolved, *rest]


def _kill_process_tree(process: subprocess.Popen[str]) -> None:
    """Terminate ``process`` and every child sharing its process group."""

    try:
        if hasattr(os, "killpg"):
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass
    try:
        process.communicate(timeout=5)
    except subprocess.TimeoutExpired:
        LOGGER.warning("process %s did not exit after SIGKILL", process.pid)


def run_command(
    args: Sequence[str],
    *,
    ctx: RunContext | None = None,
    options: CommandOptions | None = None,
    tool: str | None = None,
) -> CompletedProcess[str]:
    """Execute ``args`` under ``ctx`` and capture its output as text.

    The process is started in its own session so that cancellation of ``ctx``
    (or expiry of its deadline, or of ``options.timeout``) kills the whole
    process tree. A non-zero exit status is returned to the caller unless
    ``options.check`` is set, since most analysis tools signal findings that way.

    Args:
        args: Command and argument sequence to execute.
        ctx: Parent context providing cancellation and deadlines.
        options: Working directory, environment, local timeout and ``check``.
        tool: Name used in error messages; defaults to the executable name.

    Returns:
        CompletedProcess[str]: Completed process with captured stdout/stderr.

    Raises:
        ToolExecutionError: When the executable is missing, cannot start, or
            exits non-zero while ``check`` is set.
        ToolTimeoutError: When the effective deadline passes.
        AssessmentCancelledError: When ``ctx`` is cancelled.
    """

    resolved_options = options or CommandOptions()
    name = tool or (Path(args[0]).name if args else "command")
    normalized = _normalize_args(args)
    parent = ctx or RunContext(label=name)
    local = parent.child(timeout=resolved_options.timeout, label=name)
    local.raise_if_done(name)
    parent.record_command(shlex.join(args))
    LOGGER.debug("running command=%s cwd=%s", shlex.join(normalized), resolved_options.cwd)

    try:
        # Bandit: commands are built by adapters from fixed argument lists.
        process = subprocess.Popen(  # nosec B603
            normalized,
            cwd=str(resolved_options.cwd) if resolved_options.cwd is not None else None,
            env=dict(resolved_options.env) if resolved_options.env is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            start_new_session=True,
        )
    except OSError as exc:
        raise ToolExecutionError(name, f"failed to start: {exc}") from exc

    while True:
        remaining = local.remaining()
        slice_seconds = _POLL_INTERVAL if remaining is None else min(_POLL_INTERVAL, max(remaining, 0.01))
        try:
            stdout, stderr = process.communicate(timeout=slice_seconds)
            break
        except subprocess.TimeoutExpired:
            if local.done:
                _kill_process_tree(process)
                local.raise_if_done(name)

    completed: CompletedProcess[str] = CompletedProcess(
        args=normalized,
        returncode=process.returncode,
        stdout=stdout or "",
        stderr=stderr or "",
    )
    if resolved_options.check and completed.returncode != 0:
        detail = completed.stderr.strip() or "<none>"
        raise ToolExecutionError(name, f"exited with status {completed.returncode}. stderr: {detail}")
    return completed


__all__ = [
    "CommandOptions",
    "find_executable",
    "run_command",
]
