# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Best-effort git change-set inspection."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .adapters.base import CommandRunner
from .core.context import RunContext
from .core.errors import ToolExecutionError
from .core.models import ChangeContext, Issue
from .core.process import CommandOptions, run_command
from .discovery import relative_path

LOGGER = logging.getLogger(__name__)

_HUNK_RE: Final[re.Pattern[str]] = re.compile(r"^@@ -\d+(?:,\d+)? \+(?P<start>\d+)(?:,(?P<count>\d+))? @@")
_GIT_TIMEOUT: Final[float] = 15.0


@dataclass(slots=True)
class ChangeSet:
    """Modified files of the working tree plus their changed line numbers."""

    context: ChangeContext
    lines: dict[str, tuple[int, ...]] = field(default_factory=dict)

    @property
    def files(self) -> frozenset[str]:
        return frozenset(self.context.modified_files)


def classify_scope(total_changes: int) -> str:
    """Return ``small``/``medium``/``large`` for a changed-line total."""

    if total_changes <= 50:
        return "small"
    if total_changes <= 200:
        return "medium"
    return "large"


def classify_by_file_count(count: int) -> str:
    """Return the change scope derived from a modified-file count."""

    if count <= 5:
        return "small"
    if count <= 20:
        return "medium"
    return "large"


def parse_numstat(text: str) -> tuple[int, list[str]]:
    """Return the changed-line total and file list of ``git diff --numstat``.

    Binary entries (``-`` counts) contribute files but no lines.
    """

    total = 0
    files: list[str] = []
    for line in text.splitlines():
        parts = line.split("\t")
        if len(parts) < 3:
            continue
        added, removed, path = parts[0], parts[1], parts[-1]
        for count in (added, removed):
            if count.isdigit():
                total += int(count)
        files.append(path.replace("\\", "/"))
    return total, files


def parse_changed_lines(diff: str) -> dict[str, tuple[int, ...]]:
    """Return new-side line numbers touched per file in a ``-U0`` diff."""

    lines: dict[str, list[int]] = {}
    current: str | None = None
    for raw in diff.splitlines():
        if raw.startswith("+++ "):
            target = raw[4:].strip()
            current = target[2:] if target.startswith("b/") else None
            continue
        match = _HUNK_RE.match(raw)
        if match is None or current is None:
            continue
        start = int(match.group("start"))
        count = int(match.group("count")) if match.group("count") is not None else 1
        lines.setdefault(current, []).extend(range(start, start + count))
    return {path: tuple(sorted(set(numbers))) for path, numbers in lines.items() if numbers}


def _git(
    runner: CommandRunner,
    ctx: RunContext,
    target: Path,
    *args: str,
) -> str | None:
    completed = runner(
        ["git", *args],
        ctx=ctx,
        options=CommandOptions(cwd=target, timeout=_GIT_TIMEOUT),
        tool="git",
    )
    if completed.returncode != 0:
        return None
    return completed.stdout


def collect_change_set(
    target: Path,
    *,
    ctx: RunContext | None = None,
    runner: CommandRunner = run_command,
) -> ChangeSet | None:
    """Return the uncommitted change-set of the repository at ``target``.

    Returns ``None`` when git is missing, ``target`` is not a work tree, or a
    git command fails. Cancellation still propagates.
    """

    local = ctx or RunContext(label="git")
    try:
        if (_git(runner, local, target, "rev-parse", "--is-inside-work-tree") or "").strip() != "true":
            return None
        branch = (_git(runner, local, target, "rev-parse", "--abbrev-ref", "HEAD") or "").strip()
        sha = (_git(runner, local, target, "rev-parse", "HEAD") or "").strip()
        unstaged = _git(runner, local, target, "diff", "--numstat") or ""
        staged = _git(runner, local, target, "diff", "--cached", "--numstat") or ""
        diff = _git(runner, local, target, "diff", "HEAD", "-U0", "--no-color") or ""
    except ToolExecutionError as exc:
        LOGGER.info("git change context unavailable: %s", exc.detail)
        return None

    total_unstaged, files_unstaged = parse_numstat(unstaged)
    total_staged, files_staged = parse_numstat(staged)
    files = sorted(set(files_unstaged) | set(files_staged))
    total = total_unstaged + total_staged
    scope = classify_scope(total) if total > 0 else classify_by_file_count(len(files))
    context = ChangeContext(
        modified_files=files,
        total_changes=total,
        change_scope=scope,
        git_sha=sha,
        branch=branch,
    )
    return ChangeSet(context=context, lines=parse_changed_lines(diff))


def mark_change_related(
    issues: Sequence[Issue],
    change_set: ChangeSet,
    root: Path | None = None,
) -> list[Issue]:
    """Return ``issues`` with ``change_related`` set for modified files.

    Git reports paths relative to the work tree, so issue paths are made
    relative to ``root`` before the lookup. Repository-wide findings never
    match a modified file.
    """

    modified = change_set.files
    if not modified:
        return list(issues)
    marked: list[Issue] = []
    for issue in issues:
        key = relative_path(issue.file, root) if root is not None else issue.file
        if key in modified and not issue.repository_wide:
            issue = issue.model_copy(
                update={"change_related": True, "lines_modified": change_set.lines.get(key, ())},
            )
        marked.append(issue)
    return marked


__all__ = [
    "ChangeSet",
    "classify_by_file_count",
    "classify_scope",
    "collect_change_set",
    "mark_change_related",
    "parse_changed_lines",
    "parse_numstat",
]
