# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Repository status runner reporting uncommitted changes to tracked files."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Final

from ..adapters.base import CommandRunner
from ..config import AssessmentConfig
from ..core.context import RunContext
from ..core.errors import ToolExecutionError
from ..core.models import REPOSITORY_SENTINEL, AssessmentCategory, AssessmentMode, AssessmentResult, Issue
from ..core.process import CommandOptions, find_executable, run_command
from ..core.severity import IssueSeverity

LOGGER = logging.getLogger(__name__)

GIT_STATE_SUBCATEGORY: Final[str] = "git-state"
_PREVIEW_LIMIT: Final[int] = 5


@dataclass(slots=True)
class RepoStatusRunner:
    """Report a single repository-wide issue when tracked files are dirty."""

    runner: CommandRunner = run_command

    @property
    def category(self) -> AssessmentCategory:
        return AssessmentCategory.REPO_STATUS

    def can_run_in_parallel(self) -> bool:
        return True

    def estimated_time(self, target: Path) -> timedelta:
        return timedelta(seconds=2)

    def is_available(self) -> bool:
        return find_executable("git") is not None

    def assess(self, ctx: RunContext, target: Path, config: AssessmentConfig) -> AssessmentResult:
        started = time.monotonic()
        options = CommandOptions(cwd=target, timeout=config.timeout)
        work_tree = self.runner(["git", "rev-parse", "--is-inside-work-tree"], ctx=ctx, options=options, tool="git")
        if work_tree.returncode != 0 or work_tree.stdout.strip() != "true":
            LOGGER.info("%s is not a git work tree; skipping repo-status", target)
            return AssessmentResult(category=self.category, success=False)
        if config.mode is AssessmentMode.NO_OP:
            return AssessmentResult(category=self.category)

        status = self.runner(
            ["git", "status", "--porcelain", "--untracked-files=no"],
            ctx=ctx,
            options=options,
            tool="git",
        )
        if status.returncode != 0:
            raise ToolExecutionError("git", status.stderr.strip() or f"git status exited with {status.returncode}")
        changed = parse_porcelain(status.stdout)
        issues: list[Issue] = []
        if changed:
            preview = ", ".join(changed[:_PREVIEW_LIMIT])
            if len(changed) > _PREVIEW_LIMIT:
                preview = f"{preview}, ..."
            issues.append(
                Issue(
                    file=REPOSITORY_SENTINEL,
                    repository_wide=True,
                    severity=IssueSeverity.HIGH,
                    message=f"Uncommitted changes in {len(changed)} tracked file(s): {preview}",
                    category=self.category,
                    sub_category=GIT_STATE_SUBCATEGORY,
                    estimated_time=timedelta(minutes=2),
                ),
            )
        return AssessmentResult(
            category=self.category,
            issues=issues,
            execution_time=timedelta(seconds=time.monotonic() - started),
            metrics={"modified_tracked_files": len(changed)},
        )


def parse_porcelain(stdout: str) -> list[str]:
    """Return paths listed by ``git status --porcelain`` (v1 format)."""

    paths: list[str] = []
    for line in stdout.splitlines():
        if len(line) < 4:
            continue
        path = line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        paths.append(path.strip().strip('"'))
    return paths


__all__ = ["GIT_STATE_SUBCATEGORY", "RepoStatusRunner", "parse_porcelain"]
