# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for git change-set inspection and the repo-status runner."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from pyassess.config import AssessmentConfig
from pyassess.core.context import RunContext
from pyassess.core.errors import ToolExecutionError, ToolTimeoutError
from pyassess.core.models import REPOSITORY_SENTINEL, AssessmentMode, Issue
from pyassess.core.severity import IssueSeverity
from pyassess.discovery import relative_path
from pyassess.gitctx import (
    classify_by_file_count,
    classify_scope,
    collect_change_set,
    mark_change_related,
    parse_changed_lines,
    parse_numstat,
)
from pyassess.runners.repo_status import RepoStatusRunner, parse_porcelain

if TYPE_CHECKING:
    from conftest import CannedCommandRunner

_DIFF = """\
diff --git a/src/app.go b/src/app.go
--- a/src/app.go
+++ b/src/app.go
@@ -10,0 +11,2 @@ func main() {
+	a := 1
+	b := 2
@@ -20 +22 @@ func helper() {
-	old()
+	updated()
diff --git a/gone.go b/gone.go
--- a/gone.go
+++ /dev/null
@@ -1,3 +0,0 @@
"""


def _git_repo(canned: CannedCommandRunner) -> None:
    canned.add(["git", "rev-parse", "--is-inside-work-tree"], stdout="true\n")
    canned.add(["git", "rev-parse", "--abbrev-ref", "HEAD"], stdout="main\n")
    canned.add(["git", "rev-parse", "HEAD"], stdout="0123abcd\n")
    canned.add(["git", "diff", "--numstat"], stdout="2\t1\tsrc/app.go\n-\t-\tassets/logo.png\n")
    canned.add(["git", "diff", "--cached", "--numstat"], stdout="0\t3\tgone.go\n")
    canned.add(["git", "diff", "HEAD", "-U0", "--no-color"], stdout=_DIFF)


def test_parse_numstat_counts_lines_and_binary_files() -> None:
    total, files = parse_numstat("2\t1\tsrc/app.go\n-\t-\tassets/logo.png\nbogus\n")

    assert total == 3
    assert files == ["src/app.go", "assets/logo.png"]


def test_parse_changed_lines_reads_new_side_hunks() -> None:
    assert parse_changed_lines(_DIFF) == {"src/app.go": (11, 12, 22)}


@pytest.mark.parametrize(("total", "expected"), [(0, "small"), (50, "small"), (51, "medium"), (201, "large")])
def test_classify_scope(total: int, expected: str) -> None:
    assert classify_scope(total) == expected


def test_classify_by_file_count() -> None:
    assert [classify_by_file_count(count) for count in (5, 6, 21)] == ["small", "medium", "large"]


def test_collect_change_set(tmp_path: Path, canned_runner: CannedCommandRunner) -> None:
    _git_repo(canned_runner)

    change_set = collect_change_set(tmp_path, runner=canned_runner)

    assert change_set is not None
    assert change_set.context.modified_files == ["assets/logo.png", "gone.go", "src/app.go"]
    assert change_set.context.total_changes == 6
    assert change_set.context.change_scope == "small"
    assert (change_set.context.branch, change_set.context.git_sha) == ("main", "0123abcd")
    assert change_set.lines["src/app.go"] == (11, 12, 22)


def test_collect_change_set_outside_work_tree(tmp_path: Path, canned_runner: CannedCommandRunner) -> None:
    canned_runner.add(
        ["git", "rev-parse", "--is-inside-work-tree"],
        stderr="fatal: not a git repository",
        returncode=128,
    )

    assert collect_change_set(tmp_path, runner=canned_runner) is None
    assert len(canned_runner.calls) == 1


@pytest.mark.parametrize(
    "error",
    [ToolExecutionError("git", "executable was not found on PATH"), ToolTimeoutError("git", 15.0)],
)
def test_collect_change_set_is_best_effort(
    tmp_path: Path,
    canned_runner: CannedCommandRunner,
    error: ToolExecutionError,
) -> None:
    canned_runner.raises = error

    assert collect_change_set(tmp_path, runner=canned_runner) is None


def test_mark_change_related(
    tmp_path: Path,
    canned_runner: CannedCommandRunner,
    make_issue: Callable[..., Issue],
) -> None:
    _git_repo(canned_runner)
    change_set = collect_change_set(tmp_path, runner=canned_runner)
    assert change_set is not None

    marked = mark_change_related([make_issue("src/app.go"), make_issue("other.go")], change_set)

    assert marked[0].change_related
    assert marked[0].lines_modified == (11, 12, 22)
    assert not marked[1].change_related


def test_mark_change_related_resolves_absolute_paths(
    tmp_path: Path,
    canned_runner: CannedCommandRunner,
    make_issue: Callable[..., Issue],
) -> None:
    _git_repo(canned_runner)
    change_set = collect_change_set(tmp_path, runner=canned_runner)
    assert change_set is not None

    marked = mark_change_related(
        [make_issue(str(tmp_path / "src" / "app.go")), make_issue(str(tmp_path.parent / "src" / "app.go"))],
        change_set,
        tmp_path,
    )

    assert marked[0].change_related
    assert marked[0].lines_modified == (11, 12, 22)
    assert not marked[1].change_related


def test_mark_change_related_skips_repository_wide_issues(
    tmp_path: Path,
    canned_runner: CannedCommandRunner,
    make_issue: Callable[..., Issue],
) -> None:
    canned_runner.add(["git", "rev-parse", "--is-inside-work-tree"], stdout="true\n")
    canned_runner.add(["git", "diff", "--numstat"], stdout="1\t0\trepository\n")
    change_set = collect_change_set(tmp_path, runner=canned_runner)
    assert change_set is not None

    marked = mark_change_related(
        [make_issue(REPOSITORY_SENTINEL, repository_wide=True), make_issue("repository")],
        change_set,
        tmp_path,
    )

    assert [issue.change_related for issue in marked] == [False, True]


def test_relative_path_normalises_against_root(tmp_path: Path) -> None:
    assert relative_path(str(tmp_path / "pkg" / "mod.py"), tmp_path) == "pkg/mod.py"
    assert relative_path("./pkg/mod.py", tmp_path) == "pkg/mod.py"
    assert relative_path("/elsewhere/mod.py", tmp_path) == "/elsewhere/mod.py"
    assert relative_path("", tmp_path) == ""


def test_parse_porcelain_handles_renames_and_quotes() -> None:
    output = ' M src/app.go\nR  old.go -> new.go\nM  "with space.go"\n'

    assert parse_porcelain(output) == ["src/app.go", "new.go", "with space.go"]


def test_repo_status_reports_dirty_tree(tmp_path: Path, canned_runner: CannedCommandRunner) -> None:
    canned_runner.add(["git", "rev-parse", "--is-inside-work-tree"], stdout="true\n")
    canned_runner.add(["git", "status", "--porcelain"], stdout="".join(f" M f{index}.go\n" for index in range(7)))

    result = RepoStatusRunner(runner=canned_runner).assess(RunContext(), tmp_path, AssessmentConfig())

    (issue,) = result.issues
    assert issue.file == REPOSITORY_SENTINEL
    assert issue.repository_wide
    assert issue.severity is IssueSeverity.HIGH
    assert issue.message == "Uncommitted changes in 7 tracked file(s): f0.go, f1.go, f2.go, f3.go, f4.go, ..."
    assert result.metrics == {"modified_tracked_files": 7}


def test_repo_status_clean_tree(tmp_path: Path, canned_runner: CannedCommandRunner) -> None:
    canned_runner.add(["git", "rev-parse", "--is-inside-work-tree"], stdout="true\n")

    result = RepoStatusRunner(runner=canned_runner).assess(RunContext(), tmp_path, AssessmentConfig())

    assert result.success
    assert result.issues == []


def test_repo_status_outside_git_is_skipped(tmp_path: Path, canned_runner: CannedCommandRunner) -> None:
    canned_runner.add(["git", "rev-parse"], returncode=128)

    result = RepoStatusRunner(runner=canned_runner).assess(RunContext(), tmp_path, AssessmentConfig())

    assert not result.success
    assert result.error == ""


def test_repo_status_no_op_mode_does_not_inspect(tmp_path: Path, canned_runner: CannedCommandRunner) -> None:
    canned_runner.add(["git", "rev-parse", "--is-inside-work-tree"], stdout="true\n")

    result = RepoStatusRunner(runner=canned_runner).assess(
        RunContext(),
        tmp_path,
        AssessmentConfig(mode=AssessmentMode.NO_OP),
    )

    assert result.success
    assert len(canned_runner.calls) == 1


def test_repo_status_git_failure_raises(tmp_path: Path, canned_runner: CannedCommandRunner) -> None:
    canned_runner.add(["git", "rev-parse", "--is-inside-work-tree"], stdout="true\n")
    canned_runner.add(["git", "status"], stderr="fatal: index corrupt", returncode=128)

    with pytest.raises(ToolExecutionError, match="index corrupt"):
        RepoStatusRunner(runner=canned_runner).assess(RunContext(), tmp_path, AssessmentConfig())
