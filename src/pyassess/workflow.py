# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Remediation workflow planning: sequential phases and parallel groups."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping, Sequence
from datetime import timedelta

from .core.models import (
    REPOSITORY_SENTINEL,
    AssessmentCategory,
    CategoryResult,
    Issue,
    ParallelGroup,
    WorkflowPhase,
    WorkflowPlan,
)
from .priorities import describe_priority
from .summary import estimate_category_time, estimate_issue_time

type FileKey = tuple[bool, str]


class DisjointSet:
    """Union-find over the integers ``0 .. size-1``.

    Uses path compression and union by rank, giving near-constant amortised
    cost per operation.
    """

    __slots__ = ("_parent", "_rank")

    def __init__(self, size: int) -> None:
        self._parent = list(range(size))
        self._rank = [0] * size

    def find(self, item: int) -> int:
        """Return the representative of ``item``'s set."""

        root = item
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]
        return root

    def union(self, left: int, right: int) -> int:
        """Merge the sets containing ``left`` and ``right``; return the new root."""

        left_root, right_root = self.find(left), self.find(right)
        if left_root == right_root:
            return left_root
        if self._rank[left_root] < self._rank[right_root]:
            left_root, right_root = right_root, left_root
        self._parent[right_root] = left_root
        if self._rank[left_root] == self._rank[right_root]:
            self._rank[left_root] += 1
        return left_root


def category_time(result: CategoryResult) -> timedelta:
    """Return the estimated remediation time recorded for ``result``.

    Results built without an estimate fall back to the per-issue defaults.
    """

    if result.estimated_time > timedelta(0):
        return result.estimated_time
    return estimate_category_time(result.issues)


def _ordered_results(categories: Mapping[AssessmentCategory, CategoryResult]) -> list[CategoryResult]:
    return sorted(categories.values(), key=lambda result: (result.priority, result.category.value))


def build_phases(categories: Mapping[AssessmentCategory, CategoryResult]) -> tuple[WorkflowPhase, ...]:
    """Group categories with issues into phases of ascending priority.

    Categories sharing a priority form one phase, listed by name. Each phase's
    time is the sum of its categories' estimates.
    """

    by_priority: defaultdict[int, list[CategoryResult]] = defaultdict(list)
    for result in _ordered_results(categories):
        if result.issue_count > 0:
            by_priority[result.priority].append(result)

    phases: list[WorkflowPhase] = []
    for index, priority in enumerate(sorted(by_priority), start=1):
        members = by_priority[priority]
        phases.append(
            WorkflowPhase(
                name=f"Phase {index}",
                description=describe_priority(priority),
                priority=priority,
                categories=tuple(result.category for result in members),
                estimated_time=sum((category_time(result) for result in members), timedelta(0)),
            ),
        )
    return tuple(phases)


def _file_keys(issue: Issue) -> list[FileKey]:
    if issue.repository_wide:
        return [(True, REPOSITORY_SENTINEL), *((False, path) for path in issue.related_files)]
    return [(False, path) for path in issue.touched_files()]


def build_parallel_groups(issues: Sequence[Issue]) -> tuple[ParallelGroup, ...]:
    """Cluster ``issues`` connected through shared files.

    Two issues land in the same group exactly when a chain of shared files
    links them. Issues without a file form singleton groups. Groups are
    ordered by the position of their first issue in ``issues``.

    Args:
        issues: Issues in deterministic traversal order.

    Returns:
        tuple[ParallelGroup, ...]: One group per connected component.
    """

    components = DisjointSet(len(issues))
    owner: dict[FileKey, int] = {}
    for index, issue in enumerate(issues):
        for key in _file_keys(issue):
            if key in owner:
                components.union(owner[key], index)
            else:
                owner[key] = index

    members: dict[int, list[int]] = {}
    for index in range(len(issues)):
        members.setdefault(components.find(index), []).append(index)

    groups: list[ParallelGroup] = []
    for position, indices in enumerate(sorted(members.values(), key=lambda group: group[0])):
        group_issues = [issues[index] for index in indices]
        files = tuple(dict.fromkeys(path for issue in group_issues for path in issue.touched_files()))
        categories = tuple(sorted({issue.category for issue in group_issues}, key=lambda category: category.value))
        groups.append(
            ParallelGroup(
                name=f"group_{position}",
                description=f"{len(group_issues)} issue(s) across {len(files)} file(s)",
                files=files,
                categories=categories,
                issue_count=len(group_issues),
                estimated_time=sum((estimate_issue_time(issue) for issue in group_issues), timedelta(0)),
            ),
        )
    return tuple(groups)


def plan_workflow(categories: Mapping[AssessmentCategory, CategoryResult]) -> WorkflowPlan:
    """Return the remediation plan for ``categories``.

    The total time is the sum of the sequential phase times. Parallel group
    times overlap and are not part of the total.
    """

    phases = build_phases(categories)
    issues = [issue for result in _ordered_results(categories) for issue in result.issues]
    return WorkflowPlan(
        phases=phases,
        parallel_groups=build_parallel_groups(issues),
        total_time=sum((phase.estimated_time for phase in phases), timedelta(0)),
    )


__all__ = [
    "DisjointSet",
    "build_parallel_groups",
    "build_phases",
    "category_time",
    "plan_workflow",
]
