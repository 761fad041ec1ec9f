# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Summary statistics and health scoring derived from category results."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import timedelta
from types import MappingProxyType
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .core.models import AssessmentCategory, CategoryResult, Issue, ReportSummary, WorkflowPlan
from .core.severity import SEVERITY_LEVELS, IssueSeverity

DEFAULT_ISSUE_TIMES: Final[Mapping[IssueSeverity, timedelta]] = MappingProxyType(
    {
        IssueSeverity.CRITICAL: timedelta(minutes=30),
        IssueSeverity.HIGH: timedelta(minutes=15),
        IssueSeverity.MEDIUM: timedelta(minutes=5),
        IssueSeverity.LOW: timedelta(minutes=2),
        IssueSeverity.INFO: timedelta(minutes=1),
    },
)


class HealthWeights(BaseModel):
    """Penalty subtracted from the health score per issue of each severity.

    Weights must be non-negative and must not decrease with severity so that
    a more severe issue never costs less than a milder one.
    """

    model_config = ConfigDict(frozen=True)

    critical: float = Field(default=0.1, ge=0.0)
    high: float = Field(default=0.05, ge=0.0)
    medium: float = Field(default=0.02, ge=0.0)
    low: float = Field(default=0.01, ge=0.0)
    info: float = Field(default=0.005, ge=0.0)

    @model_validator(mode="after")
    def _check_ordering(self) -> HealthWeights:
        ordered = [self.weight(level) for level in SEVERITY_LEVELS]
        if any(lower > higher for lower, higher in zip(ordered, ordered[1:], strict=False)):
            raise ValueError("health weights must not decrease with severity")
        return self

    def weight(self, severity: IssueSeverity) -> float:
        """Return the penalty configured for ``severity``."""

        return float(getattr(self, severity.value))


DEFAULT_HEALTH_WEIGHTS: Final[HealthWeights] = HealthWeights()


def estimate_issue_time(issue: Issue) -> timedelta:
    """Return the explicit estimate of ``issue`` or the severity default."""

    if issue.estimated_time > timedelta(0):
        return issue.estimated_time
    return DEFAULT_ISSUE_TIMES.get(issue.severity, timedelta(minutes=1))


def estimate_category_time(issues: Iterable[Issue]) -> timedelta:
    """Return the summed remediation estimate of ``issues``."""

    return sum((estimate_issue_time(issue) for issue in issues), timedelta(0))


def calculate_health(issues: Iterable[Issue], weights: HealthWeights = DEFAULT_HEALTH_WEIGHTS) -> float:
    """Return the health score in ``[0, 1]`` for ``issues``.

    Starts at ``1.0`` and subtracts the weight of every issue, flooring at
    ``0.0``. Adding an issue can only lower or keep the score.
    """

    penalty = math.fsum(weights.weight(issue.severity) for issue in issues)
    return max(0.0, min(1.0, 1.0 - penalty))


def calculate_summary(
    categories: Mapping[AssessmentCategory, CategoryResult],
    plan: WorkflowPlan | None = None,
    weights: HealthWeights = DEFAULT_HEALTH_WEIGHTS,
) -> ReportSummary:
    """Derive the :class:`ReportSummary` for ``categories``.

    Args:
        categories: Category results keyed by category.
        plan: Workflow plan supplying the time estimate and group count.
        weights: Health penalty table.

    Returns:
        ReportSummary: Deterministic summary of the category map.
    """

    issues = [issue for result in categories.values() for issue in result.issues]
    return ReportSummary(
        overall_health=calculate_health(issues, weights),
        critical_issues=sum(1 for issue in issues if issue.severity is IssueSeverity.CRITICAL),
        total_issues=sum(result.issue_count for result in categories.values()),
        estimated_time=plan.total_time if plan is not None else timedelta(0),
        parallel_groups=len(plan.parallel_groups) if plan is not None else 0,
        categories_with_issues=sum(1 for result in categories.values() if result.issue_count > 0),
    )


__all__ = [
    "DEFAULT_HEALTH_WEIGHTS",
    "DEFAULT_ISSUE_TIMES",
    "HealthWeights",
    "calculate_health",
    "calculate_summary",
    "estimate_category_time",
    "estimate_issue_time",
]
