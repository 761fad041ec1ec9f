# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Fail-on evaluation over a finished report."""

from __future__ import annotations

from dataclasses import dataclass

from .core.models import AssessmentCategory, AssessmentReport, CategoryStatus
from .core.severity import IssueSeverity, highest_severity


@dataclass(slots=True, frozen=True)
class FailOnDecision:
    """Outcome of comparing a report against a severity threshold."""

    failed: bool
    threshold: IssueSeverity
    highest: IssueSeverity | None
    offending_issues: int
    errored_categories: tuple[AssessmentCategory, ...]

    def describe(self) -> str:
        """Return a one-line explanation of the decision."""

        if not self.failed:
            return f"no issues at or above '{self.threshold.value}'"
        parts: list[str] = []
        if self.offending_issues:
            parts.append(f"{self.offending_issues} issue(s) at or above '{self.threshold.value}'")
        if self.errored_categories:
            names = ", ".join(category.value for category in self.errored_categories)
            parts.append(f"categories failed to run: {names}")
        return "; ".join(parts)


def evaluate_fail_on(report: AssessmentReport, threshold: IssueSeverity) -> FailOnDecision:
    """Compare ``report`` with ``threshold`` without modifying the report.

    The run fails when any issue is at or above ``threshold`` or when any
    category finished with ``error`` status.
    """

    severities = [issue.severity for issue in report.iter_issues()]
    offending = sum(1 for severity in severities if severity.at_least(threshold))
    errored = tuple(
        sorted(
            (category for category, result in report.categories.items() if result.status is CategoryStatus.ERROR),
            key=lambda category: category.value,
        ),
    )
    return FailOnDecision(
        failed=offending > 0 or bool(errored),
        threshold=threshold,
        highest=highest_severity(severities),
        offending_issues=offending,
        errored_categories=errored,
    )


def should_fail(report: AssessmentReport, threshold: IssueSeverity) -> bool:
    """Return ``True`` when ``report`` trips the fail-on ``threshold``."""

    return evaluate_fail_on(report, threshold).failed


__all__ = ["FailOnDecision", "evaluate_fail_on", "should_fail"]
