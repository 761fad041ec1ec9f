# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Core data models shared across the pyassess package.

Every artefact produced by an assessment run is a pydantic model so the
JSON representation of an :class:`AssessmentReport` is authoritative and
round-trips through ``model_dump_json``/``model_validate_json`` without loss.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .severity import IssueSeverity

type JsonScalar = str | int | float | bool | None
type JsonValue = JsonScalar | list[JsonValue] | dict[str, JsonValue]

REPOSITORY_SENTINEL: Final[str] = "repository"


class AssessmentCategory(str, Enum):
    """Closed set of assessment categories."""

    FORMAT = "format"
    LINT = "lint"
    STATIC_ANALYSIS = "static-analysis"
    SECURITY = "security"
    PERFORMANCE = "performance"
    SCHEMA = "schema"
    DATES = "dates"
    TOOLS = "tools"
    MATURITY = "maturity"
    REPO_STATUS = "repo-status"
    DEPENDENCIES = "dependencies"


class AssessmentMode(str, Enum):
    """Operating mode forwarded to tool adapters."""

    NO_OP = "no-op"
    CHECK = "check"
    FIX = "fix"


class CategoryStatus(str, Enum):
    """Terminal status recorded for every executed category."""

    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class Issue(BaseModel):
    """Single normalised finding emitted by an adapter."""

    model_config = ConfigDict(frozen=True)

    file: str = ""
    line: int | None = None
    column: int | None = None
    severity: IssueSeverity
    message: str
    category: AssessmentCategory
    sub_category: str = ""
    auto_fixable: bool = False
    estimated_time: timedelta = timedelta(0)
    related_files: tuple[str, ...] = Field(default_factory=tuple)
    change_related: bool = False
    lines_modified: tuple[int, ...] = Field(default_factory=tuple)
    # Set on findings about the whole repository; ``file`` then holds the sentinel.
    repository_wide: bool = False

    @field_validator("file", mode="before")
    @classmethod
    def _normalize_file(cls, value: object) -> str:
        """Return ``value`` as a POSIX-style path string."""

        if value is None:
            return ""
        return str(value).replace("\\", "/")

    def touched_files(self) -> tuple[str, ...]:
        """Return the primary file followed by related files, deduplicated.

        Returns:
            tuple[str, ...]: Files the remediation of this issue edits.
        """

        ordered = dict.fromkeys(path for path in (self.file, *self.related_files) if path)
        return tuple(ordered)


class CategoryResult(BaseModel):
    """Outcome of one category's assessment, written once by the executor."""

    model_config = ConfigDict(frozen=True)

    category: AssessmentCategory
    issues: tuple[Issue, ...] = Field(default_factory=tuple)
    issue_count: int = 0
    priority: int = 999
    parallelizable: bool = True
    status: CategoryStatus = CategoryStatus.SUCCESS
    error: str = ""
    estimated_time: timedelta = timedelta(0)
    execution_time: timedelta = timedelta(0)

    @model_validator(mode="before")
    @classmethod
    def _derive_fields(cls, data: object) -> object:
        """Derive ``issue_count`` and force ``error`` status from raw input."""

        if not isinstance(data, Mapping):
            return data
        payload = dict(data)
        if "issue_count" not in payload:
            payload["issue_count"] = len(payload.get("issues") or ())
        if payload.get("error"):
            payload["status"] = CategoryStatus.ERROR
        return payload

    @model_validator(mode="after")
    def _check_invariants(self) -> CategoryResult:
        """Reject results whose derived fields disagree with their issues."""

        if self.issue_count != len(self.issues):
            raise ValueError(
                f"issue_count {self.issue_count} does not match {len(self.issues)} issue(s)",
            )
        return self


class Suppression(BaseModel):
    """Inline suppression of a tool finding found in source or tool output."""

    model_config = ConfigDict(frozen=True)

    tool: str
    rule_id: str = ""
    file: str
    line: int = 0
    column: int = 0
    syntax: str = ""
    reason: str = ""
    severity: IssueSeverity | None = None
    age_days: int | None = None
    author: str = ""
    commit: str = ""


class TopItem(BaseModel):
    """Aggregated name and count pair."""

    model_config = ConfigDict(frozen=True)

    name: str
    count: int


class SuppressionSummary(BaseModel):
    """Aggregated statistics about a set of suppressions."""

    total: int = 0
    by_tool: dict[str, int] = Field(default_factory=dict)
    by_severity: dict[str, int] = Field(default_factory=dict)
    by_rule: dict[str, int] = Field(default_factory=dict)
    by_rule_files: dict[str, list[str]] = Field(default_factory=dict)
    by_file: dict[str, int] = Field(default_factory=dict)
    top_rules: list[TopItem] = Field(default_factory=list)
    top_files: list[TopItem] = Field(default_factory=list)
    with_reason: int = 0
    without_reason: int = 0
    average_age_days: float | None = None
    oldest_days: int | None = None
    newest_days: int | None = None


class PolicyViolation(BaseModel):
    """Suppression that violates the configured suppression policy."""

    suppression: Suppression
    violations: list[str]


class SuppressionReport(BaseModel):
    """Suppressions collected during a run together with their summary."""

    suppressions: list[Suppression] = Field(default_factory=list)
    summary: SuppressionSummary = Field(default_factory=SuppressionSummary)
    policy_violations: list[PolicyViolation] = Field(default_factory=list)


class AssessmentResult(BaseModel):
    """Value returned by an assessment runner for its category."""

    model_config = ConfigDict(validate_assignment=True)

    category: AssessmentCategory
    success: bool = True
    issues: list[Issue] = Field(default_factory=list)
    error: str = ""
    execution_time: timedelta = timedelta(0)
    metrics: dict[str, JsonValue] = Field(default_factory=dict)
    suppression_report: SuppressionReport | None = None


class ReportSummary(BaseModel):
    """Derived aggregate statistics; recomputable from the category map."""

    model_config = ConfigDict(frozen=True)

    overall_health: float = Field(default=1.0, ge=0.0, le=1.0)
    critical_issues: int = 0
    total_issues: int = 0
    estimated_time: timedelta = timedelta(0)
    parallel_groups: int = 0
    categories_with_issues: int = 0


class WorkflowPhase(BaseModel):
    """Sequential remediation step covering categories of equal priority."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    priority: int
    categories: tuple[AssessmentCategory, ...]
    estimated_time: timedelta


class ParallelGroup(BaseModel):
    """Cluster of issues connected through shared files."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    files: tuple[str, ...]
    categories: tuple[AssessmentCategory, ...]
    issue_count: int
    estimated_time: timedelta


class WorkflowPlan(BaseModel):
    """Remediation plan derived entirely from category results."""

    model_config = ConfigDict(frozen=True)

    phases: tuple[WorkflowPhase, ...] = Field(default_factory=tuple)
    parallel_groups: tuple[ParallelGroup, ...] = Field(default_factory=tuple)
    total_time: timedelta = timedelta(0)


class ChangeContext(BaseModel):
    """Git change information captured at assessment time."""

    modified_files: list[str] = Field(default_factory=list)
    total_changes: int = 0
    change_scope: str = "small"
    git_sha: str = ""
    branch: str = ""


class ReportMetadata(BaseModel):
    """Run metadata attached to every report."""

    model_config = ConfigDict(validate_assignment=True)

    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    tool: str = "pyassess"
    version: str = ""
    target: str = ""
    execution_time: timedelta = timedelta(0)
    commands_run: list[str] = Field(default_factory=list)
    fail_on: IssueSeverity = IssueSeverity.CRITICAL
    change_context: ChangeContext | None = None


class ExtendedWorkplan(BaseModel):
    """Planning and execution details emitted for ``--extended`` runs."""

    categories_planned: list[AssessmentCategory] = Field(default_factory=list)
    categories_skipped: dict[str, str] = Field(default_factory=dict)
    worker_count: int = 1
    category_estimates: dict[str, timedelta] = Field(default_factory=dict)
    category_runtimes: dict[str, timedelta] = Field(default_factory=dict)
    total_runtime: timedelta = timedelta(0)


class AssessmentReport(BaseModel):
    """Top-level artefact produced once per assessment invocation."""

    model_config = ConfigDict(validate_assignment=True)

    metadata: ReportMetadata = Field(default_factory=ReportMetadata)
    summary: ReportSummary = Field(default_factory=ReportSummary)
    categories: dict[AssessmentCategory, CategoryResult] = Field(default_factory=dict)
    workflow: WorkflowPlan = Field(default_factory=WorkflowPlan)
    workplan: ExtendedWorkplan | None = None
    suppression_report: SuppressionReport | None = None

    def iter_issues(self) -> Iterator[Issue]:
        """Yield every issue across all categories.

        Returns:
            Iterator[Issue]: Issues in category priority order.
        """

        for result in sorted(self.categories.values(), key=lambda item: (item.priority, item.category.value)):
            yield from result.issues


__all__ = [
    "REPOSITORY_SENTINEL",
    "AssessmentCategory",
    "AssessmentMode",
    "AssessmentReport",
    "AssessmentResult",
    "CategoryResult",
    "CategoryStatus",
    "ChangeContext",
    "ExtendedWorkplan",
    "Issue",
    "JsonValue",
    "ParallelGroup",
    "PolicyViolation",
    "ReportMetadata",
    "ReportSummary",
    "Suppression",
    "SuppressionReport",
    "SuppressionSummary",
    "TopItem",
    "WorkflowPhase",
    "WorkflowPlan",
]
