# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Render assessment reports as JSON, Markdown or a concise console view."""

from __future__ import annotations

import io
from datetime import timedelta
from enum import Enum
from pathlib import Path

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..core.logging import emoji
from ..core.models import AssessmentReport, CategoryResult, CategoryStatus
from ..core.severity import IssueSeverity

_STATUS_SYMBOLS = {
    CategoryStatus.SUCCESS: "✅",
    CategoryStatus.ERROR: "❌",
    CategoryStatus.SKIPPED: "⏭️",
}
_STATUS_STYLES = {
    CategoryStatus.SUCCESS: "green",
    CategoryStatus.ERROR: "red",
    CategoryStatus.SKIPPED: "yellow",
}
_SEVERITY_STYLES = {
    IssueSeverity.CRITICAL: "bold red",
    IssueSeverity.HIGH: "red",
    IssueSeverity.MEDIUM: "yellow",
    IssueSeverity.LOW: "cyan",
    IssueSeverity.INFO: "dim",
}
_MARKDOWN_ISSUE_LIMIT = 50


class ReportFormat(str, Enum):
    """Output formats supported by :func:`format_report`."""

    JSON = "json"
    MARKDOWN = "markdown"
    CONCISE = "concise"


def format_duration(value: timedelta) -> str:
    """Return ``value`` as a compact human-readable duration (``1h 5m``)."""

    seconds = int(round(value.total_seconds()))
    if seconds <= 0:
        return "0s"
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = [f"{amount}{unit}" for amount, unit in ((hours, "h"), (minutes, "m"), (secs, "s")) if amount]
    return " ".join(parts)


def format_json(report: AssessmentReport) -> str:
    """Return the authoritative JSON serialisation of ``report``."""

    return report.model_dump_json(indent=2)


def load_json_report(text: str) -> AssessmentReport:
    """Parse a report previously produced by :func:`format_json`."""

    return AssessmentReport.model_validate_json(text)


def _location(file: str, line: int | None) -> str:
    if not file:
        return "-"
    return f"{file}:{line}" if line is not None else file


def _escape_cell(value: str) -> str:
    return value.replace("|", "\\|").replace("\n", " ")


def format_markdown(report: AssessmentReport, *, issue_limit: int = _MARKDOWN_ISSUE_LIMIT) -> str:
    """Render ``report`` as a Markdown document."""

    summary = report.summary
    lines = [
        "# Assessment Report",
        "",
        f"- **Target:** `{report.metadata.target}`",
        f"- **Generated:** {report.metadata.generated_at.isoformat()}",
        f"- **Overall health:** {summary.overall_health:.0%}",
        f"- **Total issues:** {summary.total_issues} ({summary.critical_issues} critical)",
        f"- **Estimated fix time:** {format_duration(summary.estimated_time)}",
        f"- **Parallel groups:** {summary.parallel_groups}",
        "",
        "## Categories",
        "",
        "| Category | Status | Issues | Priority | Estimated time |",
        "| --- | --- | ---: | ---: | --- |",
    ]
    for result in report.categories.values():
        status = result.status.value
        if result.error:
            status = f"{status}: {_escape_cell(result.error)}"
        lines.append(
            f"| {result.category.value} | {status} | {result.issue_count} | {result.priority} "
            f"| {format_duration(result.estimated_time)} |",
        )

    if report.workflow.phases:
        lines.extend(["", "## Workflow", ""])
        for index, phase in enumerate(report.workflow.phases, start=1):
            categories = ", ".join(category.value for category in phase.categories)
            lines.append(
                f"{index}. **{phase.name}** ({phase.description}): "
                f"{categories} ({format_duration(phase.estimated_time)})",
            )

    issues = list(report.iter_issues())
    if issues:
        lines.extend(["", "## Issues", "", "| Severity | Category | Location | Message |", "| --- | --- | --- | --- |"])
        for issue in issues[:issue_limit]:
            lines.append(
                f"| {issue.severity.value} | {issue.category.value} | `{_location(issue.file, issue.line)}` "
                f"| {_escape_cell(issue.message)} |",
            )
        if len(issues) > issue_limit:
            lines.append("")
            lines.append(f"_{len(issues) - issue_limit} more issue(s) omitted._")

    if report.workplan is not None and report.workplan.categories_skipped:
        lines.extend(["", "## Skipped categories", ""])
        for name, reason in report.workplan.categories_skipped.items():
            lines.append(f"- `{name}`: {reason}")
    return "\n".join(lines) + "\n"


def _status_text(result: CategoryResult, *, use_emoji: bool) -> Text:
    symbol = emoji(_STATUS_SYMBOLS[result.status] + " ", use_emoji)
    return Text(f"{symbol}{result.status.value}", style=_STATUS_STYLES[result.status])


def render_concise(report: AssessmentReport, console: Console, *, use_emoji: bool = True) -> None:
    """Print a compact summary of ``report`` to ``console``."""

    for issue in report.iter_issues():
        line = Text()
        line.append(f"{issue.severity.value:<8}", style=_SEVERITY_STYLES[issue.severity])
        line.append(f" {issue.category.value}, ")
        line.append(_location(issue.file, issue.line), style="bold")
        line.append(f", {issue.message}")
        console.print(line)

    table = Table(box=box.SIMPLE, pad_edge=False, expand=False)
    table.add_column("Category", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Issues", justify="right")
    table.add_column("Time", justify="right")
    for result in report.categories.values():
        table.add_row(
            result.category.value,
            _status_text(result, use_emoji=use_emoji),
            str(result.issue_count),
            format_duration(result.execution_time),
        )
    console.print(table)

    summary = report.summary
    failed = any(result.status is CategoryStatus.ERROR for result in report.categories.values())
    label = "Failed" if failed else "Passed"
    symbol = emoji("❌ " if failed else "✅ ", use_emoji)
    console.print(
        Text(f"{symbol}{label}", style="red" if failed else "green")
        + Text(
            f" health {summary.overall_health:.0%}; {summary.total_issues} issue(s) in "
            f"{summary.categories_with_issues} categor{'y' if summary.categories_with_issues == 1 else 'ies'}; "
            f"estimated fix time {format_duration(summary.estimated_time)}",
        ),
    )


def format_concise(report: AssessmentReport, *, color: bool = False, use_emoji: bool = True) -> str:
    """Return the concise view of ``report`` as text."""

    buffer = io.StringIO()
    console = Console(
        file=buffer,
        force_terminal=color,
        color_system="standard" if color else None,
        no_color=not color,
        width=120,
    )
    render_concise(report, console, use_emoji=use_emoji)
    return buffer.getvalue()


def format_report(
    report: AssessmentReport,
    fmt: ReportFormat | str = ReportFormat.JSON,
    *,
    color: bool = False,
    use_emoji: bool = True,
) -> str:
    """Render ``report`` in ``fmt``.

    Raises:
        ValueError: If ``fmt`` names an unsupported format.
    """

    match ReportFormat(fmt):
        case ReportFormat.JSON:
            return format_json(report)
        case ReportFormat.MARKDOWN:
            return format_markdown(report)
        case ReportFormat.CONCISE:
            return format_concise(report, color=color, use_emoji=use_emoji)


def write_report(report: AssessmentReport, path: Path, fmt: ReportFormat | str = ReportFormat.JSON) -> None:
    """Write ``report`` to ``path`` in ``fmt``, creating parent directories."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_report(report, fmt, color=False), encoding="utf-8")


__all__ = [
    "ReportFormat",
    "format_concise",
    "format_duration",
    "format_json",
    "format_markdown",
    "format_report",
    "load_json_report",
    "render_concise",
    "write_report",
]
