# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Option declarations and normalised inputs for the ``assess`` command."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer

from ..core.models import AssessmentMode
from ..reporting.formatters import ReportFormat

TARGET_ARGUMENT = Annotated[
    Path,
    typer.Argument(exists=True, file_okay=False, dir_okay=True, help="Repository root to assess."),
]
FORMAT_OPTION = Annotated[
    ReportFormat,
    typer.Option("--format", "-f", case_sensitive=False, help="Report format."),
]
MODE_OPTION = Annotated[
    AssessmentMode | None,
    typer.Option("--mode", case_sensitive=False, help="Assessment mode (no-op, check or fix)."),
]
FAIL_ON_OPTION = Annotated[
    str | None,
    typer.Option("--fail-on", help="Exit non-zero when an issue reaches this severity."),
]
CATEGORIES_OPTION = Annotated[
    list[str] | None,
    typer.Option("--categories", "-c", help="Categories to run (repeatable or comma separated)."),
]
PRIORITY_OPTION = Annotated[
    str | None,
    typer.Option("--priority", help="Priority overrides such as 'security=1,format=2'."),
]
CONCURRENCY_OPTION = Annotated[
    int | None,
    typer.Option("--concurrency", min=0, help="Explicit worker count (0 derives it from CPUs)."),
]
CONCURRENCY_PERCENT_OPTION = Annotated[
    int | None,
    typer.Option("--concurrency-percent", min=1, max=100, help="Share of CPU cores used as workers."),
]
TIMEOUT_OPTION = Annotated[
    float | None,
    typer.Option("--timeout", min=0.001, help="Per-category timeout in seconds."),
]
TOTAL_TIMEOUT_OPTION = Annotated[
    float | None,
    typer.Option("--total-timeout", min=0.001, help="Run-wide timeout in seconds."),
]
INCLUDE_OPTION = Annotated[
    list[str] | None,
    typer.Option("--include", help="Glob restricting the files considered (repeatable)."),
]
EXCLUDE_OPTION = Annotated[
    list[str] | None,
    typer.Option("--exclude", help="Glob excluding files (repeatable)."),
]
OUTPUT_OPTION = Annotated[
    Path | None,
    typer.Option("--output", "-o", dir_okay=False, help="Write the report to this file."),
]
EXTENDED_OPTION = Annotated[
    bool | None,
    typer.Option("--extended/--no-extended", help="Include the extended workplan."),
]
TRACK_SUPPRESSIONS_OPTION = Annotated[
    bool | None,
    typer.Option("--track-suppressions/--no-track-suppressions", help="Collect inline suppressions."),
]
VERBOSE_OPTION = Annotated[bool, typer.Option("--verbose", "-v", help="Emit debug logging.")]
NO_EMOJI_OPTION = Annotated[bool, typer.Option("--no-emoji", help="Disable emoji in output.")]


@dataclass(slots=True)
class AssessCLIOptions:
    """Normalised CLI inputs for the ``assess`` command."""

    target: Path
    output_format: ReportFormat
    output: Path | None
    use_emoji: bool
    overrides: dict[str, object]


def build_overrides(
    *,
    mode: AssessmentMode | None = None,
    fail_on: str | None = None,
    categories: list[object] | None = None,
    priority: str | None = None,
    concurrency: int | None = None,
    concurrency_percent: int | None = None,
    timeout: float | None = None,
    total_timeout: float | None = None,
    include: list[str] | None = None,
    exclude: list[str] | None = None,
    extended: bool | None = None,
    track_suppressions: bool | None = None,
    verbose: bool = False,
) -> dict[str, object]:
    """Return configuration overrides for flags the user actually set."""

    overrides: dict[str, object] = {
        "mode": mode,
        "fail_on": fail_on,
        "selected_categories": categories,
        "priority": priority,
        "concurrency": concurrency,
        "concurrency_percent": concurrency_percent,
        "timeout": timeout,
        "total_timeout": total_timeout,
        "include_files": include or None,
        "exclude_files": exclude or None,
        "extended": extended,
        "track_suppressions": track_suppressions,
        "verbose": verbose or None,
    }
    return {key: value for key, value in overrides.items() if value is not None}


__all__ = [
    "CATEGORIES_OPTION",
    "CONCURRENCY_OPTION",
    "CONCURRENCY_PERCENT_OPTION",
    "EXCLUDE_OPTION",
    "EXTENDED_OPTION",
    "FAIL_ON_OPTION",
    "FORMAT_OPTION",
    "INCLUDE_OPTION",
    "MODE_OPTION",
    "NO_EMOJI_OPTION",
    "OUTPUT_OPTION",
    "PRIORITY_OPTION",
    "TARGET_ARGUMENT",
    "TIMEOUT_OPTION",
    "TOTAL_TIMEOUT_OPTION",
    "TRACK_SUPPRESSIONS_OPTION",
    "VERBOSE_OPTION",
    "AssessCLIOptions",
    "build_overrides",
]
