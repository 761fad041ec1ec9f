# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Adapters wrapping Biome for JavaScript/TypeScript lint and format checks."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Final

from ..core.context import RunContext
from ..core.errors import OutputParseError
from ..core.models import AssessmentCategory, AssessmentMode, Issue
from ..core.severity import IssueSeverity, SeverityTable, map_severity
from ..discovery import is_js_project
from .base import CommandAdapter, get_mapping, get_str, load_json_object

BIOME_LINT_SUBCATEGORY: Final[str] = "js:biome"
BIOME_FORMAT_SUBCATEGORY: Final[str] = "js:biome-format"

BIOME_SEVERITY: Final[SeverityTable] = {
    "error": IssueSeverity.HIGH,
    "fatal": IssueSeverity.HIGH,
    "warning": IssueSeverity.MEDIUM,
    "information": IssueSeverity.LOW,
    "info": IssueSeverity.LOW,
    "hint": IssueSeverity.LOW,
}

_INTERNAL_ERROR_PREFIX: Final[str] = "internalError"
_FORMAT_FIX_TIME: Final[timedelta] = timedelta(seconds=30)
# Biome's text reporter prints ``path format ━━━`` headers for unformatted files.
_FORMAT_HEADER: Final[re.Pattern[str]] = re.compile(r"^(?P<path>\S+)\s+format\b")


@dataclass(slots=True)
class BiomeLintAdapter(CommandAdapter):
    """Run ``biome lint --reporter=json``."""

    executable: str = "biome"

    def is_available(self) -> bool:
        return CommandAdapter.is_available(self) and is_js_project(self.root)

    def run(self, ctx: RunContext) -> list[Issue]:
        args = ["lint", "--reporter=json"]
        if self.config.mode is AssessmentMode.FIX:
            args.append("--write")
        completed = self.execute(ctx, [*args, "."])
        return parse_biome_lint(completed.stdout)


def parse_biome_lint(stdout: str) -> list[Issue]:
    """Convert Biome v2 JSON reporter output into issues.

    Raises:
        OutputParseError: If the payload is not a JSON object with diagnostics.
    """

    if not stdout.strip():
        return []
    report = load_json_object(stdout, tool="biome")
    diagnostics = report.get("diagnostics")
    if diagnostics is None:
        return []
    if not isinstance(diagnostics, list):
        raise OutputParseError("biome", "expected 'diagnostics' to be a list")

    issues: list[Issue] = []
    for item in diagnostics:
        if not isinstance(item, dict):
            continue
        category = get_str(item, "category")
        if category.startswith(_INTERNAL_ERROR_PREFIX):
            continue
        location = get_mapping(item, "location")
        path = location.get("path")
        file = get_str(path, "file") if isinstance(path, dict) else (path if isinstance(path, str) else "")
        description = get_str(item, "description", "message")
        issues.append(
            Issue(
                file=file,
                severity=map_severity(item.get("severity"), BIOME_SEVERITY),
                message=f"[{category}] {description}" if category else description,
                category=AssessmentCategory.LINT,
                sub_category=BIOME_LINT_SUBCATEGORY,
            ),
        )
    return issues


@dataclass(slots=True)
class BiomeFormatAdapter(CommandAdapter):
    """Run ``biome format`` in check or write mode."""

    executable: str = "biome"

    @property
    def name(self) -> str:
        return "biome-format"

    def is_available(self) -> bool:
        return CommandAdapter.is_available(self) and is_js_project(self.root)

    def run(self, ctx: RunContext) -> list[Issue]:
        if self.config.mode is AssessmentMode.FIX:
            self.execute(ctx, ["format", "--write", "."])
            return []
        completed = self.execute(ctx, ["format", "."])
        if completed.returncode == 0:
            return []
        return parse_biome_format(f"{completed.stdout}\n{completed.stderr}")


def parse_biome_format(output: str) -> list[Issue]:
    """Return one low-severity, auto-fixable issue per unformatted file.

    Raises:
        OutputParseError: If Biome failed without naming unformatted files.
    """

    files: list[str] = []
    for raw_line in output.splitlines():
        match = _FORMAT_HEADER.match(raw_line.strip())
        if match and match.group("path") not in files:
            files.append(match.group("path"))
    if not files:
        raise OutputParseError("biome-format", "format check failed without reporting files")
    return [
        Issue(
            file=path,
            severity=IssueSeverity.LOW,
            message="File not formatted (biome format)",
            category=AssessmentCategory.FORMAT,
            sub_category=BIOME_FORMAT_SUBCATEGORY,
            auto_fixable=True,
            estimated_time=_FORMAT_FIX_TIME,
        )
        for path in files
    ]


__all__ = [
    "BIOME_FORMAT_SUBCATEGORY",
    "BIOME_LINT_SUBCATEGORY",
    "BIOME_SEVERITY",
    "BiomeFormatAdapter",
    "BiomeLintAdapter",
    "parse_biome_format",
    "parse_biome_lint",
]
