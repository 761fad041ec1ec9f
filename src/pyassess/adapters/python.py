# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Adapters wrapping ruff for Python lint and format checks."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import timedelta
from typing import Final, cast

from ..core.context import RunContext
from ..core.errors import OutputParseError
from ..core.models import AssessmentCategory, AssessmentMode, Issue
from ..core.severity import IssueSeverity
from ..discovery import PYTHON_EXTENSIONS, collect_files, has_python_sources
from .base import CommandAdapter, JsonObject, get_int, get_mapping, get_str

RUFF_LINT_SUBCATEGORY: Final[str] = "python:ruff"
RUFF_FORMAT_SUBCATEGORY: Final[str] = "python:ruff-format"
_FORMAT_FIX_TIME: Final[timedelta] = timedelta(seconds=30)
_REFORMAT_PREFIX: Final[str] = "would reformat:"


@dataclass(slots=True)
class RuffCheckAdapter(CommandAdapter):
    """Run ``ruff check`` and report its diagnostics as lint issues."""

    executable: str = "ruff"

    def is_available(self) -> bool:
        return CommandAdapter.is_available(self) and has_python_sources(self.root, self.config)

    def run(self, ctx: RunContext) -> list[Issue]:
        files = collect_files(self.root, PYTHON_EXTENSIONS, self.config)
        if not files:
            return []
        if self.config.mode is AssessmentMode.FIX:
            self.execute(ctx, ["check", "--fix", *files])
        completed = self.execute(ctx, ["check", "--output-format", "json", *files])
        return parse_ruff_check(completed.stdout)


def parse_ruff_check(stdout: str) -> list[Issue]:
    """Convert ``ruff check --output-format json`` output into issues.

    Raises:
        OutputParseError: If the payload is not a JSON list.
    """

    if not stdout.strip():
        return []
    try:
        payload = json.loads(stdout)
    except json.JSONDecodeError as exc:
        raise OutputParseError("ruff", f"failed to parse ruff json: {exc}") from exc
    if not isinstance(payload, list):
        raise OutputParseError("ruff", "expected a JSON list of diagnostics")

    issues: list[Issue] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        entry = cast(JsonObject, item)
        location = get_mapping(entry, "location")
        code = get_str(entry, "code")
        message = get_str(entry, "message")
        issues.append(
            Issue(
                file=get_str(entry, "filename"),
                line=get_int(location, "row"),
                column=get_int(location, "column"),
                severity=IssueSeverity.MEDIUM,
                message=f"{code} {message}" if code else message,
                category=AssessmentCategory.LINT,
                sub_category=RUFF_LINT_SUBCATEGORY,
            ),
        )
    return issues


@dataclass(slots=True)
class RuffFormatAdapter(CommandAdapter):
    """Run ``ruff format --check`` (or ``ruff format`` in fix mode)."""

    executable: str = "ruff"

    @property
    def name(self) -> str:
        return "ruff-format"

    def is_available(self) -> bool:
        return CommandAdapter.is_available(self) and has_python_sources(self.root, self.config)

    def run(self, ctx: RunContext) -> list[Issue]:
        files = collect_files(self.root, PYTHON_EXTENSIONS, self.config)
        if not files:
            return []
        if self.config.mode is AssessmentMode.FIX:
            self.execute(ctx, ["format", *files])
            return []
        completed = self.execute(ctx, ["format", "--check", *files])
        if completed.returncode == 0:
            return []
        return parse_ruff_format(completed.stdout, fallback_files=files)


def parse_ruff_format(stdout: str, *, fallback_files: list[str]) -> list[Issue]:
    """Return one format issue per file ruff would reformat.

    When ruff reports differences without naming files, every checked file
    is reported so that the finding is not dropped.
    """

    touched: list[str] = []
    for raw_line in stdout.splitlines():
        line = raw_line.strip()
        if line.lower().startswith(_REFORMAT_PREFIX):
            candidate = line[len(_REFORMAT_PREFIX) :].strip()
            if candidate:
                touched.append(candidate)
    return [
        Issue(
            file=path,
            severity=IssueSeverity.LOW,
            message="Python file not formatted (ruff format)",
            category=AssessmentCategory.FORMAT,
            sub_category=RUFF_FORMAT_SUBCATEGORY,
            auto_fixable=True,
            estimated_time=_FORMAT_FIX_TIME,
        )
        for path in (touched or fallback_files)
    ]


__all__ = [
    "RUFF_FORMAT_SUBCATEGORY",
    "RUFF_LINT_SUBCATEGORY",
    "RuffCheckAdapter",
    "RuffFormatAdapter",
    "parse_ruff_check",
    "parse_ruff_format",
]
