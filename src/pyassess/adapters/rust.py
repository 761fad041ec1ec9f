# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Adapters wrapping cargo clippy and cargo-deny for Rust projects."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Final, cast

from ..core.context import RunContext
from ..core.errors import OutputParseError
from ..core.models import AssessmentCategory, AssessmentMode, Issue
from ..core.process import find_executable
from ..core.severity import IssueSeverity, SeverityTable, map_severity
from ..discovery import find_cargo_manifest, rust_report_file
from .base import CommandAdapter, JsonObject, get_int, get_mapping, get_str, parse_json_shapes

LOGGER = logging.getLogger(__name__)

CLIPPY_SUBCATEGORY: Final[str] = "rust:clippy"
CARGO_DENY_SUBCATEGORY: Final[str] = "rust:cargo-deny"
CARGO_DENY_LICENSE_SUBCATEGORY: Final[str] = "rust:cargo-deny:license"
CARGO_DENY_BANS_SUBCATEGORY: Final[str] = "rust:cargo-deny:bans"

# Levels outside this table (note, help, failure-note) are not findings.
CLIPPY_SEVERITY: Final[SeverityTable] = {
    "error": IssueSeverity.HIGH,
    "warning": IssueSeverity.MEDIUM,
}

CARGO_DENY_SEVERITY: Final[SeverityTable] = {
    "critical": IssueSeverity.CRITICAL,
    "high": IssueSeverity.HIGH,
    "error": IssueSeverity.HIGH,
    "medium": IssueSeverity.MEDIUM,
    "moderate": IssueSeverity.MEDIUM,
    "warning": IssueSeverity.MEDIUM,
    "low": IssueSeverity.LOW,
}

_DEPENDENCY_FIX_TIME: Final[timedelta] = timedelta(minutes=30)
_LICENSE_TYPES: Final[frozenset[str]] = frozenset({"license", "licenses"})
_BAN_TYPES: Final[frozenset[str]] = frozenset({"ban", "bans"})


def _cargo_available(root_has_manifest: bool, plugin: str) -> bool:
    return root_has_manifest and find_executable("cargo") is not None and find_executable(plugin) is not None


@dataclass(slots=True)
class ClippyAdapter(CommandAdapter):
    """Run ``cargo clippy --message-format=json``."""

    executable: str = "cargo"

    @property
    def name(self) -> str:
        return "clippy"

    def is_available(self) -> bool:
        return _cargo_available(find_cargo_manifest(self.root) is not None, "cargo-clippy")

    def run(self, ctx: RunContext) -> list[Issue]:
        args = ["clippy", "--message-format=json"]
        if self.config.mode is AssessmentMode.FIX:
            args.extend(["--fix", "--allow-dirty", "--allow-staged"])
        completed = self.execute(ctx, args)
        return parse_clippy(completed.stdout)


def parse_clippy(stdout: str) -> list[Issue]:
    """Convert cargo's JSON message stream into clippy issues.

    Only ``compiler-message`` records with a mapped level and a source span
    become issues.

    Raises:
        OutputParseError: If non-empty output contains no JSON record.
    """

    if not stdout.strip():
        return []
    records: list[JsonObject] = []
    for raw_line in stdout.splitlines():
        line = raw_line.strip()
        if not line.startswith("{"):
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(record, dict):
            records.append(cast(JsonObject, record))
    if not records:
        raise OutputParseError("clippy", "no JSON messages in cargo output")

    issues: list[Issue] = []
    for record in records:
        if record.get("reason") != "compiler-message":
            continue
        message = get_mapping(record, "message")
        level = get_str(message, "level").lower()
        if level not in CLIPPY_SEVERITY:
            continue
        spans = [span for span in message.get("spans") or [] if isinstance(span, dict)]
        if not spans:
            continue
        primary = next((span for span in spans if span.get("is_primary") is True), spans[0])
        file = get_str(primary, "file_name")
        # Secondary spans mark code the same fix may have to touch.
        related = dict.fromkeys(get_str(span, "file_name") for span in spans if span is not primary)
        code = get_str(get_mapping(message, "code"), "code")
        text = get_str(message, "message")
        issues.append(
            Issue(
                file=file,
                line=get_int(primary, "line_start"),
                column=get_int(primary, "column_start"),
                severity=map_severity(level, CLIPPY_SEVERITY),
                message=f"{code}: {text}" if code else text,
                category=AssessmentCategory.LINT,
                sub_category=CLIPPY_SUBCATEGORY,
                related_files=tuple(path for path in related if path and path != file),
            ),
        )
    return issues


def parse_cargo_deny_entries(output: str) -> list[JsonObject]:
    """Parse cargo-deny output accepting list, object and NDJSON shapes.

    Newer cargo-deny releases wrap diagnostics as ``{"type": ..., "fields":
    {...}}``; the wrapped fields are flattened into the entry.
    """

    entries: list[JsonObject] = []
    for entry in parse_json_shapes(output, tool="cargo-deny"):
        fields = get_mapping(entry, "fields")
        merged = {**entry, **fields} if fields else entry
        if get_str(merged, "type", "message", "id"):
            entries.append(merged)
    return entries


def _deny_message(entry: JsonObject) -> str:
    advisory = get_mapping(entry, "advisory")
    message = get_str(entry, "message") or get_str(advisory, "title") or "cargo-deny finding"
    kind = get_str(entry, "type")
    if kind:
        message = f"{kind}: {message}"
    ident = get_str(entry, "id", "code") or get_str(advisory, "id")
    return f"cargo-deny({ident}): {message}" if ident else f"cargo-deny: {message}"


def _deny_severity(entry: JsonObject) -> IssueSeverity:
    label = get_str(entry, "severity") or get_str(get_mapping(entry, "advisory"), "severity")
    return map_severity(label, CARGO_DENY_SEVERITY)


def _deny_output(stdout: str, stderr: str) -> str:
    # cargo-deny writes its JSON diagnostics to stderr in most releases.
    return stdout if stdout.strip() else stderr


@dataclass(slots=True)
class CargoDenyAdapter(CommandAdapter):
    """Run ``cargo deny check advisories`` for the security category."""

    executable: str = "cargo"

    @property
    def name(self) -> str:
        return "cargo-deny"

    def is_available(self) -> bool:
        return _cargo_available(find_cargo_manifest(self.root) is not None, "cargo-deny")

    def run(self, ctx: RunContext) -> list[Issue]:
        completed = self.execute(ctx, ["deny", "--format", "json", "check", "advisories"])
        output = _deny_output(completed.stdout, completed.stderr)
        report_file = rust_report_file(self.root)
        return [
            Issue(
                file=report_file,
                severity=_deny_severity(entry),
                message=_deny_message(entry),
                category=AssessmentCategory.SECURITY,
                sub_category=CARGO_DENY_SUBCATEGORY,
            )
            for entry in parse_cargo_deny_entries(output)
        ]


@dataclass(slots=True)
class CargoDenyDependencyAdapter(CommandAdapter):
    """Run ``cargo deny check licenses bans`` for the dependencies category."""

    executable: str = "cargo"

    @property
    def name(self) -> str:
        return "cargo-deny-deps"

    def is_available(self) -> bool:
        return _cargo_available(find_cargo_manifest(self.root) is not None, "cargo-deny")

    def run(self, ctx: RunContext) -> list[Issue]:
        completed = self.execute(ctx, ["deny", "--format", "json", "check", "licenses", "bans"])
        output = _deny_output(completed.stdout, completed.stderr)
        if not output.strip() and completed.returncode != 0:
            LOGGER.warning("cargo-deny exited with %s without output", completed.returncode)
        return dependency_issues(parse_cargo_deny_entries(output), rust_report_file(self.root))


def dependency_issues(entries: list[JsonObject], report_file: str) -> list[Issue]:
    """Map cargo-deny license and ban entries to dependency issues.

    License violations are high severity and bans medium; other entry types
    keep their tool severity.
    """

    issues: list[Issue] = []
    for entry in entries:
        kind = get_str(entry, "type").lower()
        if kind in _LICENSE_TYPES:
            severity, sub_category = IssueSeverity.HIGH, CARGO_DENY_LICENSE_SUBCATEGORY
        elif kind in _BAN_TYPES:
            severity, sub_category = IssueSeverity.MEDIUM, CARGO_DENY_BANS_SUBCATEGORY
        else:
            severity, sub_category = _deny_severity(entry), CARGO_DENY_SUBCATEGORY
        issues.append(
            Issue(
                file=report_file,
                severity=severity,
                message=_deny_message(entry),
                category=AssessmentCategory.DEPENDENCIES,
                sub_category=sub_category,
                estimated_time=_DEPENDENCY_FIX_TIME,
            ),
        )
    return issues


__all__ = [
    "CARGO_DENY_BANS_SUBCATEGORY",
    "CARGO_DENY_LICENSE_SUBCATEGORY",
    "CARGO_DENY_SEVERITY",
    "CARGO_DENY_SUBCATEGORY",
    "CLIPPY_SEVERITY",
    "CLIPPY_SUBCATEGORY",
    "CargoDenyAdapter",
    "CargoDenyDependencyAdapter",
    "ClippyAdapter",
    "dependency_issues",
    "parse_cargo_deny_entries",
    "parse_clippy",
]
