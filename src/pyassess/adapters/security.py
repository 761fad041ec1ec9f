# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Security scanner adapters: gosec, govulncheck and gitleaks."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Final, Literal

from ..core.context import RunContext
from ..core.errors import OutputParseError
from ..core.models import AssessmentCategory, Issue, Suppression
from ..core.severity import IssueSeverity, SeverityTable, map_severity
from ..discovery import is_go_module
from .base import CommandAdapter, JsonObject, get_int, get_mapping, get_str, load_json_object, parse_json_shapes

type SecurityDimension = Literal["code", "vuln", "secrets"]

GOSEC_SEVERITY: Final[SeverityTable] = {
    "critical": IssueSeverity.CRITICAL,
    "high": IssueSeverity.HIGH,
    "medium": IssueSeverity.MEDIUM,
    "low": IssueSeverity.LOW,
}

# Suppressed gosec findings carry only a rule id; severity follows the rule family.
GOSEC_RULE_FAMILY_SEVERITY: Final[SeverityTable] = {
    "g1": IssueSeverity.MEDIUM,
    "g2": IssueSeverity.HIGH,
    "g3": IssueSeverity.MEDIUM,
    "g4": IssueSeverity.HIGH,
    "g5": IssueSeverity.MEDIUM,
    "g6": IssueSeverity.LOW,
}


@dataclass(slots=True)
class GosecAdapter(CommandAdapter):
    """Run gosec over a Go module, tracking suppressions on request."""

    executable: str = "gosec"
    dimension: SecurityDimension = "code"

    def is_available(self) -> bool:
        return CommandAdapter.is_available(self) and is_go_module(self.root)

    def run(self, ctx: RunContext) -> list[Issue]:
        issues, _ = self.run_with_suppressions(ctx)
        return issues

    def run_with_suppressions(self, ctx: RunContext) -> tuple[list[Issue], list[Suppression]]:
        args = ["-quiet", "-fmt=json"]
        if self.config.track_suppressions:
            args.append("-track-suppressions")
        completed = self.execute(ctx, [*args, "./..."])
        output = completed.stdout if completed.stdout.strip() else completed.stderr
        if not output.strip():
            return [], []
        return parse_gosec(output)


def parse_gosec(output: str) -> tuple[list[Issue], list[Suppression]]:
    """Convert gosec's ``{Issues, Suppressions}`` report.

    Raises:
        OutputParseError: If no JSON object can be recovered.
    """

    report = load_json_object(output, tool="gosec")
    issues: list[Issue] = []
    for item in report.get("Issues") or []:
        if not isinstance(item, dict):
            continue
        rule = get_str(item, "rule_id")
        issues.append(
            Issue(
                file=get_str(item, "file"),
                line=get_int(item, "line"),
                column=get_int(item, "column"),
                severity=map_severity(item.get("severity"), GOSEC_SEVERITY, IssueSeverity.LOW),
                message=f"gosec({rule}): {get_str(item, 'details')}",
                category=AssessmentCategory.SECURITY,
                sub_category="code",
            ),
        )

    suppressions: list[Suppression] = []
    for item in report.get("Suppressions") or []:
        if not isinstance(item, dict):
            continue
        rule = get_str(item, "rule_id")
        reason = get_str(item, "justification")
        suppressions.append(
            Suppression(
                tool="gosec",
                rule_id=rule,
                file=get_str(item, "file"),
                line=get_int(item, "line") or 0,
                column=get_int(item, "column") or 0,
                reason=reason,
                severity=gosec_rule_severity(rule),
                syntax=f"#nosec {rule} - {reason}" if reason else f"#nosec {rule}",
            ),
        )
    return issues, suppressions


def gosec_rule_severity(rule_id: str) -> IssueSeverity:
    """Return the severity implied by a gosec rule family (``G1xx`` .. ``G6xx``)."""

    return map_severity(rule_id[:2], GOSEC_RULE_FAMILY_SEVERITY)


@dataclass(slots=True)
class GovulncheckAdapter(CommandAdapter):
    """Run govulncheck and report reachable vulnerabilities."""

    executable: str = "govulncheck"
    dimension: SecurityDimension = "vuln"

    def is_available(self) -> bool:
        return CommandAdapter.is_available(self) and is_go_module(self.root)

    def run(self, ctx: RunContext) -> list[Issue]:
        completed = self.execute(ctx, ["-json", "./..."])
        return parse_govulncheck(completed.stdout)


def parse_govulncheck(stdout: str) -> list[Issue]:
    """Convert govulncheck's JSON event stream into issues.

    govulncheck prints pretty-printed JSON objects back to back, so the stream
    is decoded object by object rather than line by line.

    Raises:
        OutputParseError: If the stream contains invalid JSON.
    """

    decoder = json.JSONDecoder()
    text = stdout.strip()
    position = 0
    issues: list[Issue] = []
    seen: set[str] = set()
    while position < len(text):
        try:
            event, end = decoder.raw_decode(text, position)
        except json.JSONDecodeError as exc:
            raise OutputParseError("govulncheck", f"invalid JSON stream: {exc}") from exc
        position = end
        while position < len(text) and text[position].isspace():
            position += 1
        if not isinstance(event, dict):
            continue
        finding = get_mapping(event, "finding")
        if event.get("type") not in (None, "finding") or not finding:
            continue
        osv = get_str(finding, "osv")
        if not osv or osv in seen:
            continue
        seen.add(osv)
        trace = finding.get("trace")
        frame = trace[0] if isinstance(trace, list) and trace and isinstance(trace[0], dict) else {}
        module = get_str(frame, "module") or get_str(get_mapping(finding, "module"), "path")
        package = get_str(frame, "package") or get_str(get_mapping(finding, "package"), "path")
        issues.append(
            Issue(
                file="go.mod",
                severity=IssueSeverity.HIGH,
                message=f"govulncheck: {osv} in {module} ({package})",
                category=AssessmentCategory.SECURITY,
                sub_category="vulnerability",
            ),
        )
    return issues


@dataclass(slots=True)
class GitleaksAdapter(CommandAdapter):
    """Run gitleaks and report detected secrets."""

    executable: str = "gitleaks"
    dimension: SecurityDimension = "secrets"

    def run(self, ctx: RunContext) -> list[Issue]:
        args = ["detect", "--no-banner", "--report-format", "json", "--report-path", "-", "--source", "."]
        completed = self.execute(ctx, args)
        if not completed.stdout.strip():
            return []
        issues = parse_gitleaks(completed.stdout)
        return [issue for issue in issues if self.config.path_included(issue.file)]


def parse_gitleaks(stdout: str) -> list[Issue]:
    """Convert gitleaks JSON array or NDJSON output into issues.

    Raises:
        OutputParseError: If no finding can be recognised in non-empty output.
    """

    entries = parse_json_shapes(stdout, tool="gitleaks")
    issues = [issue for issue in map(_gitleaks_issue, entries) if issue is not None]
    if not issues and stdout.strip() not in ("", "[]"):
        raise OutputParseError("gitleaks", "unrecognized gitleaks output")
    return issues


def _gitleaks_issue(entry: JsonObject) -> Issue | None:
    file = get_str(entry, "File", "file")
    if not file:
        return None
    description = get_str(entry, "Description", "RuleID", "description", "rule") or "secret detected"
    return Issue(
        file=file,
        line=get_int(entry, "StartLine", "Line", "line"),
        severity=IssueSeverity.HIGH,
        message=f"gitleaks: {description}",
        category=AssessmentCategory.SECURITY,
        sub_category="secrets",
    )


__all__ = [
    "GOSEC_RULE_FAMILY_SEVERITY",
    "GOSEC_SEVERITY",
    "GitleaksAdapter",
    "GosecAdapter",
    "GovulncheckAdapter",
    "SecurityDimension",
    "gosec_rule_severity",
    "parse_gitleaks",
    "parse_gosec",
    "parse_govulncheck",
]
