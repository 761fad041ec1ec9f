# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Inline suppression discovery, aggregation and policy checks."""

from __future__ import annotations

import os
import re
from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from statistics import fmean
from typing import Final

from .core.models import PolicyViolation, Suppression, SuppressionReport, SuppressionSummary, TopItem
from .core.severity import SEVERITY_LEVELS

_TOP_LIMIT: Final[int] = 5
_SKIPPED_DIRECTORIES: Final[frozenset[str]] = frozenset({".git", "node_modules", "vendor", ".idea", ".venv"})

# Each pattern captures (rule, reason) where the syntax supports them.
DEFAULT_PATTERNS: Final[Mapping[str, tuple[re.Pattern[str], ...]]] = {
    "gosec": (
        re.compile(r"(?://|/\*)\s*#nosec(?:\s+(G\d{3}))?(?:\s*[-–]\s*(.*))?"),
        re.compile(r"^\s*#nosec(?:\s+(G\d{3}))?(?:\s*[-–]\s*(.*))?"),
    ),
    "bandit": (re.compile(r"#\s*nosec(?:\s+(B\d{3}))?(?:\s*[-–]\s*(.*))?"),),
    "semgrep": (re.compile(r"(?:#|//)\s*nosemgrep(?:\s*:\s*([^\s]+))?(?:\s*[-–]\s*(.*))?"),),
    "biome": (re.compile(r"//\s*biome-ignore\s+([^:\s]+)(?:\s*:\s*(.*))?"),),
    "eslint": (
        re.compile(r"//\s*eslint-disable-next-line(?:\s+([^\s]+))?(?:\s*--\s*(.*))?"),
        re.compile(r"/\*\s*eslint-disable(?:\s+([^\s*]+))?\s*\*/"),
    ),
    "ruff": (re.compile(r"#\s*noqa(?:\s*:\s*([A-Z]+\d+))?(?:\s*[-–]\s*(.*))?"),),
}

_TOOLS_BY_EXTENSION: Final[Mapping[str, tuple[str, ...]]] = {
    ".go": ("gosec",),
    ".py": ("bandit", "ruff"),
    ".js": ("biome", "eslint", "semgrep"),
    ".jsx": ("biome", "eslint", "semgrep"),
    ".ts": ("biome", "eslint", "semgrep"),
    ".tsx": ("biome", "eslint", "semgrep"),
    ".java": ("semgrep",),
}


@dataclass(slots=True)
class SuppressionParser:
    """Extract suppression comments from source files."""

    patterns: Mapping[str, tuple[re.Pattern[str], ...]] = field(default_factory=lambda: dict(DEFAULT_PATTERNS))

    def tools_for(self, path: Path) -> tuple[str, ...]:
        """Return the tools whose syntax applies to ``path``.

        Unknown extensions are checked against every tool.
        """

        return _TOOLS_BY_EXTENSION.get(path.suffix.lower(), tuple(self.patterns))

    def parse_text(self, text: str, file: str, tools: Sequence[str]) -> list[Suppression]:
        """Return suppressions found in ``text`` attributed to ``file``."""

        found: list[Suppression] = []
        for line_number, line in enumerate(text.splitlines(), start=1):
            for tool in tools:
                for pattern in self.patterns.get(tool, ()):
                    match = pattern.search(line)
                    if match is None:
                        continue
                    groups = match.groups()
                    found.append(
                        Suppression(
                            tool=tool,
                            file=file,
                            line=line_number,
                            syntax=match.group(0).strip(),
                            rule_id=(groups[0] or "") if groups else "",
                            reason=(groups[1] or "").strip() if len(groups) > 1 else "",
                        ),
                    )
                    break
        return found

    def parse_file(self, path: Path, *, relative_to: Path | None = None) -> list[Suppression]:
        """Return suppressions declared in ``path``.

        Raises:
            OSError: If the file cannot be read.
        """

        text = path.read_text(encoding="utf-8", errors="replace")
        label = path.relative_to(relative_to).as_posix() if relative_to else path.as_posix()
        return self.parse_text(text, label, self.tools_for(path))

    def parse_directory(self, root: Path, include: Sequence[str] = ()) -> list[Suppression]:
        """Walk ``root`` and collect suppressions from recognised source files.

        Args:
            root: Directory to scan.
            include: Optional extension filter such as ``(".go", ".py")``.

        Returns:
            list[Suppression]: Suppressions ordered by path then line.
        """

        collected: list[Suppression] = []
        for current, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(name for name in dirnames if name not in _SKIPPED_DIRECTORIES)
            for filename in sorted(filenames):
                path = Path(current) / filename
                suffix = path.suffix.lower()
                if include and suffix not in include:
                    continue
                if not include and suffix not in _TOOLS_BY_EXTENSION:
                    continue
                collected.extend(self.parse_file(path, relative_to=root))
        return collected


def _top(counter: Mapping[str, int]) -> list[TopItem]:
    ranked = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    return [TopItem(name=name, count=count) for name, count in ranked[:_TOP_LIMIT]]


def summarize_suppressions(suppressions: Iterable[Suppression]) -> SuppressionSummary:
    """Aggregate ``suppressions`` into a :class:`SuppressionSummary`.

    Every severity level is present in ``by_severity`` even when zero.
    """

    items = list(suppressions)
    by_tool: Counter[str] = Counter()
    by_severity: dict[str, int] = {level.value: 0 for level in SEVERITY_LEVELS}
    by_rule: Counter[str] = Counter()
    by_file: Counter[str] = Counter()
    rule_files: defaultdict[str, dict[str, None]] = defaultdict(dict)
    with_reason = 0
    ages: list[int] = []

    for item in items:
        by_tool[item.tool] += 1
        if item.severity is not None:
            by_severity[item.severity.value] += 1
        if item.rule_id:
            by_rule[item.rule_id] += 1
            rule_files[item.rule_id][item.file] = None
        by_file[item.file] += 1
        if item.reason:
            with_reason += 1
        if item.age_days is not None:
            ages.append(item.age_days)

    return SuppressionSummary(
        total=len(items),
        by_tool=dict(by_tool),
        by_severity=by_severity,
        by_rule=dict(by_rule),
        by_rule_files={rule: list(files) for rule, files in rule_files.items()},
        by_file=dict(by_file),
        top_rules=_top(by_rule),
        top_files=_top(by_file),
        with_reason=with_reason,
        without_reason=len(items) - with_reason,
        average_age_days=fmean(ages) if ages else None,
        oldest_days=max(ages) if ages else None,
        newest_days=min(ages) if ages else None,
    )


@dataclass(slots=True, frozen=True)
class SecurityPolicy:
    """Rules a suppression must satisfy to be considered acceptable."""

    require_reason: bool = True
    max_age_days: int | None = None
    forbidden_rules: frozenset[str] = frozenset()

    def check(self, suppressions: Iterable[Suppression]) -> list[PolicyViolation]:
        """Return one violation record per offending suppression."""

        violations: list[PolicyViolation] = []
        for item in suppressions:
            problems: list[str] = []
            if self.require_reason and not item.reason:
                problems.append("missing justification")
            if self.max_age_days is not None and item.age_days is not None and item.age_days > self.max_age_days:
                problems.append(f"older than {self.max_age_days} days ({item.age_days})")
            if item.rule_id and item.rule_id in self.forbidden_rules:
                problems.append(f"rule {item.rule_id} may not be suppressed")
            if problems:
                violations.append(PolicyViolation(suppression=item, violations=problems))
        return violations


def build_suppression_report(
    suppressions: Iterable[Suppression],
    policy: SecurityPolicy | None = None,
) -> SuppressionReport:
    """Return a report with summary and optional policy violations."""

    items = list(suppressions)
    return SuppressionReport(
        suppressions=items,
        summary=summarize_suppressions(items),
        policy_violations=policy.check(items) if policy is not None else [],
    )


def merge_suppression_reports(reports: Iterable[SuppressionReport]) -> SuppressionReport | None:
    """Combine per-category reports into one, or ``None`` when there are none."""

    merged: list[Suppression] = []
    violations: list[PolicyViolation] = []
    seen = False
    for report in reports:
        seen = True
        merged.extend(report.suppressions)
        violations.extend(report.policy_violations)
    if not seen:
        return None
    combined = build_suppression_report(merged)
    combined.policy_violations = violations
    return combined


__all__ = [
    "DEFAULT_PATTERNS",
    "SecurityPolicy",
    "SuppressionParser",
    "build_suppression_report",
    "merge_suppression_reports",
    "summarize_suppressions",
]
