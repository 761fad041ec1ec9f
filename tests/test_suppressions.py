# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for suppression discovery, summaries and policy checks."""

from __future__ import annotations

from pathlib import Path

from pyassess.core.models import Suppression
from pyassess.core.severity import IssueSeverity
from pyassess.suppressions import (
    SecurityPolicy,
    SuppressionParser,
    build_suppression_report,
    merge_suppression_reports,
    summarize_suppressions,
)


def test_parse_text_recognises_tool_syntax() -> None:
    parser = SuppressionParser()
    text = "\n".join(
        [
            "package main",
            "x := exec.Command(cmd) // #nosec G204 - command is allow-listed",
            "y := 1 // #nosec",
        ],
    )

    found = parser.parse_text(text, "main.go", ("gosec",))

    assert [(item.line, item.rule_id, item.reason) for item in found] == [
        (2, "G204", "command is allow-listed"),
        (3, "", ""),
    ]
    assert all(item.tool == "gosec" for item in found)


def test_parse_directory_walks_known_sources(tmp_path: Path) -> None:
    (tmp_path / "app.py").write_text("import os  # noqa: F401\n", encoding="utf-8")
    (tmp_path / "web").mkdir()
    (tmp_path / "web" / "index.ts").write_text("// biome-ignore lint/style: generated\nlet x = 1;\n", encoding="utf-8")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "dep.js").write_text("// eslint-disable-next-line\n", encoding="utf-8")
    (tmp_path / "README.md").write_text("# noqa in prose\n", encoding="utf-8")

    found = SuppressionParser().parse_directory(tmp_path)

    assert [(item.file, item.tool, item.rule_id) for item in found] == [
        ("app.py", "ruff", "F401"),
        ("web/index.ts", "biome", "lint/style"),
    ]
    assert found[1].reason == "generated"


def test_summary_aggregates_counts() -> None:
    suppressions = [
        Suppression(tool="gosec", rule_id="G204", file="a.go", reason="ok", severity=IssueSeverity.HIGH, age_days=10),
        Suppression(tool="gosec", rule_id="G204", file="b.go", age_days=30),
        Suppression(tool="ruff", rule_id="F401", file="a.py"),
    ]

    summary = summarize_suppressions(suppressions)

    assert summary.total == 3
    assert summary.by_tool == {"gosec": 2, "ruff": 1}
    assert summary.by_severity["high"] == 1
    assert summary.by_severity["critical"] == 0
    assert summary.by_rule_files == {"G204": ["a.go", "b.go"], "F401": ["a.py"]}
    assert summary.top_rules[0].name == "G204"
    assert (summary.with_reason, summary.without_reason) == (1, 2)
    assert summary.average_age_days == 20
    assert (summary.oldest_days, summary.newest_days) == (30, 10)


def test_policy_flags_violations() -> None:
    policy = SecurityPolicy(max_age_days=90, forbidden_rules=frozenset({"G101"}))
    suppressions = [
        Suppression(tool="gosec", rule_id="G101", file="a.go", reason="test key"),
        Suppression(tool="gosec", rule_id="G204", file="b.go", age_days=120),
        Suppression(tool="gosec", rule_id="G304", file="c.go", reason="validated"),
    ]

    report = build_suppression_report(suppressions, policy)

    assert [violation.suppression.file for violation in report.policy_violations] == ["a.go", "b.go"]
    assert report.policy_violations[0].violations == ["rule G101 may not be suppressed"]
    assert report.policy_violations[1].violations == ["missing justification", "older than 90 days (120)"]


def test_merge_reports() -> None:
    first = build_suppression_report([Suppression(tool="gosec", file="a.go")])
    second = build_suppression_report([Suppression(tool="ruff", file="b.py")])

    merged = merge_suppression_reports([first, second])

    assert merged is not None
    assert merged.summary.total == 2
    assert merge_suppression_reports([]) is None
