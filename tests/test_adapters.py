# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for tool adapters and their output parsers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from pyassess.adapters.base import ToolAdapter, parse_json_shapes
from pyassess.adapters.javascript import parse_biome_format, parse_biome_lint
from pyassess.adapters.python import RuffCheckAdapter, RuffFormatAdapter, parse_ruff_check, parse_ruff_format
from pyassess.adapters.rust import (
    CARGO_DENY_BANS_SUBCATEGORY,
    CARGO_DENY_LICENSE_SUBCATEGORY,
    dependency_issues,
    parse_cargo_deny_entries,
    parse_clippy,
)
from pyassess.adapters.security import (
    GitleaksAdapter,
    GosecAdapter,
    gosec_rule_severity,
    parse_gitleaks,
    parse_gosec,
    parse_govulncheck,
)
from pyassess.config import AssessmentConfig
from pyassess.core.context import RunContext
from pyassess.core.errors import OutputParseError
from pyassess.core.models import AssessmentCategory, AssessmentMode
from pyassess.core.severity import IssueSeverity

if TYPE_CHECKING:
    from conftest import CannedCommandRunner


def test_parse_json_shapes_accepts_array_object_and_ndjson() -> None:
    assert parse_json_shapes('[{"a": 1}, {"b": 2}]', tool="t") == [{"a": 1}, {"b": 2}]
    assert parse_json_shapes('{"a": 1}', tool="t") == [{"a": 1}]
    assert parse_json_shapes('{"a": 1}\n\n{"b": 2}\n', tool="t") == [{"a": 1}, {"b": 2}]
    assert parse_json_shapes("   ", tool="t") == []


def test_parse_json_shapes_fails_closed() -> None:
    with pytest.raises(OutputParseError, match="unrecognized output format"):
        parse_json_shapes("this is not json", tool="t")


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ('{"File": "a.go", "RuleID": "aws"}\n{"File": "b.go", "RuleID" BROKEN', "line 2 is not valid JSON"),
        ('{"File": "a.go"}\nnoise\n{"File": "b.go"}', "line 2 is not valid JSON"),
        ('{"File": "a.go"}\n[1, 2]', "line 2 is not a JSON object"),
        ('[{"File": "a.go"}, 2]', "array element 1 is not a JSON object"),
    ],
)
def test_parse_json_shapes_rejects_partially_valid_output(text: str, message: str) -> None:
    with pytest.raises(OutputParseError, match=message):
        parse_json_shapes(text, tool="gitleaks")


def test_parse_gitleaks_rejects_truncated_ndjson_finding() -> None:
    with pytest.raises(OutputParseError, match="line 2"):
        parse_gitleaks('{"Description": "key", "File": "a.env"}\n{"Description": "key", "File": "b.e')


def test_parse_ruff_check() -> None:
    payload = json.dumps(
        [
            {
                "code": "F401",
                "message": "`os` imported but unused",
                "filename": "pkg/mod.py",
                "location": {"row": 3, "column": 8},
            },
        ],
    )

    (issue,) = parse_ruff_check(payload)

    assert issue.file == "pkg/mod.py"
    assert (issue.line, issue.column) == (3, 8)
    assert issue.message == "F401 `os` imported but unused"
    assert issue.category is AssessmentCategory.LINT
    assert issue.severity is IssueSeverity.MEDIUM


def test_parse_ruff_check_rejects_garbage() -> None:
    with pytest.raises(OutputParseError):
        parse_ruff_check("Traceback (most recent call last)")
    with pytest.raises(OutputParseError):
        parse_ruff_check('{"not": "a list"}')


def test_parse_ruff_format_falls_back_to_checked_files() -> None:
    named = parse_ruff_format("Would reformat: a.py\n1 file would be reformatted\n", fallback_files=["a.py", "b.py"])
    unnamed = parse_ruff_format("1 file would be reformatted\n", fallback_files=["a.py", "b.py"])

    assert [issue.file for issue in named] == ["a.py"]
    assert [issue.file for issue in unnamed] == ["a.py", "b.py"]
    assert all(issue.auto_fixable and issue.category is AssessmentCategory.FORMAT for issue in named)


def test_ruff_check_adapter_runs_with_canned_output(tmp_path: Path, canned_runner: CannedCommandRunner) -> None:
    (tmp_path / "mod.py").write_text("import os\n", encoding="utf-8")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "skip.py").write_text("", encoding="utf-8")
    canned_runner.add(
        ["ruff", "check", "--output-format", "json"],
        stdout=json.dumps([{"code": "F401", "message": "unused", "filename": "mod.py", "location": {"row": 1}}]),
        returncode=1,
    )
    adapter = RuffCheckAdapter(tmp_path, AssessmentConfig(), runner=canned_runner)

    issues = adapter.run(RunContext())

    assert [issue.file for issue in issues] == ["mod.py"]
    assert canned_runner.calls == [["ruff", "check", "--output-format", "json", "mod.py"]]
    assert isinstance(adapter, ToolAdapter)


def test_ruff_format_adapter_fix_mode_reports_nothing(tmp_path: Path, canned_runner: CannedCommandRunner) -> None:
    (tmp_path / "mod.py").write_text("x=1\n", encoding="utf-8")
    adapter = RuffFormatAdapter(tmp_path, AssessmentConfig(mode=AssessmentMode.FIX), runner=canned_runner)

    assert adapter.run(RunContext()) == []
    assert canned_runner.calls == [["ruff", "format", "mod.py"]]
    assert adapter.name == "ruff-format"


def test_parse_biome_lint_maps_severity_and_skips_internal_errors() -> None:
    payload = json.dumps(
        {
            "summary": {"errors": 1},
            "diagnostics": [
                {
                    "category": "lint/suspicious/noDebugger",
                    "severity": "error",
                    "description": "This is an unexpected use of the debugger statement.",
                    "location": {"path": {"file": "src/app.js"}},
                },
                {"category": "lint/style/useConst", "severity": "warning", "message": "Use const."},
                {"category": "internalError/fs", "severity": "error", "description": "ignored"},
            ],
        },
    )

    issues = parse_biome_lint(payload)

    assert [issue.severity for issue in issues] == [IssueSeverity.HIGH, IssueSeverity.MEDIUM]
    assert issues[0].file == "src/app.js"
    assert issues[0].message.startswith("[lint/suspicious/noDebugger] ")


def test_parse_biome_lint_rejects_non_list_diagnostics() -> None:
    with pytest.raises(OutputParseError):
        parse_biome_lint('{"diagnostics": "oops"}')


def test_parse_biome_format() -> None:
    output = (
        "src/app.js format ━━━━━━━━━━\n"
        "  × Formatter would have printed the following content:\n"
        "src/app.js format\n"
    )

    issues = parse_biome_format(output)

    assert [issue.file for issue in issues] == ["src/app.js"]
    with pytest.raises(OutputParseError):
        parse_biome_format("biome crashed")


def test_parse_clippy_keeps_primary_spans_of_findings() -> None:
    records = [
        {"reason": "compiler-artifact", "target": {"name": "demo"}},
        {
            "reason": "compiler-message",
            "message": {
                "level": "warning",
                "message": "unused variable: `x`",
                "code": {"code": "unused_variables"},
                "spans": [
                    {"file_name": "src/lib.rs", "line_start": 9, "column_start": 2, "is_primary": False},
                    {"file_name": "src/main.rs", "line_start": 4, "column_start": 9, "is_primary": True},
                ],
            },
        },
        {"reason": "compiler-message", "message": {"level": "note", "message": "n", "spans": [{}]}},
        {"reason": "compiler-message", "message": {"level": "error", "message": "no spans", "spans": []}},
    ]
    stdout = "\n".join(json.dumps(record) for record in records) + "\n    Finished dev profile\n"

    (issue,) = parse_clippy(stdout)

    assert issue.file == "src/main.rs"
    assert (issue.line, issue.column) == (4, 9)
    assert issue.message == "unused_variables: unused variable: `x`"
    assert issue.related_files == ("src/lib.rs",)
    assert issue.severity is IssueSeverity.MEDIUM


def test_parse_clippy_fails_closed_without_json() -> None:
    with pytest.raises(OutputParseError):
        parse_clippy("error: could not compile `demo`")


def test_cargo_deny_entries_flatten_wrapped_fields() -> None:
    diagnostic = {
        "type": "diagnostic",
        "fields": {"severity": "error", "message": "license GPL-3.0 rejected", "code": "rejected"},
    }
    output = "\n".join([json.dumps(diagnostic), json.dumps({"type": "summary", "fields": {}})])

    entries = parse_cargo_deny_entries(output)

    assert entries[0]["message"] == "license GPL-3.0 rejected"
    assert entries[0]["severity"] == "error"


def test_dependency_issues_classify_licenses_and_bans() -> None:
    entries = [
        {"type": "license", "message": "GPL-3.0 is not allowed", "id": "L001"},
        {"type": "bans", "message": "duplicate crate"},
        {"type": "advisory", "message": "yanked", "severity": "low"},
    ]

    issues = dependency_issues(entries, "Cargo.lock")

    assert [issue.severity for issue in issues] == [IssueSeverity.HIGH, IssueSeverity.MEDIUM, IssueSeverity.LOW]
    assert issues[0].sub_category == CARGO_DENY_LICENSE_SUBCATEGORY
    assert issues[1].sub_category == CARGO_DENY_BANS_SUBCATEGORY
    assert issues[0].message == "cargo-deny(L001): license: GPL-3.0 is not allowed"
    assert {issue.file for issue in issues} == {"Cargo.lock"}
    assert all(issue.category is AssessmentCategory.DEPENDENCIES for issue in issues)


def test_parse_gosec_issues_and_suppressions() -> None:
    report = {
        "Issues": [
            {
                "severity": "HIGH",
                "rule_id": "G101",
                "details": "Potential hardcoded credentials",
                "file": "main.go",
                "line": "12",
                "column": "3",
            },
        ],
        "Suppressions": [{"rule_id": "G304", "file": "io.go", "line": "7", "justification": "path is validated"}],
    }

    issues, suppressions = parse_gosec("[gosec] banner\n" + json.dumps(report))

    assert issues[0].severity is IssueSeverity.HIGH
    assert issues[0].line == 12
    assert issues[0].message == "gosec(G101): Potential hardcoded credentials"
    assert suppressions[0].severity is IssueSeverity.MEDIUM
    assert suppressions[0].syntax == "#nosec G304 - path is validated"


def test_gosec_rule_family_severity() -> None:
    assert gosec_rule_severity("G204") is IssueSeverity.HIGH
    assert gosec_rule_severity("G601") is IssueSeverity.LOW
    assert gosec_rule_severity("X999") is IssueSeverity.MEDIUM


def test_gosec_adapter_tracks_suppressions(tmp_path: Path, canned_runner: CannedCommandRunner) -> None:
    (tmp_path / "go.mod").write_text("module demo\n", encoding="utf-8")
    canned_runner.add(["gosec"], stdout='{"Issues": [], "Suppressions": []}', returncode=0)
    adapter = GosecAdapter(tmp_path, AssessmentConfig(track_suppressions=True), runner=canned_runner)

    assert adapter.run_with_suppressions(RunContext()) == ([], [])
    assert "-track-suppressions" in canned_runner.calls[0]


def test_parse_govulncheck_deduplicates_pretty_printed_stream() -> None:
    finding = {
        "finding": {
            "osv": "GO-2024-0001",
            "trace": [{"module": "golang.org/x/net", "package": "golang.org/x/net/http2"}],
        },
    }
    stream = "\n".join(
        [
            json.dumps({"config": {"scanner_name": "govulncheck"}}, indent=2),
            json.dumps(finding, indent=2),
            json.dumps(finding, indent=2),
        ],
    )

    (issue,) = parse_govulncheck(stream)

    assert issue.file == "go.mod"
    assert issue.severity is IssueSeverity.HIGH
    assert issue.message == "govulncheck: GO-2024-0001 in golang.org/x/net (golang.org/x/net/http2)"


def test_parse_govulncheck_rejects_invalid_stream() -> None:
    with pytest.raises(OutputParseError):
        parse_govulncheck('{"finding": ')


def test_parse_gitleaks_array_and_ndjson() -> None:
    finding = {"Description": "AWS Access Key", "File": "config/.env", "StartLine": 2}

    from_array = parse_gitleaks(json.dumps([finding]))
    from_lines = parse_gitleaks(json.dumps(finding) + "\n" + json.dumps({**finding, "StartLine": 5}))

    assert from_array[0].message == "gitleaks: AWS Access Key"
    assert from_array[0].line == 2
    assert [issue.line for issue in from_lines] == [2, 5]
    assert parse_gitleaks("[]") == []


def test_parse_gitleaks_fails_closed_on_unknown_shape() -> None:
    with pytest.raises(OutputParseError):
        parse_gitleaks('{"unexpected": true}')


def test_gitleaks_adapter_applies_path_filters(tmp_path: Path, canned_runner: CannedCommandRunner) -> None:
    findings = [
        {"Description": "key", "File": "src/app.env", "StartLine": 1},
        {"Description": "key", "File": "testdata/fixture.env", "StartLine": 1},
    ]
    canned_runner.add(["gitleaks"], stdout=json.dumps(findings), returncode=1)
    adapter = GitleaksAdapter(tmp_path, AssessmentConfig(exclude_files=["testdata/*"]), runner=canned_runner)

    issues = adapter.run(RunContext())

    assert [issue.file for issue in issues] == ["src/app.env"]
