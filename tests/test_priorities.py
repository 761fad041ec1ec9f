# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for category priority resolution."""

from __future__ import annotations

import pytest

from pyassess.core.errors import ConfigError
from pyassess.core.models import AssessmentCategory
from pyassess.priorities import UNKNOWN_PRIORITY, PriorityManager, describe_priority, parse_category


def test_default_priorities() -> None:
    manager = PriorityManager()

    assert manager.priority(AssessmentCategory.FORMAT) == 1
    assert manager.priority(AssessmentCategory.SECURITY) == 2
    assert manager.priority(AssessmentCategory.LINT) == 4
    assert manager.priority(AssessmentCategory.REPO_STATUS) == UNKNOWN_PRIORITY


def test_ordered_breaks_ties_by_name() -> None:
    manager = PriorityManager({AssessmentCategory.LINT: 1})

    ordered = manager.ordered(
        [
            AssessmentCategory.REPO_STATUS,
            AssessmentCategory.SECURITY,
            AssessmentCategory.LINT,
            AssessmentCategory.FORMAT,
        ],
    )

    assert ordered == [
        AssessmentCategory.FORMAT,
        AssessmentCategory.LINT,
        AssessmentCategory.SECURITY,
        AssessmentCategory.REPO_STATUS,
    ]


def test_parse_numeric_and_keyword_values() -> None:
    manager = PriorityManager()

    manager.parse("security=1, lint=highest,format=lowest")

    assert manager.priority(AssessmentCategory.SECURITY) == 1
    assert manager.priority(AssessmentCategory.LINT) == 1
    assert manager.priority(AssessmentCategory.FORMAT) == 5


def test_parse_default_resets_override() -> None:
    manager = PriorityManager({AssessmentCategory.FORMAT: 5})

    manager.parse("format=default")

    assert manager.priority(AssessmentCategory.FORMAT) == 1


def test_parse_empty_string_is_noop() -> None:
    manager = PriorityManager()

    manager.parse("   ")

    assert manager.priority(AssessmentCategory.LINT) == 4


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("security", "invalid priority format"),
        ("bogus=1", "unknown assessment category: bogus"),
        ("lint=7", "invalid priority value: 7"),
        (",,", "no valid priority entries"),
    ],
)
def test_parse_rejects_malformed_entries(text: str, message: str) -> None:
    manager = PriorityManager()

    with pytest.raises(ConfigError, match=message):
        manager.parse(text)


def test_parse_is_atomic_on_error() -> None:
    manager = PriorityManager()

    with pytest.raises(ConfigError):
        manager.parse("security=1,lint=nope")

    assert manager.priority(AssessmentCategory.SECURITY) == 2


def test_copy_is_independent() -> None:
    original = PriorityManager({AssessmentCategory.SECURITY: 1})

    copy = original.copy()
    copy.parse("lint=highest,security=default")

    assert original.priority(AssessmentCategory.LINT) == 4
    assert original.priority(AssessmentCategory.SECURITY) == 1
    assert copy.priority(AssessmentCategory.LINT) == 1
    assert copy.priority(AssessmentCategory.SECURITY) == 2


def test_descriptions() -> None:
    assert describe_priority(1).startswith("Highest Priority")
    assert describe_priority(42) == "Unknown Priority"
    assert PriorityManager().describe(AssessmentCategory.SECURITY).startswith("High Priority")
    assert parse_category("static-analysis") is AssessmentCategory.STATIC_ANALYSIS
