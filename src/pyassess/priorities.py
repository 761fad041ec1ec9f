# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Category prioritisation and ordering."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Final

from .core.errors import ConfigError
from .core.models import AssessmentCategory

UNKNOWN_PRIORITY: Final[int] = 999

DEFAULT_PRIORITIES: Final[Mapping[AssessmentCategory, int]] = MappingProxyType(
    {
        AssessmentCategory.FORMAT: 1,
        AssessmentCategory.SECURITY: 2,
        AssessmentCategory.STATIC_ANALYSIS: 3,
        AssessmentCategory.LINT: 4,
        AssessmentCategory.PERFORMANCE: 5,
    },
)

_PRIORITY_KEYWORDS: Final[Mapping[str, int]] = MappingProxyType(
    {
        "1": 1,
        "highest": 1,
        "2": 2,
        "high": 2,
        "3": 3,
        "medium": 3,
        "4": 4,
        "low": 4,
        "5": 5,
        "lowest": 5,
    },
)

_DESCRIPTIONS: Final[Mapping[int, str]] = MappingProxyType(
    {
        1: "Highest Priority - Quick wins, often auto-fixable",
        2: "High Priority - Critical issues that may block progress",
        3: "Medium Priority - Code correctness and potential bugs",
        4: "Medium Priority - Code quality improvements",
        5: "Low Priority - Optimization opportunities",
    },
)

_RESET_KEYWORD: Final[str] = "default"


class PriorityManager:
    """Resolve category priorities from defaults and user overrides.

    Lower numbers run and report first. Categories without a default or an
    override share :data:`UNKNOWN_PRIORITY`.
    """

    def __init__(self, overrides: Mapping[AssessmentCategory, int] | None = None) -> None:
        self._custom: dict[AssessmentCategory, int] = dict(overrides or {})

    def copy(self) -> PriorityManager:
        """Return an independent manager carrying the same overrides."""

        return PriorityManager(self._custom)

    def set_priority(self, category: AssessmentCategory, priority: int) -> None:
        """Override the priority of ``category``."""

        self._custom[category] = priority

    def reset(self, category: AssessmentCategory) -> None:
        """Drop any override for ``category``."""

        self._custom.pop(category, None)

    def priority(self, category: AssessmentCategory) -> int:
        """Return the effective priority of ``category``."""

        if category in self._custom:
            return self._custom[category]
        return DEFAULT_PRIORITIES.get(category, UNKNOWN_PRIORITY)

    def ordered(self, categories: Iterable[AssessmentCategory]) -> list[AssessmentCategory]:
        """Return ``categories`` sorted by priority, ties broken by name.

        Args:
            categories: Categories to order.

        Returns:
            list[AssessmentCategory]: Deterministically ordered categories.
        """

        return sorted(categories, key=lambda category: (self.priority(category), category.value))

    def describe(self, category: AssessmentCategory) -> str:
        """Return a human-readable description of the category's priority."""

        return describe_priority(self.priority(category))

    def parse(self, text: str) -> None:
        """Apply overrides from a ``category=priority`` list.

        Entries are comma separated. Values may be ``1`` to ``5``, one of
        ``highest``/``high``/``medium``/``low``/``lowest``, or ``default`` to
        drop an existing override.

        Args:
            text: Priority string such as ``"security=1,format=2"``.

        Raises:
            ConfigError: If an entry is malformed, names an unknown category,
                or no valid entry is present in a non-empty string.
        """

        if not text.strip():
            return
        pending: list[tuple[AssessmentCategory, int | None]] = []
        for raw_entry in text.split(","):
            entry = raw_entry.strip()
            if not entry:
                continue
            name, separator, value = entry.partition("=")
            if not separator:
                raise ConfigError(f"invalid priority format: {entry} (expected category=priority)")
            category = parse_category(name.strip())
            keyword = value.strip().lower()
            if keyword == _RESET_KEYWORD:
                pending.append((category, None))
                continue
            if keyword not in _PRIORITY_KEYWORDS:
                raise ConfigError(f"invalid priority value: {value.strip()} (expected 1-5 or highest/lowest)")
            pending.append((category, _PRIORITY_KEYWORDS[keyword]))
        if not pending:
            raise ConfigError(f"no valid priority entries found in: {text}")
        for category, priority in pending:
            if priority is None:
                self.reset(category)
            else:
                self.set_priority(category, priority)


def describe_priority(priority: int) -> str:
    """Return the description associated with a numeric ``priority``."""

    return _DESCRIPTIONS.get(priority, "Unknown Priority")


def parse_category(name: str) -> AssessmentCategory:
    """Return the category named ``name``.

    Raises:
        ConfigError: If ``name`` is not a known category.
    """

    try:
        return AssessmentCategory(name)
    except ValueError as exc:
        raise ConfigError(f"unknown assessment category: {name}") from exc


__all__ = [
    "DEFAULT_PRIORITIES",
    "UNKNOWN_PRIORITY",
    "PriorityManager",
    "describe_priority",
    "parse_category",
]
