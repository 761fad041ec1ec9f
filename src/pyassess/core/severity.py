# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Severity related types and helpers."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Final


class IssueSeverity(str, Enum):
    """Canonical five-level severity scale shared by every adapter."""

    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Return the ordinal position of the severity (``info`` is ``0``).

        Returns:
            int: Rank used to compare severities.
        """

        return _SEVERITY_ORDER.index(self)

    def at_least(self, other: IssueSeverity) -> bool:
        """Return ``True`` when this severity is equal to or above ``other``.

        Args:
            other: Threshold severity.

        Returns:
            bool: ``True`` when ``self`` ranks at or above ``other``.
        """

        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: str) -> IssueSeverity:
        """Parse ``value`` case-insensitively into a severity.

        Args:
            value: Severity label supplied by a user or configuration file.

        Returns:
            IssueSeverity: Matching severity.

        Raises:
            ValueError: If ``value`` does not name a severity.
        """

        normalized = value.strip().lower()
        try:
            return cls(normalized)
        except ValueError as exc:
            choices = ", ".join(member.value for member in cls)
            raise ValueError(f"invalid severity '{value}' (expected one of: {choices})") from exc


_SEVERITY_ORDER: Final[tuple[IssueSeverity, ...]] = (
    IssueSeverity.INFO,
    IssueSeverity.LOW,
    IssueSeverity.MEDIUM,
    IssueSeverity.HIGH,
    IssueSeverity.CRITICAL,
)

SEVERITY_LEVELS: Final[tuple[IssueSeverity, ...]] = _SEVERITY_ORDER

type SeverityTable = Mapping[str, IssueSeverity]


def map_severity(
    label: object,
    table: SeverityTable,
    default: IssueSeverity = IssueSeverity.MEDIUM,
) -> IssueSeverity:
    """Return the canonical severity for a tool-specific ``label``.

    Args:
        label: Raw severity value emitted by the tool.
        table: Lookup table keyed by lower-case tool vocabulary.
        default: Severity used when ``label`` is missing or unknown.

    Returns:
        IssueSeverity: Canonical severity resolved from ``table``.
    """

    if isinstance(label, str):
        return table.get(label.strip().lower(), default)
    return default


def highest_severity(severities: Iterable[IssueSeverity]) -> IssueSeverity | None:
    """Return the highest severity present in ``severities`` or ``None``."""

    best: IssueSeverity | None = None
    for severity in severities:
        if best is None or severity.rank > best.rank:
            best = severity
    return best


__all__ = [
    "SEVERITY_LEVELS",
    "IssueSeverity",
    "SeverityTable",
    "highest_severity",
    "map_severity",
]
