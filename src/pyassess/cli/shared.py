# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Shared CLI helpers."""

from __future__ import annotations

from collections.abc import Sequence

from ..core.errors import ConfigError
from ..core.models import AssessmentCategory
from ..priorities import parse_category

CONFIG_ERROR_EXIT_CODE = 2


class CLIError(RuntimeError):
    """Error raised when a CLI command fails and should exit with a status code."""

    def __init__(self, message: str, *, exit_code: int = 1) -> None:
        """Initialise the error with a message and exit code.

        Args:
            message: Human-readable error message shown to the user.
            exit_code: Exit status associated with the failure.
        """

        super().__init__(message)
        self.exit_code = exit_code


def split_csv(values: Sequence[str] | None) -> list[str]:
    """Flatten repeated and comma separated option values."""

    items: list[str] = []
    for value in values or ():
        items.extend(part.strip() for part in value.split(",") if part.strip())
    return items


def parse_categories(values: Sequence[str] | None) -> list[AssessmentCategory] | None:
    """Return categories named in ``values`` or ``None`` when none were given.

    Raises:
        CLIError: If a name is not a known category.
    """

    names = split_csv(values)
    if not names:
        return None
    try:
        return [parse_category(name) for name in names]
    except ConfigError as exc:
        raise CLIError(str(exc), exit_code=CONFIG_ERROR_EXIT_CODE) from exc


__all__ = ["CONFIG_ERROR_EXIT_CODE", "CLIError", "parse_categories", "split_csv"]
