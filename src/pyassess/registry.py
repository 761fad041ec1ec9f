# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Runner registry mapping assessment categories to their runners."""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping

from .core.models import AssessmentCategory
from .runners.base import AssessmentRunner


class RunnerRegistry(Mapping[AssessmentCategory, AssessmentRunner]):
    """Registry of category runners.

    ``RunnerRegistry`` behaves like a read-only mapping keyed by category.
    Registration replaces any existing runner for the category, which lets
    tests override built-in runners on private instances. Reads and writes
    are guarded by a lock so registration may race with lookups.
    """

    def __init__(self) -> None:
        self._runners: dict[AssessmentCategory, AssessmentRunner] = {}
        self._lock = threading.Lock()

    def register_runner(self, category: AssessmentCategory, runner: AssessmentRunner) -> None:
        """Associate ``runner`` with ``category``, replacing any previous runner.

        Args:
            category: Category handled by ``runner``.
            runner: Runner implementation.
        """

        with self._lock:
            self._runners[category] = runner

    def get_runner(self, category: AssessmentCategory) -> AssessmentRunner | None:
        """Return the runner registered for ``category`` or ``None``.

        Args:
            category: Category to look up.

        Returns:
            AssessmentRunner | None: Registered runner, ``None`` when absent.
        """

        with self._lock:
            return self._runners.get(category)

    def available_categories(self) -> list[AssessmentCategory]:
        """Return categories whose runner reports itself available.

        Returns:
            list[AssessmentCategory]: Available categories sorted by name.
        """

        with self._lock:
            runners = sorted(self._runners.items(), key=lambda item: item[0].value)
        return [category for category, runner in runners if runner.is_available()]

    def all_categories(self) -> list[AssessmentCategory]:
        """Return every registered category regardless of availability."""

        with self._lock:
            return sorted(self._runners, key=lambda category: category.value)

    def reset(self) -> None:
        """Remove all runners from the registry."""

        with self._lock:
            self._runners.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._runners)

    def __iter__(self) -> Iterator[AssessmentCategory]:
        return iter(self.all_categories())

    def __getitem__(self, category: AssessmentCategory) -> AssessmentRunner:
        with self._lock:
            return self._runners[category]


DEFAULT_REGISTRY = RunnerRegistry()


def register_assessment_runner(category: AssessmentCategory, runner: AssessmentRunner) -> None:
    """Register ``runner`` using the shared global registry.

    Args:
        category: Category handled by ``runner``.
        runner: Runner to register with :data:`DEFAULT_REGISTRY`.
    """

    DEFAULT_REGISTRY.register_runner(category, runner)


__all__ = ["DEFAULT_REGISTRY", "RunnerRegistry", "register_assessment_runner"]
