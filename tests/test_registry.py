# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for the runner registry and built-in runner wiring."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from pyassess import registry as registry_module
from pyassess.config import AssessmentConfig
from pyassess.core.models import AssessmentCategory
from pyassess.registry import RunnerRegistry, register_assessment_runner
from pyassess.runners.base import AssessmentRunner
from pyassess.runners.builtin import register_default_runners, security_adapters

if TYPE_CHECKING:
    from conftest import FakeRunner


def test_registration_and_lookup(fake_runner: type[FakeRunner]) -> None:
    registry = RunnerRegistry()
    lint = fake_runner(AssessmentCategory.LINT)

    registry.register_runner(AssessmentCategory.LINT, lint)

    assert registry.get_runner(AssessmentCategory.LINT) is lint
    assert registry.get_runner(AssessmentCategory.FORMAT) is None
    assert registry[AssessmentCategory.LINT] is lint
    assert len(registry) == 1
    assert isinstance(lint, AssessmentRunner)


def test_registration_replaces_existing_runner(fake_runner: type[FakeRunner]) -> None:
    registry = RunnerRegistry()
    first = fake_runner(AssessmentCategory.LINT)
    second = fake_runner(AssessmentCategory.LINT)

    registry.register_runner(AssessmentCategory.LINT, first)
    registry.register_runner(AssessmentCategory.LINT, second)

    assert registry.get_runner(AssessmentCategory.LINT) is second


def test_available_categories_exclude_missing_tools(
    make_registry: Callable[..., RunnerRegistry],
    fake_runner: type[FakeRunner],
) -> None:
    registry = make_registry(
        fake_runner(AssessmentCategory.SECURITY),
        fake_runner(AssessmentCategory.FORMAT, available=False),
        fake_runner(AssessmentCategory.LINT),
    )

    assert registry.available_categories() == [AssessmentCategory.LINT, AssessmentCategory.SECURITY]
    assert registry.all_categories() == [
        AssessmentCategory.FORMAT,
        AssessmentCategory.LINT,
        AssessmentCategory.SECURITY,
    ]
    assert list(registry) == registry.all_categories()


def test_reset_clears_registry(make_registry: Callable[..., RunnerRegistry], fake_runner: type[FakeRunner]) -> None:
    registry = make_registry(fake_runner(AssessmentCategory.LINT))

    registry.reset()

    assert len(registry) == 0
    assert registry.available_categories() == []


def test_default_runners_are_registered_with_missing_binaries(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("pyassess.runners.base.find_executable", lambda name: None)
    monkeypatch.setattr("pyassess.runners.repo_status.find_executable", lambda name: None)
    registry = register_default_runners(RunnerRegistry())

    assert set(registry.all_categories()) == {
        AssessmentCategory.FORMAT,
        AssessmentCategory.LINT,
        AssessmentCategory.SECURITY,
        AssessmentCategory.DEPENDENCIES,
        AssessmentCategory.REPO_STATUS,
    }
    assert registry.available_categories() == []
    assert not registry[AssessmentCategory.SECURITY].can_run_in_parallel()


def test_security_adapters_follow_dimension_switches(tmp_path: Path) -> None:
    everything = security_adapters(tmp_path, AssessmentConfig())
    secrets_only = security_adapters(tmp_path, AssessmentConfig(enable_code=False, enable_vuln=False))
    named = security_adapters(tmp_path, AssessmentConfig(security_tools=["gosec", "cargo-deny"]))

    assert [adapter.name for adapter in everything] == ["gosec", "govulncheck", "gitleaks", "cargo-deny"]
    assert [adapter.name for adapter in secrets_only] == ["gitleaks"]
    assert [adapter.name for adapter in named] == ["gosec", "cargo-deny"]


def test_global_registration_uses_shared_registry(
    monkeypatch: pytest.MonkeyPatch,
    fake_runner: type[FakeRunner],
) -> None:
    shared = RunnerRegistry()
    monkeypatch.setattr(registry_module, "DEFAULT_REGISTRY", shared)
    runner = fake_runner(AssessmentCategory.SCHEMA)

    register_assessment_runner(AssessmentCategory.SCHEMA, runner)

    assert shared.get_runner(AssessmentCategory.SCHEMA) is runner


def test_concurrent_registration_and_listing(fake_runner: type[FakeRunner]) -> None:
    registry = RunnerRegistry()
    categories = list(AssessmentCategory)

    def _register(category: AssessmentCategory) -> list[AssessmentCategory]:
        registry.register_runner(category, fake_runner(category))
        return registry.available_categories()

    with ThreadPoolExecutor(max_workers=8) as pool:
        listings = list(pool.map(_register, categories * 4))

    assert len(registry) == len(categories)
    assert registry.all_categories() == sorted(categories, key=lambda category: category.value)
    assert all(listing == sorted(listing, key=lambda category: category.value) for listing in listings)
