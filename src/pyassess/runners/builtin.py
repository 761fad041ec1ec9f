# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Built-in category runners assembled from the bundled adapters."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta
from pathlib import Path

from ..adapters.base import ToolAdapter
from ..adapters.javascript import BiomeFormatAdapter, BiomeLintAdapter
from ..adapters.python import RuffCheckAdapter, RuffFormatAdapter
from ..adapters.rust import CargoDenyAdapter, CargoDenyDependencyAdapter, ClippyAdapter
from ..adapters.security import GitleaksAdapter, GosecAdapter, GovulncheckAdapter
from ..config import AssessmentConfig
from ..core.models import AssessmentCategory
from ..registry import DEFAULT_REGISTRY, RunnerRegistry
from .base import AdapterRunner
from .repo_status import RepoStatusRunner


def format_adapters(target: Path, config: AssessmentConfig) -> Sequence[ToolAdapter]:
    return (RuffFormatAdapter(target, config), BiomeFormatAdapter(target, config))


def lint_adapters(target: Path, config: AssessmentConfig) -> Sequence[ToolAdapter]:
    return (RuffCheckAdapter(target, config), BiomeLintAdapter(target, config), ClippyAdapter(target, config))


def security_adapters(target: Path, config: AssessmentConfig) -> Sequence[ToolAdapter]:
    """Return security adapters filtered by enabled dimensions and tool names."""

    enabled = {
        "code": config.enable_code,
        "vuln": config.enable_vuln,
        "secrets": config.enable_secrets,
    }
    candidates: list[GosecAdapter | GovulncheckAdapter | GitleaksAdapter | CargoDenyAdapter] = [
        GosecAdapter(target, config),
        GovulncheckAdapter(target, config),
        GitleaksAdapter(target, config),
    ]
    selected: list[ToolAdapter] = [
        adapter
        for adapter in candidates
        if enabled[adapter.dimension] and (not config.security_tools or adapter.name in config.security_tools)
    ]
    deny = CargoDenyAdapter(target, config)
    if config.enable_vuln and (not config.security_tools or deny.name in config.security_tools):
        selected.append(deny)
    return selected


def dependency_adapters(target: Path, config: AssessmentConfig) -> Sequence[ToolAdapter]:
    return (CargoDenyDependencyAdapter(target, config),)


def register_default_runners(registry: RunnerRegistry) -> RunnerRegistry:
    """Install the built-in runners on ``registry`` and return it."""

    registry.register_runner(
        AssessmentCategory.FORMAT,
        AdapterRunner(AssessmentCategory.FORMAT, format_adapters, ("ruff", "biome")),
    )
    registry.register_runner(
        AssessmentCategory.LINT,
        AdapterRunner(
            AssessmentCategory.LINT,
            lint_adapters,
            ("ruff", "biome", "cargo"),
            base_estimate=timedelta(minutes=1),
        ),
    )
    registry.register_runner(
        AssessmentCategory.SECURITY,
        AdapterRunner(
            AssessmentCategory.SECURITY,
            security_adapters,
            ("gosec", "govulncheck", "gitleaks", "cargo-deny"),
            parallel=False,
            tolerate_failures=True,
            base_estimate=timedelta(minutes=2),
        ),
    )
    registry.register_runner(
        AssessmentCategory.DEPENDENCIES,
        AdapterRunner(
            AssessmentCategory.DEPENDENCIES,
            dependency_adapters,
            ("cargo-deny",),
            base_estimate=timedelta(minutes=1),
        ),
    )
    registry.register_runner(AssessmentCategory.REPO_STATUS, RepoStatusRunner())
    return registry


def default_registry() -> RunnerRegistry:
    """Return the shared registry, installing the built-in runners on first use."""

    if not DEFAULT_REGISTRY:
        register_default_runners(DEFAULT_REGISTRY)
    return DEFAULT_REGISTRY


__all__ = [
    "default_registry",
    "dependency_adapters",
    "format_adapters",
    "lint_adapters",
    "register_default_runners",
    "security_adapters",
]
