# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration models and loaders for pyassess."""

from __future__ import annotations

import fnmatch
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .core.errors import ConfigError
from .core.models import AssessmentCategory, AssessmentMode
from .core.severity import IssueSeverity

DEFAULT_CATEGORY_TIMEOUT: Final[float] = 300.0
DEFAULT_CONCURRENCY_PERCENT: Final[int] = 50
PYPROJECT_FILENAME: Final[str] = "pyproject.toml"
DEDICATED_CONFIG_FILENAME: Final[str] = ".pyassess.toml"
_TOOL_SECTION: Final[str] = "pyassess"


class AssessmentConfig(BaseModel):
    """Options consumed by the executor, the runners and their adapters."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    mode: AssessmentMode = AssessmentMode.CHECK
    timeout: float = Field(default=DEFAULT_CATEGORY_TIMEOUT, gt=0)
    total_timeout: float | None = Field(default=None, gt=0)
    include_files: list[str] = Field(default_factory=list)
    exclude_files: list[str] = Field(default_factory=list)
    no_ignore: bool = False
    force_include: list[str] = Field(default_factory=list)
    priority: str = ""
    fail_on: IssueSeverity = IssueSeverity.CRITICAL
    selected_categories: list[AssessmentCategory] = Field(default_factory=list)
    concurrency: int = Field(default=0, ge=0)
    concurrency_percent: int = Field(default=DEFAULT_CONCURRENCY_PERCENT, ge=1, le=100)
    track_suppressions: bool = False
    security_tools: list[str] = Field(default_factory=list)
    enable_code: bool = True
    enable_vuln: bool = True
    enable_secrets: bool = True
    extended: bool = False
    verbose: bool = False

    @field_validator("fail_on", mode="before")
    @classmethod
    def _coerce_fail_on(cls, value: object) -> object:
        if isinstance(value, str):
            return IssueSeverity.parse(value)
        return value

    def resolve_worker_count(self, cpu_count: int | None = None) -> int:
        """Return the number of categories allowed to run concurrently.

        An explicit ``concurrency`` wins; otherwise the worker count is
        ``concurrency_percent`` of the available CPUs, never below one.

        Args:
            cpu_count: CPU count override; defaults to :func:`os.cpu_count`.

        Returns:
            int: Worker bound of at least ``1``.
        """

        if self.concurrency > 0:
            return self.concurrency
        cores = cpu_count if cpu_count is not None else (os.cpu_count() or 1)
        return max(1, (cores * self.concurrency_percent) // 100)

    def is_selected(self, category: AssessmentCategory) -> bool:
        """Return ``True`` when ``category`` is part of the selected subset."""

        return not self.selected_categories or category in self.selected_categories

    def path_included(self, path: str) -> bool:
        """Return ``True`` when ``path`` passes the include/exclude globs.

        ``force_include`` patterns override exclusions; ``include_files`` (when
        non-empty) restricts the set of paths that are considered at all.
        """

        normalized = path.replace("\\", "/")
        if any(_glob_match(normalized, pattern) for pattern in self.force_include):
            return True
        if self.include_files and not any(_glob_match(normalized, pattern) for pattern in self.include_files):
            return False
        return not any(_glob_match(normalized, pattern) for pattern in self.exclude_files)


def _glob_match(path: str, pattern: str) -> bool:
    if fnmatch.fnmatch(path, pattern):
        return True
    # Allow patterns such as ``src/*.py`` to match below nested roots.
    return fnmatch.fnmatch(Path(path).name, pattern) or path.startswith(pattern.rstrip("/") + "/")


def _section_from_pyproject(data: Mapping[str, object]) -> Mapping[str, object] | None:
    tool = data.get("tool")
    if not isinstance(tool, Mapping):
        return None
    section = tool.get(_TOOL_SECTION)
    return section if isinstance(section, Mapping) else None


def _read_toml(path: Path) -> Mapping[str, object]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"failed to parse {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"failed to read {path}: {exc}") from exc


def load_config_mapping(root: Path) -> dict[str, object]:
    """Return raw configuration values discovered beneath ``root``.

    ``.pyassess.toml`` (top-level keys) takes precedence over the
    ``[tool.pyassess]`` table of ``pyproject.toml``.

    Args:
        root: Repository root to inspect.

    Returns:
        dict[str, object]: Merged configuration mapping (possibly empty).
    """

    merged: dict[str, object] = {}
    pyproject = root / PYPROJECT_FILENAME
    if pyproject.is_file():
        section = _section_from_pyproject(_read_toml(pyproject))
        if section:
            merged.update(section)
    dedicated = root / DEDICATED_CONFIG_FILENAME
    if dedicated.is_file():
        merged.update(_read_toml(dedicated))
    return {key.replace("-", "_"): value for key, value in merged.items()}


def load_config(root: Path, overrides: Mapping[str, object] | None = None) -> AssessmentConfig:
    """Build an :class:`AssessmentConfig` from files under ``root`` and ``overrides``.

    Args:
        root: Repository root containing configuration files.
        overrides: Values (typically CLI flags) applied on top of file values;
            ``None`` entries are ignored.

    Returns:
        AssessmentConfig: Validated configuration.

    Raises:
        ConfigError: If a configuration file is malformed or values are invalid.
    """

    values = load_config_mapping(root)
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value
    try:
        return AssessmentConfig.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc


__all__ = [
    "DEFAULT_CATEGORY_TIMEOUT",
    "DEFAULT_CONCURRENCY_PERCENT",
    "AssessmentConfig",
    "load_config",
    "load_config_mapping",
]
