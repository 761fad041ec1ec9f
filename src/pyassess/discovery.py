# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Project detection and source file discovery helpers."""

from __future__ import annotations

import os
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Final

from .config import AssessmentConfig
from .core.models import Issue

SKIPPED_DIRECTORIES: Final[frozenset[str]] = frozenset(
    {".git", "node_modules", "vendor", ".idea", ".venv", "venv", "__pycache__", "target", "dist", "build"},
)

PYTHON_EXTENSIONS: Final[tuple[str, ...]] = (".py", ".pyi")
JS_EXTENSIONS: Final[tuple[str, ...]] = (".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".json")
GO_EXTENSIONS: Final[tuple[str, ...]] = (".go",)


def iter_files(
    root: Path,
    *,
    extensions: Sequence[str] | None = None,
    config: AssessmentConfig | None = None,
) -> Iterator[Path]:
    """Yield files under ``root`` honouring skipped directories and globs.

    Args:
        root: Directory to walk.
        extensions: Optional suffix filter (lower-case, with leading dot).
        config: Configuration whose include/exclude globs filter results.

    Returns:
        Iterator[Path]: Matching files in sorted, deterministic order.
    """

    skip = frozenset() if config is not None and config.no_ignore else SKIPPED_DIRECTORIES
    for current, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in skip)
        for filename in sorted(filenames):
            path = Path(current) / filename
            if extensions is not None and path.suffix.lower() not in extensions:
                continue
            if config is not None:
                relative = path.relative_to(root).as_posix()
                if not config.path_included(relative):
                    continue
            yield path


def collect_files(
    root: Path,
    extensions: Sequence[str],
    config: AssessmentConfig | None = None,
) -> list[str]:
    """Return files below ``root`` with ``extensions`` as root-relative paths."""

    return [path.relative_to(root).as_posix() for path in iter_files(root, extensions=extensions, config=config)]


def find_cargo_manifest(root: Path) -> Path | None:
    """Return the ``Cargo.toml`` at ``root`` when the target is a Rust project."""

    manifest = root / "Cargo.toml"
    return manifest if manifest.is_file() else None


def rust_report_file(root: Path) -> str:
    """Return the file Rust dependency findings are reported against.

    ``Cargo.lock`` is preferred over ``Cargo.toml`` because advisories and
    bans resolve against the locked dependency graph.
    """

    for candidate in ("Cargo.lock", "Cargo.toml"):
        if (root / candidate).is_file():
            return candidate
    return "Cargo.toml"


def is_js_project(root: Path) -> bool:
    """Return ``True`` when ``root`` looks like a JavaScript/TypeScript project."""

    return any((root / marker).is_file() for marker in ("package.json", "biome.json", "biome.jsonc"))


def is_go_module(root: Path) -> bool:
    """Return ``True`` when ``root`` contains a ``go.mod`` file."""

    return (root / "go.mod").is_file()


def has_python_sources(root: Path, config: AssessmentConfig | None = None) -> bool:
    """Return ``True`` when at least one Python file exists below ``root``."""

    return next(iter_files(root, extensions=PYTHON_EXTENSIONS, config=config), None) is not None


def relative_path(path: str, root: Path) -> str:
    """Return ``path`` relative to ``root`` in POSIX form.

    Tools disagree on whether they print absolute or root-relative paths.
    Relative paths are only normalised; absolute paths outside ``root`` are
    returned unchanged.

    Args:
        path: Path reported by a tool.
        root: Repository root the assessment runs against.

    Returns:
        str: Root-relative path when ``path`` lies under ``root``.
    """

    if not path:
        return path
    candidate = Path(path)
    if not candidate.is_absolute():
        return candidate.as_posix()
    for base, resolved in ((root, candidate), (root.resolve(), candidate.resolve())):
        try:
            return resolved.relative_to(base).as_posix()
        except ValueError:
            continue
    return candidate.as_posix()


def relativize_issue(issue: Issue, root: Path) -> Issue:
    """Return ``issue`` with its file and related files relative to ``root``."""

    file = relative_path(issue.file, root)
    related = tuple(relative_path(path, root) for path in issue.related_files)
    if file == issue.file and related == issue.related_files:
        return issue
    return issue.model_copy(update={"file": file, "related_files": related})


__all__ = [
    "GO_EXTENSIONS",
    "JS_EXTENSIONS",
    "PYTHON_EXTENSIONS",
    "SKIPPED_DIRECTORIES",
    "collect_files",
    "find_cargo_manifest",
    "has_python_sources",
    "is_go_module",
    "is_js_project",
    "iter_files",
    "relative_path",
    "relativize_issue",
    "rust_report_file",
]
