# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Hook manifest loading and execution."""

from __future__ import annotations

from .executor import (
    DEFAULT_HOOK_TIMEOUT,
    HookCommand,
    HookExecutionError,
    HookExecutor,
    HookManifest,
    is_internal_command,
    load_hook_manifest,
    parse_duration,
    resolve_timeout,
)

__all__ = [
    "DEFAULT_HOOK_TIMEOUT",
    "HookCommand",
    "HookExecutionError",
    "HookExecutor",
    "HookManifest",
    "is_internal_command",
    "load_hook_manifest",
    "parse_duration",
    "resolve_timeout",
]
