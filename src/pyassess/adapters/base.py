# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tool adapter contract and shared output parsing helpers."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from subprocess import CompletedProcess
from typing import Protocol, cast, runtime_checkable

from ..config import AssessmentConfig
from ..core.context import RunContext
from ..core.errors import OutputParseError
from ..core.models import Issue, JsonValue, Suppression
from ..core.process import CommandOptions, find_executable, run_command

LOGGER = logging.getLogger(__name__)

type JsonObject = dict[str, JsonValue]
type CommandRunner = Callable[..., CompletedProcess[str]]


@runtime_checkable
class ToolAdapter(Protocol):
    """Capability interface implemented by every external tool wrapper.

    ``is_available`` must stay cheap (a ``PATH`` lookup or a manifest check).
    ``run`` executes the tool under ``ctx`` and returns normalised issues.
    Findings reported through a non-zero exit status are not errors; only
    execution failures, timeouts and unrecognised output raise.
    """

    @property
    def name(self) -> str:
        """Return the tool name used in logs and messages."""
        ...

    def is_available(self) -> bool:
        """Return ``True`` when running the tool has a chance of succeeding."""
        ...

    def run(self, ctx: RunContext) -> list[Issue]:
        """Execute the tool and return its findings as issues."""
        ...


@runtime_checkable
class SuppressionAwareAdapter(ToolAdapter, Protocol):
    """Adapter that also reports inline suppressions it encountered."""

    def run_with_suppressions(self, ctx: RunContext) -> tuple[list[Issue], list[Suppression]]:
        """Execute the tool returning issues and suppressions."""
        ...


@dataclass(slots=True)
class CommandAdapter:
    """Base class for adapters that invoke a single executable.

    ``runner`` defaults to :func:`pyassess.core.process.run_command` and may be
    replaced to feed canned output during tests.
    """

    root: Path
    config: AssessmentConfig = field(default_factory=AssessmentConfig)
    runner: CommandRunner = run_command
    executable: str = ""

    @property
    def name(self) -> str:
        return self.executable

    def is_available(self) -> bool:
        return bool(self.executable) and find_executable(self.executable) is not None

    def execute(self, ctx: RunContext, args: Sequence[str], *, cwd: Path | None = None) -> CompletedProcess[str]:
        """Run ``executable args`` under ``ctx`` using the configured runner.

        Args:
            ctx: Context bounding the invocation.
            args: Arguments appended to the executable.
            cwd: Working directory; defaults to :attr:`root`.

        Returns:
            CompletedProcess[str]: Completed process metadata.
        """

        options = CommandOptions(cwd=cwd or self.root, timeout=self.config.timeout)
        return self.runner([self.executable, *args], ctx=ctx, options=options, tool=self.name)


def parse_json_shapes(text: str, *, tool: str) -> list[JsonObject]:
    """Parse ``text`` trying strict shapes in order and failing closed.

    The accepted shapes are, in order: a JSON array of objects, a single JSON
    object, and newline-delimited JSON objects. Empty output yields no
    entries. Once a shape is chosen every element must be an object; a
    single stray element rejects the whole payload.

    Args:
        text: Raw tool output.
        tool: Tool name used in error messages.

    Returns:
        list[JsonObject]: Parsed objects.

    Raises:
        OutputParseError: If no shape matches a non-empty payload, or an
            element of the matched shape is not a JSON object.
    """

    stripped = text.strip()
    if not stripped:
        return []
    try:
        document = json.loads(stripped)
    except json.JSONDecodeError:
        document = None
    else:
        if isinstance(document, list):
            for position, item in enumerate(document):
                if not isinstance(item, dict):
                    raise OutputParseError(tool, f"array element {position} is not a JSON object")
            return [cast(JsonObject, item) for item in document]
        if isinstance(document, dict):
            return [cast(JsonObject, document)]

    entries: list[JsonObject] = []
    for number, raw_line in enumerate(stripped.splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue
        try:
            candidate = json.loads(line)
        except json.JSONDecodeError as exc:
            if not entries:
                raise OutputParseError(tool, "unrecognized output format") from exc
            raise OutputParseError(tool, f"line {number} is not valid JSON: {exc.msg}") from exc
        if not isinstance(candidate, dict):
            raise OutputParseError(tool, f"line {number} is not a JSON object")
        entries.append(cast(JsonObject, candidate))
    return entries


def load_json_object(text: str, *, tool: str) -> JsonObject:
    """Return ``text`` parsed as a single JSON object.

    Some tools print banners around their JSON payload; when strict decoding
    fails the first balanced ``{...}`` block is tried before giving up.

    Raises:
        OutputParseError: If no JSON object can be decoded.
    """

    stripped = text.strip()
    try:
        document = json.loads(stripped)
    except json.JSONDecodeError as exc:
        start = stripped.find("{")
        end = stripped.rfind("}")
        if start == -1 or end <= start:
            raise OutputParseError(tool, f"invalid JSON output: {exc}") from exc
        try:
            document = json.loads(stripped[start : end + 1])
        except json.JSONDecodeError as inner:
            raise OutputParseError(tool, f"invalid JSON output: {inner}") from inner
    if not isinstance(document, dict):
        raise OutputParseError(tool, "expected a JSON object")
    return cast(JsonObject, document)


def get_str(entry: Mapping[str, JsonValue], *keys: str) -> str:
    """Return the first non-empty string stored under ``keys``."""

    for key in keys:
        value = entry.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def get_int(entry: Mapping[str, JsonValue], *keys: str) -> int | None:
    """Return the first integer-like value stored under ``keys``.

    Numbers and numeric strings (``"12"`` or ``"12-14"``) are accepted.
    """

    for key in keys:
        value = entry.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value)
        if isinstance(value, str):
            head = value.strip().split("-", 1)[0]
            if head.isdigit():
                return int(head)
    return None


def get_mapping(entry: Mapping[str, JsonValue], key: str) -> JsonObject:
    """Return the mapping stored at ``key`` or an empty dict."""

    value = entry.get(key)
    return cast(JsonObject, value) if isinstance(value, dict) else {}


__all__ = [
    "CommandAdapter",
    "CommandRunner",
    "JsonObject",
    "SuppressionAwareAdapter",
    "ToolAdapter",
    "get_int",
    "get_mapping",
    "get_str",
    "load_json_object",
    "parse_json_shapes",
]
