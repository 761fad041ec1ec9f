# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception hierarchy shared by adapters, runners and the engine."""

from __future__ import annotations


class AssessmentError(RuntimeError):
    """Base class for failures raised while assessing a repository."""


class ConfigError(AssessmentError):
    """Raised when configuration, priority strings or manifests are invalid."""


class ToolExecutionError(AssessmentError):
    """Raised when an external tool cannot be launched or misbehaves."""

    def __init__(self, tool: str, message: str) -> None:
        """Initialise the error with the failing tool name.

        Args:
            tool: Name of the adapter or executable that failed.
            message: Human-readable failure description.
        """

        super().__init__(f"{tool}: {message}")
        self.tool = tool
        self.detail = message


class ToolTimeoutError(ToolExecutionError):
    """Raised when an external tool exceeds its time budget."""

    def __init__(self, tool: str, timeout: float | None) -> None:
        """Initialise the error with the exceeded budget.

        Args:
            tool: Name of the adapter or executable that timed out.
            timeout: Budget in seconds, or ``None`` when only a deadline applied.
        """

        message = f"timed out after {format_seconds(timeout)}" if timeout is not None else "timed out"
        super().__init__(tool, message)
        self.timeout = timeout


class OutputParseError(ToolExecutionError):
    """Raised when tool output does not match any recognised shape."""


class AssessmentCancelledError(AssessmentError):
    """Raised when the surrounding run context was cancelled."""


def format_seconds(seconds: float) -> str:
    """Return ``seconds`` rendered compactly (``2s``, ``1.5s``, ``2m``).

    Args:
        seconds: Duration in seconds.

    Returns:
        str: Compact textual representation.
    """

    if seconds >= 60 and float(seconds).is_integer() and int(seconds) % 60 == 0:
        return f"{int(seconds) // 60}m"
    if float(seconds).is_integer():
        return f"{int(seconds)}s"
    return f"{seconds:.1f}s"


__all__ = [
    "AssessmentCancelledError",
    "AssessmentError",
    "ConfigError",
    "OutputParseError",
    "ToolExecutionError",
    "ToolTimeoutError",
    "format_seconds",
]
