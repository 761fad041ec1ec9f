# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Cancellable, deadline-bound execution contexts."""

from __future__ import annotations

import threading
import time
from typing import Final

from .errors import AssessmentCancelledError, ToolTimeoutError

_POLL_INTERVAL: Final[float] = 0.05


class RunContext:
    """Propagate cancellation and deadlines from a run to its subprocesses.

    A context is *done* once it has been cancelled explicitly, once its own
    deadline passed, or once any parent context is done. Child contexts never
    outlive their parents: the effective deadline is the earliest one in the
    chain.
    """

    def __init__(
        self,
        *,
        timeout: float | None = None,
        parent: RunContext | None = None,
        label: str = "run",
    ) -> None:
        """Create a context optionally bounded by ``timeout`` seconds.

        Args:
            timeout: Budget in seconds measured from now, or ``None``.
            parent: Context whose cancellation and deadline also apply.
            label: Name used in timeout messages.
        """

        if timeout is not None and timeout < 0:
            raise ValueError("timeout must be non-negative")
        self._event = threading.Event()
        self._parent = parent
        self._timeout = timeout
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self.label = label
        self._commands: list[str] = []
        self._commands_lock = threading.Lock()

    def child(self, *, timeout: float | None = None, label: str | None = None) -> RunContext:
        """Return a derived context bound by this one and ``timeout``."""

        return RunContext(timeout=timeout, parent=self, label=label or self.label)

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""

        self._event.set()

    @property
    def timeout(self) -> float | None:
        """Return the budget configured on this context, if any."""

        return self._timeout

    @property
    def deadline(self) -> float | None:
        """Return the earliest monotonic deadline across the parent chain."""

        candidates = [node._deadline for node in self._chain() if node._deadline is not None]
        return min(candidates) if candidates else None

    @property
    def cancelled(self) -> bool:
        """Return ``True`` when this context or a parent was cancelled."""

        return any(node._event.is_set() for node in self._chain())

    @property
    def expired(self) -> bool:
        """Return ``True`` when the effective deadline has passed."""

        deadline = self.deadline
        return deadline is not None and time.monotonic() >= deadline

    @property
    def done(self) -> bool:
        """Return ``True`` when the context was cancelled or expired."""

        return self.cancelled or self.expired

    def remaining(self) -> float | None:
        """Return seconds left before the effective deadline, or ``None``."""

        deadline = self.deadline
        if deadline is None:
            return None
        return max(0.0, deadline - time.monotonic())

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the context is done or ``timeout`` elapses.

        Args:
            timeout: Maximum seconds to wait; ``None`` waits indefinitely.

        Returns:
            bool: ``True`` when the context is done.
        """

        limit = time.monotonic() + timeout if timeout is not None else None
        while not self.done:
            if limit is not None:
                left = limit - time.monotonic()
                if left <= 0:
                    return False
                self._event.wait(min(_POLL_INTERVAL, left))
            else:
                self._event.wait(_POLL_INTERVAL)
        return True

    def raise_if_done(self, tool: str | None = None) -> None:
        """Raise the appropriate error when the context is done.

        Args:
            tool: Name reported in timeout errors; defaults to the context label.

        Raises:
            AssessmentCancelledError: When the context was cancelled.
            ToolTimeoutError: When the effective deadline passed.
        """

        if self.cancelled:
            raise AssessmentCancelledError(f"{tool or self.label}: cancelled")
        if self.expired:
            raise ToolTimeoutError(tool or self.label, self.effective_timeout())

    def effective_timeout(self) -> float | None:
        """Return the budget of the context whose deadline fires first."""

        earliest: RunContext | None = None
        for node in self._chain():
            if node._deadline is None:
                continue
            if earliest is None or node._deadline < earliest._deadline:  # type: ignore[operator]
                earliest = node
        return earliest._timeout if earliest is not None else None

    def record_command(self, command: str) -> None:
        """Record ``command`` on the root context for report metadata."""

        root = self._chain()[-1]
        with root._commands_lock:
            root._commands.append(command)

    @property
    def commands_run(self) -> list[str]:
        """Return the commands recorded anywhere in this context tree."""

        root = self._chain()[-1]
        with root._commands_lock:
            return list(root._commands)

    def _chain(self) -> list[RunContext]:
        nodes: list[RunContext] = []
        node: RunContext | None = self
        while node is not None:
            nodes.append(node)
            node = node._parent
        return nodes


__all__ = ["RunContext"]
