# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Assessment orchestration: category execution and report assembly."""

from __future__ import annotations

from .engine import AssessmentEngine, run_assessment
from .executor import CategoryExecutor, ExecutionOutcome

__all__ = ["AssessmentEngine", "CategoryExecutor", "ExecutionOutcome", "run_assessment"]
