# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""External tool adapters normalising tool output into issues."""

from __future__ import annotations

from .base import CommandAdapter, SuppressionAwareAdapter, ToolAdapter, parse_json_shapes

__all__ = ["CommandAdapter", "SuppressionAwareAdapter", "ToolAdapter", "parse_json_shapes"]
