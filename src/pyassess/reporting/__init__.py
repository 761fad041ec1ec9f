# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Report rendering helpers."""

from __future__ import annotations

from .formatters import ReportFormat, format_report, load_json_report, render_concise, write_report

__all__ = ["ReportFormat", "format_report", "load_json_report", "render_concise", "write_report"]
