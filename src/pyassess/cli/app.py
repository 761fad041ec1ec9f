# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point wiring commands and shared services."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Annotated

import typer
from rich import box
from rich.table import Table

from ..config import AssessmentConfig, load_config
from ..core.context import RunContext
from ..core.errors import ConfigError, ToolExecutionError
from ..core.logging import configure_logging, detect_tty, emoji, fail, get_console, ok, section, warn
from ..core.models import AssessmentCategory, AssessmentMode, AssessmentReport
from ..failon import evaluate_fail_on
from ..hooks.executor import (
    DEFAULT_MANIFEST_PATH,
    HookExecutionError,
    HookExecutor,
    InternalHandler,
    load_hook_manifest,
)
from ..orchestration.engine import AssessmentEngine
from ..priorities import PriorityManager
from ..registry import RunnerRegistry
from ..reporting.formatters import ReportFormat, format_report, render_concise, write_report
from ..runners.builtin import default_registry
from .options import (
    CATEGORIES_OPTION,
    CONCURRENCY_OPTION,
    CONCURRENCY_PERCENT_OPTION,
    EXCLUDE_OPTION,
    EXTENDED_OPTION,
    FAIL_ON_OPTION,
    FORMAT_OPTION,
    INCLUDE_OPTION,
    MODE_OPTION,
    NO_EMOJI_OPTION,
    OUTPUT_OPTION,
    PRIORITY_OPTION,
    TARGET_ARGUMENT,
    TIMEOUT_OPTION,
    TOTAL_TIMEOUT_OPTION,
    TRACK_SUPPRESSIONS_OPTION,
    VERBOSE_OPTION,
    AssessCLIOptions,
    build_overrides,
)
from .shared import CONFIG_ERROR_EXIT_CODE, CLIError, parse_categories
from .typer_ext import create_typer

LOGGER = logging.getLogger(__name__)

type EngineFactory = Callable[[], AssessmentEngine]

_CATEGORY_NAMES = frozenset(category.value for category in AssessmentCategory)

app = create_typer(help="Code-quality assessment orchestrator.", no_args_is_help=True, add_completion=False)
hooks_app = create_typer(name="hooks", help="Run commands declared in a hooks manifest.", no_args_is_help=True)
app.add_typer(hooks_app, name="hooks")

_registry_provider: Callable[[], RunnerRegistry] = default_registry


def set_registry_provider(provider: Callable[[], RunnerRegistry]) -> None:
    """Replace the registry used by CLI commands (tests install fakes here)."""

    global _registry_provider
    _registry_provider = provider


def _engine() -> AssessmentEngine:
    return AssessmentEngine(_registry_provider())


def _load(target: Path, overrides: dict[str, object]) -> AssessmentConfig:
    try:
        return load_config(target, overrides)
    except ConfigError as exc:
        raise CLIError(str(exc), exit_code=CONFIG_ERROR_EXIT_CODE) from exc


def _run(engine: AssessmentEngine, target: Path, config: AssessmentConfig) -> AssessmentReport:
    try:
        return engine.run_assessment(target, config)
    except ConfigError as exc:
        raise CLIError(str(exc), exit_code=CONFIG_ERROR_EXIT_CODE) from exc


def _emit(report: AssessmentReport, options: AssessCLIOptions) -> None:
    if options.output is not None:
        write_report(report, options.output, options.output_format)
        ok(f"Report written to {options.output}", use_emoji=options.use_emoji)
        return
    if options.output_format is ReportFormat.CONCISE:
        render_concise(report, get_console(color=detect_tty(), emoji=options.use_emoji), use_emoji=options.use_emoji)
        return
    typer.echo(format_report(report, options.output_format), nl=False)


@app.command("assess")
def assess_command(
    target: TARGET_ARGUMENT = Path("."),
    output_format: FORMAT_OPTION = ReportFormat.CONCISE,
    mode: MODE_OPTION = None,
    fail_on: FAIL_ON_OPTION = None,
    categories: CATEGORIES_OPTION = None,
    priority: PRIORITY_OPTION = None,
    concurrency: CONCURRENCY_OPTION = None,
    concurrency_percent: CONCURRENCY_PERCENT_OPTION = None,
    timeout: TIMEOUT_OPTION = None,
    total_timeout: TOTAL_TIMEOUT_OPTION = None,
    include: INCLUDE_OPTION = None,
    exclude: EXCLUDE_OPTION = None,
    output: OUTPUT_OPTION = None,
    extended: EXTENDED_OPTION = None,
    track_suppressions: TRACK_SUPPRESSIONS_OPTION = None,
    verbose: VERBOSE_OPTION = False,
    no_emoji: NO_EMOJI_OPTION = False,
) -> None:
    """Assess a repository and print a prioritized report.

    Exits with status 1 when the fail-on threshold trips and 2 on
    configuration errors.
    """

    configure_logging(verbose=verbose)
    use_emoji = not no_emoji
    try:
        root = target.resolve()
        options = AssessCLIOptions(
            target=root,
            output_format=output_format,
            output=output,
            use_emoji=use_emoji,
            overrides=build_overrides(
                mode=mode,
                fail_on=fail_on,
                categories=parse_categories(categories),
                priority=priority,
                concurrency=concurrency,
                concurrency_percent=concurrency_percent,
                timeout=timeout,
                total_timeout=total_timeout,
                include=include,
                exclude=exclude,
                extended=extended,
                track_suppressions=track_suppressions,
                verbose=verbose,
            ),
        )
        config = _load(root, options.overrides)
        report = _run(_engine(), root, config)
    except CLIError as exc:
        fail(str(exc), use_emoji=use_emoji)
        raise typer.Exit(code=exc.exit_code) from exc

    _emit(report, options)
    decision = evaluate_fail_on(report, config.fail_on)
    if decision.failed:
        warn(f"Fail-on '{config.fail_on.value}' triggered: {decision.describe()}", use_emoji=use_emoji)
        raise typer.Exit(code=1)


def _parse_hook_args(command: str, args: Sequence[str]) -> dict[str, object]:
    overrides: dict[str, object] = {}
    if command in _CATEGORY_NAMES:
        overrides["selected_categories"] = [AssessmentCategory(command)]
    iterator = iter(args)
    for arg in iterator:
        name, _, inline = arg.partition("=")
        if name == "--fix":
            overrides["mode"] = AssessmentMode.FIX
        elif name in {"--fail-on", "--categories", "--priority"}:
            value = inline or next(iterator, "")
            if not value:
                raise ToolExecutionError(command, f"missing value for {name}")
            if name == "--categories":
                overrides["selected_categories"] = parse_categories([value])
            else:
                overrides[name.removeprefix("--").replace("-", "_")] = value
        else:
            LOGGER.debug("ignoring hook argument %s for %s", arg, command)
    return overrides


def build_internal_handler(target: Path, engine_factory: EngineFactory = _engine) -> InternalHandler:
    """Return a hook handler running internal commands through the engine.

    ``format``, ``lint``, ``security`` and ``dependencies`` restrict the run
    to that category; ``assess`` and ``validate`` run every category. The
    handler raises when the fail-on threshold trips.
    """

    def handler(ctx: RunContext, command: str, args: Sequence[str]) -> None:
        try:
            config = load_config(target, _parse_hook_args(command, args))
            report = engine_factory().run_assessment(target, config, ctx)
        except (ConfigError, CLIError) as exc:
            raise ToolExecutionError(command, str(exc)) from exc
        decision = evaluate_fail_on(report, config.fail_on)
        if decision.failed:
            raise ToolExecutionError(command, decision.describe())

    return handler


@hooks_app.command("run")
def hooks_run_command(
    hook: Annotated[str, typer.Argument(help="Hook to run, such as pre-commit or pre-push.")],
    manifest: Annotated[
        Path | None,
        typer.Option("--manifest", "-m", dir_okay=False, help="Hooks manifest path."),
    ] = None,
    root: Annotated[Path, typer.Option("--root", "-r", file_okay=False, help="Repository root.")] = Path("."),
    verbose: VERBOSE_OPTION = False,
    no_emoji: NO_EMOJI_OPTION = False,
) -> None:
    """Run the commands a hooks manifest declares for HOOK."""

    configure_logging(verbose=verbose)
    use_emoji = not no_emoji
    repo_root = root.resolve()
    manifest_path = manifest or repo_root / DEFAULT_MANIFEST_PATH
    try:
        commands = load_hook_manifest(manifest_path).commands_for(hook)
    except ConfigError as exc:
        fail(str(exc), use_emoji=use_emoji)
        raise typer.Exit(code=CONFIG_ERROR_EXIT_CODE) from exc
    if not commands:
        warn(f"No commands declared for hook '{hook}'", use_emoji=use_emoji)
        raise typer.Exit(code=0)

    section(f"Hook {hook}", use_color=detect_tty())
    executor = HookExecutor(repo_root, handler=build_internal_handler(repo_root), verbose=verbose)
    try:
        executor.execute(commands)
    except HookExecutionError as exc:
        fail(str(exc), use_emoji=use_emoji)
        raise typer.Exit(code=1) from exc
    ok(f"Hook '{hook}' passed ({len(commands)} command(s))", use_emoji=use_emoji)


@app.command("categories")
def categories_command(no_emoji: NO_EMOJI_OPTION = False) -> None:
    """List registered categories with priority and availability."""

    registry = _registry_provider()
    priorities = PriorityManager()
    use_emoji = not no_emoji
    table = Table(box=box.SIMPLE, pad_edge=False)
    table.add_column("Category", no_wrap=True)
    table.add_column("Priority", justify="right")
    table.add_column("Available", no_wrap=True)
    table.add_column("Parallel", no_wrap=True)
    table.add_column("Description")
    for category in priorities.ordered(registry.all_categories()):
        runner = registry[category]
        available = runner.is_available()
        marker = emoji("✅ " if available else "❌ ", use_emoji)
        table.add_row(
            category.value,
            str(priorities.priority(category)),
            f"{marker}{'yes' if available else 'no'}",
            "yes" if runner.can_run_in_parallel() else "no",
            priorities.describe(category),
        )
    get_console(color=detect_tty(), emoji=use_emoji).print(table)


def main() -> None:
    """Run the pyassess command line application."""

    app()


__all__ = ["app", "build_internal_handler", "hooks_app", "main", "set_registry_provider"]
