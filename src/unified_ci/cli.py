# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Command line interface for running reviews locally."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich import box
from rich.table import Table
from rich.text import Text

from .capabilities import detect
from .config import load_config
from .engine import CheckEngine
from .errors import ConfigLoadError, ParseError
from .logging import CheckConsole, Status, configure_logging
from .models import BindingContext, ToolOutcome
from .reporting import build_report
from .severity import Severity
from .shellwords import resolve_command

app = typer.Typer(
    name="unified-ci",
    help="Run static-analysis tools against a code change and normalise their findings.",
    no_args_is_help=True,
    add_completion=False,
)

RepoArgument = Annotated[
    Path,
    typer.Argument(exists=True, file_okay=False, dir_okay=True, resolve_path=True, help="Repository checkout."),
]


@app.command("detect")
def detect_command(repo: RepoArgument) -> None:
    """Show which tool categories are enabled for REPO."""

    capabilities = detect(repo)
    table = Table(title=f"Capabilities for {repo.name}", box=box.SIMPLE)
    table.add_column("Category", style="bold")
    table.add_column("Enabled")
    table.add_column("Auxiliary path", overflow="fold")
    for category, capability in capabilities.items():
        table.add_row(category.value, "yes" if capability.enabled else "no", capability.auxiliary_path or "")
    CheckConsole(emoji=False).render(table)


@app.command("resolve")
def resolve_template(
    template: Annotated[str, typer.Argument(help="Command template to resolve.")],
    repo: Annotated[
        Path,
        typer.Option("--repo", file_okay=False, dir_okay=True, resolve_path=True, help="Working directory."),
    ] = Path("."),
    check_type: Annotated[str, typer.Option("--check-type", help="Value bound to CI_CHECK_TYPE.")] = "",
    check_ref: Annotated[str, typer.Option("--check-ref", help="Value bound to CI_CHECK_REF.")] = "",
) -> None:
    """Print the argument vector TEMPLATE resolves to, as a JSON list."""

    context = BindingContext(working_dir=repo, check_type=check_type, check_ref=check_ref)
    try:
        argv = resolve_command(template, context)
    except ParseError as exc:
        CheckConsole(emoji=False).status(Status.FAIL, str(exc))
        raise typer.Exit(code=2) from exc
    typer.echo(json.dumps(list(argv)))


def _read_diff(diff: str) -> str:
    if diff == "-":
        return sys.stdin.read()
    path = Path(diff)
    if not path.is_file():
        raise typer.BadParameter(f"diff file {diff} does not exist", param_hint="--diff")
    return path.read_text(encoding="utf-8", errors="surrogateescape")


def _render_findings(outcomes: list[ToolOutcome], console: CheckConsole) -> None:
    table = Table(box=box.SIMPLE, expand=True)
    table.add_column("Severity", style="bold")
    table.add_column("Location")
    table.add_column("Rule")
    table.add_column("Message", overflow="fold")
    rows = 0
    for outcome in outcomes:
        for finding in outcome.findings:
            path = finding.path or outcome.file or "*"
            location = f"{path}:{finding.line}" + (f":{finding.column}" if finding.column else "")
            table.add_row(
                finding.severity.label,
                Text(location),
                Text(f"{outcome.tool}/{finding.rule_id}"),
                Text(finding.message),
            )
            rows += 1
    if rows:
        console.render(table)


@app.command("check")
def check_command(
    repo: RepoArgument,
    diff: Annotated[str, typer.Option("--diff", help="Unified diff of the change, or '-' for stdin.")],
    config_path: Annotated[
        Path | None,
        typer.Option("--config", dir_okay=False, resolve_path=True, help="TOML configuration file."),
    ] = None,
    check_type: Annotated[str, typer.Option("--check-type", help="Value bound to CI_CHECK_TYPE.")] = "",
    check_ref: Annotated[str, typer.Option("--check-ref", help="Value bound to CI_CHECK_REF.")] = "",
    name: Annotated[str, typer.Option("--name", help="Check-run name used in --json output.")] = "lint",
    as_json: Annotated[bool, typer.Option("--json", help="Print the check-run update payload as JSON.")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log tool output at DEBUG level.")] = False,
    color: Annotated[bool, typer.Option("--color/--no-color", help="Toggle ANSI colour output.")] = True,
    emoji: Annotated[bool, typer.Option("--emoji/--no-emoji", help="Toggle emoji output.")] = True,
) -> None:
    """Run every eligible tool on the files changed by --diff inside REPO.

    Exits with status 1 when the conclusion is ``failure``.
    """

    configure_logging(verbose)
    console = CheckConsole(color=color, emoji=emoji)
    try:
        config = load_config(config_path, repo_root=repo)
    except ConfigLoadError as exc:
        console.status(Status.FAIL, str(exc))
        raise typer.Exit(code=2) from exc

    diff_text = _read_diff(diff)
    engine = CheckEngine(config)
    context = BindingContext(working_dir=repo, check_type=check_type, check_ref=check_ref)
    try:
        outcomes = engine.run(repo, diff_text, context)
    except ParseError as exc:
        console.status(Status.FAIL, f"invalid diff: {exc}")
        raise typer.Exit(code=2) from exc

    threshold: Severity = config.review.fail_threshold
    report = build_report(outcomes, threshold)
    if as_json:
        typer.echo(json.dumps(report.to_update(name).to_payload(), indent=2))
    else:
        console.heading(f"{name}: {report.title}")
        _render_findings(outcomes, console)
        if not outcomes:
            console.status(Status.INFO, "No files to review.")
        for outcome in outcomes:
            if not outcome.ok:
                console.status(Status.WARN, f"{outcome.tool} failed: {outcome.error}")
        outcome_status = Status.FAIL if report.conclusion == "failure" else Status.OK
        console.status(outcome_status, f"Conclusion: {report.conclusion}")
    if report.conclusion == "failure":
        raise typer.Exit(code=1)


def main() -> None:
    """Console-script entry point."""

    app()


__all__ = ["app", "main"]
