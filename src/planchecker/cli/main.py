"""
planchecker CLI - Greenplum EXPLAIN plan checker.

Usage:
    planchecker check explain.txt
    psql -c "EXPLAIN ANALYZE ..." | planchecker check -
    planchecker check --json explain.txt
    planchecker list-checks
    planchecker serve --port 8080
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from planchecker import __version__
from planchecker.checks.engine import list_checks as catalog
from planchecker.config import get_config
from planchecker.exceptions import EmptyPlanError, PlanCheckerError
from planchecker.output.renderers import render_html, render_json, render_text
from planchecker.parser.parser import parse_plan, parse_plan_file

app = typer.Typer(
    name="planchecker",
    help="Greenplum EXPLAIN plan checker",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"planchecker version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """planchecker - review Greenplum query plans for common problems."""
    pass


def _enable_trace() -> None:
    # Records are still gated per parse by config.trace
    package_logger = logging.getLogger("planchecker")
    package_logger.setLevel(logging.DEBUG)
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(RichHandler(console=error_console, show_path=False))


def _read_stdin() -> str:
    text = sys.stdin.read()
    if not text.strip():
        raise EmptyPlanError("No plan text received on standard input")
    return text


@app.command()
def check(
    plan_file: Annotated[
        Optional[Path],
        typer.Argument(
            help="File with EXPLAIN output; '-' or omitted reads standard input",
        ),
    ] = None,
    html_output: Annotated[
        bool,
        typer.Option("--html", help="Output an HTML fragment"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output results as JSON"),
    ] = False,
    trace: Annotated[
        bool,
        typer.Option("--trace", help="Print parser trace logging to stderr"),
    ] = False,
    exclude_rule: Annotated[
        Optional[list[str]],
        typer.Option(
            "--exclude-rule",
            "-x",
            help="Skip a check by rule id (repeatable)",
        ),
    ] = None,
) -> None:
    """
    Parse an EXPLAIN plan and report warnings.

    Examples:
        planchecker check explain.txt
        planchecker check --exclude-rule NESTED_LOOP explain.txt
    """
    if html_output and json_output:
        error_console.print("[red]Error:[/red] --html and --json cannot be combined")
        raise typer.Exit(code=2)

    config = get_config()
    updates: dict[str, object] = {}
    if trace:
        updates["trace"] = True
    if exclude_rule:
        updates["exclude_rules"] = config.exclude_rules | frozenset(exclude_rule)
    if updates:
        config = config.model_copy(update=updates)

    if config.trace:
        _enable_trace()

    try:
        if plan_file is None or str(plan_file) == "-":
            if plan_file is None and sys.stdin.isatty():
                error_console.print("[red]Error:[/red] No plan file given and nothing on standard input")
                raise typer.Exit(code=2)
            explain = parse_plan(_read_stdin(), config)
        else:
            explain = parse_plan_file(plan_file, config)
    except PlanCheckerError as e:
        error_console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(render_json(explain))
    elif html_output:
        typer.echo(render_html(explain, config))
    else:
        console.print(render_text(explain, config), highlight=False, soft_wrap=True)


@app.command("list-checks")
def list_checks() -> None:
    """
    List every check.

    Node checks run against each plan node, plan checks once per plan.
    """
    table = Table()
    table.add_column("Rule ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Scope")
    table.add_column("Optimizer")
    table.add_column("Added")
    table.add_column("Description")

    for entry in catalog():
        table.add_row(
            entry["rule_id"],
            entry["name"],
            entry["scope"],
            ", ".join(entry["optimizers"]),
            entry["created_at"],
            escape(entry["description"]),
        )

    console.print(table)


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Bind port")] = 8000,
    reload: Annotated[bool, typer.Option("--reload", help="Enable auto-reload for development")] = False,
) -> None:
    """Run the web interface."""
    import uvicorn

    console.print(f"Starting planchecker on http://{host}:{port}")
    console.print(f"  API docs: http://{host}:{port}/api/docs")

    uvicorn.run(
        "planchecker.web.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


if __name__ == "__main__":
    app()
