"""CLI output formatting helpers."""

import json
from typing import Any

import click
import yaml
from rich.console import Console
from rich.table import Table

from .config import HarnessConfig
from .provision import OverrideBundle
from .scenarios import SessionReport


def print_session_report(report: SessionReport, console: Console | None = None) -> None:
    """Print a session summary table.

    Args:
        report: Session outcome
        console: Rich console (default: stdout)
    """
    console = console or Console()
    table = Table(title="Nightly session")
    table.add_column("Step")
    table.add_column("Kind")
    table.add_column("Status", justify="right")
    table.add_column("Duration", justify="right")

    for result in report.results:
        status = "[green]✓ 0[/green]" if result.passed else f"[red]✗ {result.exit_status}[/red]"
        table.add_row(result.name, result.kind, status, f"{result.duration:.1f}s")

    console.print(table)
    if report.passed:
        console.print(f"[green]✓ Session passed[/green] ({len(report.results)} steps)")
    else:
        console.print(f"[red]✗ Session failed:[/red] {report.error or 'see logs'}")


def print_plan(plan: dict[str, Any]) -> None:
    """Print a planned session.

    Args:
        plan: Plan mapping from SessionPlan.to_dict()
    """
    click.echo("Planned session:\n")
    click.echo("Scenarios:")
    for invocation in plan["scenarios"]:
        click.echo(f"  - {invocation}")
    if plan["intrinsic"]:
        click.echo("Own-lifecycle scenarios:")
        for invocation in plan["intrinsic"]:
            click.echo(f"  - {invocation}")
    if plan["chain"]:
        click.echo("Chain:")
        for step in plan["chain"]:
            suffix = " (reuse)" if step["skip_setup"] else " (setup)"
            click.echo(f"  - test_id={step['test_id']}{suffix}")
    click.echo(f"Soundness: {'yes' if plan['soundness'] else 'no'}")


def print_bundle(name: str, bundle: OverrideBundle) -> None:
    """Print resolved overrides for a scenario."""
    click.echo(f"Overrides for {name}:")
    for kind, path in bundle.to_dict().items():
        click.echo(f"  {kind}: {path or '(default)'}")
    if not bundle.is_empty:
        click.echo(f"Setup args: {' '.join(bundle.to_setup_args())}")


def print_config_yaml(config: HarnessConfig) -> None:
    """Print effective configuration with the source of each value."""
    click.echo("Harness Configuration\n")
    data = config.to_dict()
    for key, value in data.items():
        rendered = value if isinstance(value, str) else json.dumps(value)
        click.echo(f"  {key}: {rendered}  [{config.get_source(key)}]")


def print_plan_yaml(plan: dict[str, Any]) -> None:
    """Print a plan as a YAML document that `run --plan` accepts."""
    click.echo(yaml.dump(plan, default_flow_style=False, sort_keys=False))
