"""CLI main entry point."""

import json
import sys
from typing import NoReturn

import click

from .config import HarnessConfig, load_config
from .errors import HarnessError
from .formatters import (
    print_bundle,
    print_config_yaml,
    print_plan,
    print_plan_yaml,
    print_session_report,
)
from .scenarios import ScenarioSpec, SessionReport
from .session import SessionDriver, SessionPlan
from .shared import configure_logging, get_log_file

LOG_LEVELS = ["info", "debug"]

# Harness events go here, beside the per-scenario logs in log_dir
HARNESS_LOG = "nightly-harness"


def exit_code(status: int) -> int:
    """Map a child exit status to a process exit code (signals become 1)."""
    if status == 0:
        return 0
    return status if 0 < status < 256 else 1


def fail(error: HarnessError) -> NoReturn:
    click.echo(f"✗ {error.message}", err=True)
    sys.exit(exit_code(error.exit_status))


def _config(ctx: click.Context) -> HarnessConfig:
    try:
        config = load_config(ctx.obj.get("config_path"))
    except HarnessError as e:
        fail(e)

    if config.log_dir is not None:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        configure_logging(
            level=ctx.obj["log_level"],
            log_file=get_log_file(config.log_dir, HARNESS_LOG),
            json_output=ctx.obj["json_logs"],
        )
    return config


def _plan(plan_path: str | None) -> SessionPlan:
    if plan_path is None:
        return SessionPlan.nightly()
    try:
        return SessionPlan.load(plan_path)
    except HarnessError as e:
        fail(e)


def _finish(report: SessionReport) -> None:
    print_session_report(report)
    sys.exit(exit_code(report.exit_status))


@click.group()
@click.option("-c", "--config", "config_path", type=click.Path(), help="Config file path")
@click.option("-v", "--verbose", count=True, help="Increase verbosity")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON (for CI log collection)")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: int, json_logs: bool) -> None:
    """Nightly scenario harness for ephemeral test networks."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["log_level"] = LOG_LEVELS[min(verbose, len(LOG_LEVELS) - 1)]
    ctx.obj["json_logs"] = json_logs
    configure_logging(level=ctx.obj["log_level"], json_output=json_logs)


@cli.command()
@click.option("--plan", "plan_path", type=click.Path(exists=True), help="Session plan YAML")
@click.option("--dry-run", is_flag=True, help="Show the planned session and exit")
@click.pass_context
def run(ctx: click.Context, plan_path: str | None, dry_run: bool) -> None:
    """Run the full nightly session.

    Stops at the first failing step and exits with its status.

    Examples:

        # Built-in nightly plan
        nightly-harness run

        # Custom plan
        nightly-harness run --plan smoke.yaml
    """
    config = _config(ctx)
    plan = _plan(plan_path)

    if dry_run:
        print_plan(plan.to_dict())
        return

    _finish(SessionDriver(config, plan).run())


@cli.command()
@click.option("--plan", "plan_path", type=click.Path(exists=True), help="Session plan YAML")
@click.option("--yaml", "as_yaml", is_flag=True, help="Print as a plan file")
def plan(plan_path: str | None, as_yaml: bool) -> None:
    """Show a session plan."""
    data = _plan(plan_path).to_dict()
    if as_yaml:
        print_plan_yaml(data)
    else:
        print_plan(data)


@cli.command()
@click.argument("name")
@click.argument("args", nargs=-1)
@click.option("--intrinsic", is_flag=True, help="Scenario manages its own environment")
@click.pass_context
def scenario(ctx: click.Context, name: str, args: tuple[str, ...], intrinsic: bool) -> None:
    """Run a single scenario.

    ARGS are key=value tokens forwarded to the scenario program.

    Example:

        nightly-harness scenario sync_test.sh timeout=500
    """
    config = _config(ctx)
    spec = ScenarioSpec(name, args, intrinsic_lifecycle=intrinsic)
    driver = SessionDriver(config, SessionPlan())

    report = SessionReport()
    try:
        report.record(driver.runner.run(spec))
    except HarnessError as e:
        report.exit_status = e.exit_status or 1
        report.error = e.message
    _finish(report)


@cli.command()
@click.option("--plan", "plan_path", type=click.Path(exists=True), help="Session plan YAML")
@click.pass_context
def chain(ctx: click.Context, plan_path: str | None) -> None:
    """Run only the upgrade chain of a plan."""
    config = _config(ctx)
    session_plan = _plan(plan_path)
    if session_plan.chain is None:
        click.echo("✗ Plan has no chain steps", err=True)
        sys.exit(1)

    driver = SessionDriver(config, SessionPlan(chain=session_plan.chain, soundness=False))
    _finish(driver.run())


@cli.command()
@click.pass_context
def soundness(ctx: click.Context) -> None:
    """Run only the network soundness session."""
    config = _config(ctx)
    driver = SessionDriver(config, SessionPlan(soundness=True))
    _finish(driver.run())


@cli.command()
@click.pass_context
def teardown(ctx: click.Context) -> None:
    """Tear down any leftover environment."""
    config = _config(ctx)
    SessionDriver(config, SessionPlan()).provisioner.teardown()
    click.echo("✓ Environment torn down.")


@cli.command()
@click.argument("name")
@click.pass_context
def overrides(ctx: click.Context, name: str) -> None:
    """Show the override files a scenario would use."""
    config = _config(ctx)
    spec = ScenarioSpec.from_invocation(name)
    print_bundle(spec.name, SessionDriver(config, SessionPlan()).resolver.resolve(spec))


@cli.group()
def config() -> None:
    """Inspect configuration."""
    pass


@config.command("show")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def config_show(ctx: click.Context, json_output: bool) -> None:
    """Show the effective configuration."""
    harness_config = _config(ctx)
    if json_output:
        values = harness_config.to_dict()
        data = {
            "values": values,
            "sources": {key: harness_config.get_source(key) for key in values},
        }
        click.echo(json.dumps(data, indent=2))
        return
    print_config_yaml(harness_config)


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
