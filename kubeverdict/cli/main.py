"""Click entry point for kubeverdict."""

from __future__ import annotations

import asyncio

import click

from kubeverdict.config import load_config, parse_duration
from kubeverdict.monitortests.registry import available_plugins


@click.group()
@click.version_option(package_name="kubeverdict")
def cli() -> None:
    """Observe a live cluster for a run window and report JUnit verdicts."""


@cli.command()
@click.option("--duration", help="Run window, e.g. 30s, 10m, 1h. Overrides KUBEVERDICT_RUN_DURATION.")
@click.option("--junit-dir", type=click.Path(file_okay=False), help="Directory for the JUnit XML report.")
@click.option("--storage-dir", type=click.Path(file_okay=False), help="Directory for raw interval artifacts.")
@click.option(
    "--plugin",
    "plugins",
    multiple=True,
    type=click.Choice(available_plugins()),
    help="Monitor test to run; repeat to select several. Defaults to all.",
)
def run(duration: str | None, junit_dir: str | None, storage_dir: str | None, plugins: tuple[str, ...]) -> None:
    """Run the monitor tests and exit non-zero on gating failures."""
    from kubeverdict.app import MonitorRun

    try:
        config = load_config()
        if duration:
            parse_duration(duration)
            config.run.duration = duration
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc
    if junit_dir:
        config.run.junit_dir = junit_dir
    if storage_dir:
        config.run.storage_dir = storage_dir
    if plugins:
        config.run.plugins = list(plugins)

    exit_code = asyncio.run(MonitorRun(config).execute())
    raise SystemExit(exit_code)


@cli.command(name="plugins")
def list_plugins() -> None:
    """List the monitor tests this build can run."""
    for name in available_plugins():
        click.echo(name)
