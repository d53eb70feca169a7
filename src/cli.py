"""
Command-line interface for webhook-mirror.

Provides commands to run the poll loop, trigger a single cycle, and
inspect configuration and persisted state.

Usage:
    webhook-mirror run           # Poll all sources until stopped
    webhook-mirror run-once      # Reconcile every source once
    webhook-mirror status        # Show persisted message state
    webhook-mirror check-config  # Validate the sources file
"""

import asyncio
import signal
import sys
from dataclasses import dataclass
from typing import NoReturn

import click

from src.config.settings import get_settings
from src.config.sources import ConfigError, SourcesFile, load_sources
from src.mirror.schemas import ReconcileOutcome
from src.mirror.state_store import StateStore, StateStoreError
from src.observability.logging import setup_logging
from src.observability.metrics import get_metrics

_OUTCOME_STYLE = {
    ReconcileOutcome.CREATED: ("✓", "green"),
    ReconcileOutcome.UPDATED: ("✓", "green"),
    ReconcileOutcome.RECREATED: ("✓", "yellow"),
    ReconcileOutcome.UNCHANGED: ("=", None),
    ReconcileOutcome.SKIPPED: ("-", "yellow"),
    ReconcileOutcome.FAILED: ("✗", "red"),
}


@dataclass
class CLIContext:
    """Options shared by all commands."""

    config_path: str
    state_path: str
    log_level: str


def _fail(message: str) -> NoReturn:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


def _load_config(
    ctx: CLIContext,
    timezone: str | None = None,
    error_log: bool = False,
) -> SourcesFile:
    """Load the sources file and apply its timezone to logging.

    The error log file is only opened when ``error_log`` is set, so read-only
    commands leave the data directory untouched.
    """
    try:
        sources_file = load_sources(ctx.config_path)
    except ConfigError as e:
        _fail(str(e))

    tz = timezone or sources_file.global_settings.timezone
    if tz or error_log:
        try:
            setup_logging(timezone=tz, log_level=ctx.log_level, error_log=error_log)
        except ValueError as e:
            _fail(str(e))
    return sources_file


def _load_state(ctx: CLIContext) -> StateStore:
    try:
        return StateStore.load(ctx.state_path)
    except StateStoreError as e:
        _fail(str(e))


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", default=None, help="Sources file (JSON)")
@click.option("--state", "state_path", default=None, help="State file (JSON)")
@click.pass_context
def main(ctx: click.Context, debug: bool, config_path: str | None, state_path: str | None) -> None:
    """Webhook Mirror - keep chat-webhook messages in sync with remote documents."""
    settings = get_settings()
    log_level = "DEBUG" if debug else settings.log_level

    try:
        setup_logging(log_level=log_level, error_log=False)
    except ValueError as e:
        _fail(str(e))

    ctx.obj = CLIContext(
        config_path=config_path or settings.config_path,
        state_path=state_path or settings.state_path,
        log_level=log_level,
    )


@main.command()
@click.option("--interval", type=float, default=None, help="Poll interval in seconds")
@click.option("--timezone", default=None, help="Timezone for error log timestamps")
@click.option("--metrics/--no-metrics", default=False, help="Enable metrics server")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
@click.pass_obj
def run(
    ctx: CLIContext,
    interval: float | None,
    timezone: str | None,
    metrics: bool,
    metrics_port: int | None,
) -> None:
    """Poll all sources on a fixed interval until stopped."""
    from src.mirror.service import MirrorService

    if interval is not None and interval <= 0:
        _fail("--interval must be positive")

    sources_file = _load_config(ctx, timezone, error_log=True)
    store = _load_state(ctx)
    interval = interval or sources_file.global_settings.poll_interval_seconds

    async def run():
        collector = get_metrics()
        if metrics:
            collector.start_server(port=metrics_port)

        service = MirrorService(
            sources_file.sources,
            store,
            interval_seconds=interval,
            metrics=collector,
        )

        # Handle shutdown signals
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, lambda: asyncio.create_task(service.stop()))

        await service.start()

    asyncio.run(run())


@main.command("run-once")
@click.pass_obj
def run_once(ctx: CLIContext) -> None:
    """Reconcile every source once and print the outcome per source."""
    from src.mirror.service import MirrorService

    sources_file = _load_config(ctx, error_log=True)
    store = _load_state(ctx)

    async def run():
        service = MirrorService(sources_file.sources, store)
        return await service.run_once()

    results = asyncio.run(run())

    click.echo("\nCycle Results:")
    click.echo("-" * 40)
    for result in results:
        icon, color = _OUTCOME_STYLE[result.outcome]
        line = f"  {icon} {result.source}: {result.outcome.value}"
        if result.message_id:
            line += f" (message {result.message_id})"
        click.echo(click.style(line, fg=color))
    click.echo("-" * 40)

    if any(r.outcome is ReconcileOutcome.FAILED for r in results):
        click.echo(click.style("Some sources failed!", fg="red"))
        sys.exit(1)


@main.command()
@click.pass_obj
def status(ctx: CLIContext) -> None:
    """Show the persisted message state for each configured source."""
    sources_file = _load_config(ctx)
    store = _load_state(ctx)

    click.echo(f"\nState file: {store.path}")
    click.echo("-" * 40)
    for name in sources_file.names:
        state = store.get(name)
        if state is None:
            click.echo(f"  {name}: no state yet")
        elif state.message_id:
            click.echo(
                f"  {name}: message {state.message_id} "
                f"({len(state.last_content)} chars mirrored)"
            )
        else:
            click.echo(click.style(f"  {name}: no live message", fg="yellow"))

    orphaned = [name for name in store if name not in sources_file.names]
    if orphaned:
        click.echo("-" * 40)
        click.echo(click.style("Entries without a configured source:", fg="yellow"))
        for name in orphaned:
            click.echo(f"  {name}")


@main.command("check-config")
@click.pass_obj
def check_config(ctx: CLIContext) -> None:
    """Validate the sources file and list the configured sources."""
    sources_file = _load_config(ctx)
    settings = get_settings()
    global_settings = sources_file.global_settings

    interval = global_settings.poll_interval_seconds or settings.poll_interval_seconds
    click.echo(f"Timezone: {global_settings.timezone or settings.timezone}")
    click.echo(f"Poll interval: {interval:g}s")
    click.echo(f"Sources ({len(sources_file.sources)}):")
    for source in sources_file.sources:
        click.echo(f"  - {source.name}: {source.markdown_url}")
    click.echo(click.style("Configuration OK", fg="green"))


if __name__ == "__main__":
    main()
