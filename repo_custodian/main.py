"""CLI entry point for repo-custodian."""

import asyncio
import json
import sys
from pathlib import Path

import click
import structlog

from repo_custodian.config.settings import CustodianSettings, load_settings
from repo_custodian.engine.dispatcher import DispatchResult
from repo_custodian.engine.scheduler import SweepScheduler
from repo_custodian.exceptions import ConfigurationError, RepoCustodianError
from repo_custodian.models.domain import RepoRef, WebhookEvent
from repo_custodian.plugins import REGISTRY, build_dispatcher
from repo_custodian.providers.factory import ClientFactory
from repo_custodian.utils.logging_config import configure_logging

log = structlog.get_logger(__name__)

COMMANDS_WITHOUT_CONFIG = ["plugins"]


@click.group()
@click.option("--config", default=None, help="Path to YAML configuration file (default: environment only)")
@click.option("--log-level", default=None, help="Logging level (overrides configuration)")
@click.pass_context
def cli(ctx: click.Context, config: str | None, log_level: str | None) -> None:
    """repo-custodian: GitHub repository maintenance bot."""
    configure_logging(log_level or "INFO")

    if ctx.invoked_subcommand in COMMANDS_WITHOUT_CONFIG:
        ctx.obj = {"settings": None}
        return

    try:
        settings = load_settings(config)
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("config_error", exc_info=True)
        sys.exit(1)

    configure_logging(log_level or settings.log_level, settings.log_format)
    ctx.obj = {"settings": settings}


@cli.command()
@click.option("--host", default=None, help="Bind address (overrides webhook.host)")
@click.option("--port", type=int, default=None, help="Port (overrides webhook.port)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Run the webhook server and the sweep scheduler."""
    import uvicorn

    from repo_custodian.webhook_server import create_app

    settings: CustodianSettings = ctx.obj["settings"]
    uvicorn.run(
        create_app(settings),
        host=host or settings.webhook.host,
        port=port or settings.webhook.port,
    )


@cli.command()
@click.option("--repo", "repo_name", default=None, help="Sweep only this owner/name repository")
@click.pass_context
def sweep(ctx: click.Context, repo_name: str | None) -> None:
    """Run one sweep of the scheduled plugins."""
    try:
        only = RepoRef.parse(repo_name) if repo_name else None
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--repo") from e

    try:
        count = asyncio.run(_sweep(ctx.obj["settings"], only))
    except RepoCustodianError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("sweep_error", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)

    click.echo(f"Swept {count} repositories")


@cli.command()
@click.option("--event", "event_name", required=True, help="Event name, as in X-GitHub-Event")
@click.option(
    "--payload",
    "payload_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON payload file",
)
@click.pass_context
def replay(ctx: click.Context, event_name: str, payload_path: Path) -> None:
    """Dispatch a saved webhook payload without the HTTP server."""
    try:
        payload = json.loads(payload_path.read_text())
    except ValueError as e:
        click.echo(f"Error: {payload_path} is not valid JSON: {e}", err=True)
        sys.exit(1)

    event = WebhookEvent.from_payload(event_name, payload)
    try:
        result = asyncio.run(_replay(ctx.obj["settings"], event))
    except RepoCustodianError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("replay_error", exc_info=True)
        sys.exit(1)

    for handler in result.handled:
        click.echo(f"ok      {handler}")
    for handler, error in result.failed.items():
        click.echo(f"failed  {handler}: {error}")
    if not result.handled and not result.failed:
        click.echo(f"No handler subscribed to {event.qualified_name}")
    if result.failed:
        sys.exit(1)


@cli.command()
def plugins() -> None:
    """List plugins and the events they handle."""
    for registration in REGISTRY:
        click.echo(f"{registration.plugin:<20} {registration.handler.__name__:<22} {', '.join(registration.events)}")


async def _sweep(settings: CustodianSettings, only: RepoRef | None) -> int:
    clients = ClientFactory(settings)
    try:
        dispatcher = build_dispatcher(settings, clients)
        scheduler = SweepScheduler(dispatcher, clients, settings.scheduler.interval_seconds)
        return await scheduler.sweep_once(only)
    finally:
        await clients.close()


async def _replay(settings: CustodianSettings, event: WebhookEvent) -> DispatchResult:
    clients = ClientFactory(settings)
    try:
        return await build_dispatcher(settings, clients).dispatch(event)
    finally:
        await clients.close()


if __name__ == "__main__":
    cli()
