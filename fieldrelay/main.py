"""fieldrelay entry point: wires clients, pipelines and the server together."""

from __future__ import annotations

import asyncio
import signal
import sys
from pathlib import Path

import click

from fieldrelay import __version__
from fieldrelay.config import RouteConfig, Settings, load_settings
from fieldrelay.core.pipeline import RelayPipeline
from fieldrelay.github.client import GitHubClient
from fieldrelay.notifiers import DispatchNotifier, Notifier, SlackNotifier
from fieldrelay.utils.logging import get_logger, setup_logging
from fieldrelay.webhooks.handlers import compute_github_signature
from fieldrelay.webhooks.server import WebhookServer

log = get_logger(__name__)


class FieldRelay:
    """Main application: one GitHub client, one notifier per route, one server."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.github = GitHubClient(settings.github)
        self.slack_notifiers: list[SlackNotifier] = []
        self.pipelines = [self._build_pipeline(route) for route in settings.routes]
        self.server = WebhookServer(settings.server, self.pipelines)

    def _build_pipeline(self, route: RouteConfig) -> RelayPipeline:
        notifier: Notifier
        if route.notifier == "dispatch":
            notifier = DispatchNotifier(
                self.github, route.dispatch_repository, route.dispatch_event_type
            )
        else:
            slack = SlackNotifier(
                self.settings.slack,
                quote_title=route.quote_title,
                member_review_status=route.member_review_status,
                tf_review_status=route.tf_review_status,
            )
            self.slack_notifiers.append(slack)
            notifier = slack
        return RelayPipeline(route, self.settings.github.webhook_secret, self.github, notifier)

    async def start(self) -> None:
        log.info("fieldrelay_starting", version=__version__, routes=len(self.pipelines))
        if not self.settings.github.webhook_secret:
            log.warning(
                "webhook_secret_missing",
                msg="No webhook secret configured; every delivery will get a 500.",
            )
        await self.server.start()
        log.info("fieldrelay_ready")

    async def stop(self) -> None:
        log.info("fieldrelay_stopping")
        await self.server.stop()
        for slack in self.slack_notifiers:
            await slack.close()
        await self.github.close()
        log.info("fieldrelay_stopped")


async def run(settings: Settings) -> None:
    app = FieldRelay(settings)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        log.info("shutdown_signal")
        stop_event.set()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

    await app.start()

    try:
        if sys.platform == "win32":
            while not stop_event.is_set():
                await asyncio.sleep(1)
        else:
            await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await app.stop()


@click.group()
@click.version_option(__version__, prog_name="fieldrelay")
def cli() -> None:
    """Relay GitHub Projects v2 field changes to Slack or repository_dispatch."""


@cli.command()
@click.option("--config", "config_path", default=None, help="Path to config YAML file")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
def serve(config_path: str | None, log_level: str | None) -> None:
    """Start the webhook server."""
    settings = load_settings(config_path)
    if log_level:
        settings.log_level = log_level
    setup_logging(level=settings.log_level, json_output=settings.log_json)
    asyncio.run(run(settings))


@cli.command()
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--secret",
    envvar="FIELDRELAY_GITHUB__WEBHOOK_SECRET",
    required=True,
    help="Webhook secret (defaults to FIELDRELAY_GITHUB__WEBHOOK_SECRET)",
)
def sign(payload_file: Path, secret: str) -> None:
    """Print the X-Hub-Signature-256 header value for PAYLOAD_FILE."""
    click.echo(compute_github_signature(payload_file.read_bytes(), secret))


if __name__ == "__main__":
    cli()
