"""Webhook HTTP server using aiohttp."""

from __future__ import annotations

from aiohttp import web

from fieldrelay.config import ServerConfig
from fieldrelay.core.pipeline import RelayPipeline
from fieldrelay.utils.logging import delivery_context, get_logger

log = get_logger(__name__)


class WebhookServer:
    """Receives GitHub project webhooks and hands each one to its route's pipeline."""

    def __init__(self, config: ServerConfig, pipelines: list[RelayPipeline]) -> None:
        self._config = config
        self._pipelines = {p.route.path: p for p in pipelines}
        self._runner: web.AppRunner | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if not self._pipelines:
            log.warning(
                "webhook_server_no_routes",
                msg="No routes configured; every delivery will get a 404.",
            )
        app = self.build_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.bind, self._config.port)
        await site.start()
        log.info(
            "webhook_server_started",
            bind=self._config.bind,
            port=self._config.port,
            routes=sorted(self._pipelines),
        )

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        log.info("webhook_server_stopped")

    # ------------------------------------------------------------------
    # App construction
    # ------------------------------------------------------------------

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/healthz", self._handle_health)
        for path in self._pipelines:
            app.router.add_post(path, self._handle_webhook)
        return app

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.Response(status=200, text="ok")

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        pipeline = self._pipelines.get(request.path)
        if pipeline is None:
            return web.Response(status=404, text="Not found")

        # Signature is checked against these exact bytes
        body = await request.read()
        signature = request.headers.get("X-Hub-Signature-256", "")
        delivery = request.headers.get("X-GitHub-Delivery", "")

        with delivery_context(pipeline.route.name, delivery):
            result = await pipeline.handle(body, signature)
            log.info(
                "webhook_handled",
                github_event=request.headers.get("X-GitHub-Event", ""),
                status=result.status,
            )
        return web.Response(status=result.status, text=result.message)
