"""Webhook server receiving GitHub deliveries."""

import asyncio
import contextlib
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException, Request

from repo_custodian.config.settings import CustodianSettings
from repo_custodian.engine.dispatcher import EventDispatcher
from repo_custodian.engine.scheduler import SweepScheduler
from repo_custodian.exceptions import RepoCustodianError
from repo_custodian.models.domain import WebhookEvent
from repo_custodian.plugins import build_dispatcher
from repo_custodian.providers.factory import ClientFactory
from repo_custodian.utils.signatures import verify_signature

log = structlog.get_logger(__name__)


def create_app(settings: CustodianSettings, dispatcher: EventDispatcher | None = None) -> FastAPI:
    """Build the webhook application.

    Args:
        settings: Service settings
        dispatcher: Pre-built dispatcher. When omitted, the app builds its own
            dispatcher and (if enabled) the sweep scheduler on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        clients: ClientFactory | None = None
        sweeper: asyncio.Task | None = None
        if app.state.dispatcher is None:
            clients = ClientFactory(settings)
            app.state.dispatcher = build_dispatcher(settings, clients)
            if settings.scheduler.enabled:
                scheduler = SweepScheduler(app.state.dispatcher, clients, settings.scheduler.interval_seconds)
                sweeper = asyncio.create_task(scheduler.run_forever())

        log.info("webhook_server_started", path=settings.webhook.path, scheduler=sweeper is not None)
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweeper
            if clients is not None:
                await clients.close()
            log.info("webhook_server_stopped")

    app = FastAPI(title="repo-custodian webhook server", lifespan=lifespan)
    app.state.settings = settings
    app.state.dispatcher = dispatcher

    @app.post(settings.webhook.path)
    async def github_webhook(request: Request) -> dict:
        """Verify, decode and dispatch one GitHub delivery."""
        event_name = request.headers.get("X-GitHub-Event")
        delivery_id = request.headers.get("X-GitHub-Delivery")
        if not event_name:
            raise HTTPException(status_code=400, detail="Missing X-GitHub-Event header")

        body = await request.body()
        secret = settings.webhook.secret.get_secret_value()
        if not verify_signature(secret, body, request.headers.get("X-Hub-Signature-256")):
            log.warning("webhook_signature_invalid", event_type=event_name, delivery=delivery_id)
            raise HTTPException(status_code=401, detail="Invalid signature")

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Body is not valid JSON") from e
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Body must be a JSON object")

        log.info("webhook_received", event_type=event_name, delivery=delivery_id)
        if event_name == "ping":
            return {"status": "pong"}

        current = request.app.state.dispatcher
        if current is None:
            raise HTTPException(status_code=503, detail="Dispatcher not ready")

        event = WebhookEvent.from_payload(event_name, payload, delivery_id)
        try:
            result = await current.dispatch(event)
        except RepoCustodianError as e:
            log.error("webhook_processing_failed", error=e.message, exc_info=True)
            raise HTTPException(status_code=422, detail=e.message) from e
        except Exception as e:
            log.error("webhook_processing_unexpected", error=str(e), exc_info=True)
            raise HTTPException(status_code=500, detail="Internal server error") from e

        return {
            "status": "success",
            "event": result.event,
            "handled": result.handled,
            "failed": sorted(result.failed),
        }

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "healthy", "service": "repo-custodian"}

    return app
