"""Periodic repository sweeps.

Each sweep dispatches a synthetic ``schedule.repository`` event for every
repository. Sweeps run one after another in a single task; the interval is
measured from the end of one sweep to the start of the next.
"""

import asyncio

import structlog

from repo_custodian.engine.dispatcher import EventDispatcher
from repo_custodian.models.domain import RepoRef, WebhookEvent
from repo_custodian.providers.factory import ClientFactory

log = structlog.get_logger(__name__)


class SweepScheduler:
    """Dispatches schedule events for installed repositories."""

    def __init__(self, dispatcher: EventDispatcher, clients: ClientFactory, interval_seconds: float):
        self.dispatcher = dispatcher
        self.clients = clients
        self.interval_seconds = interval_seconds

    async def sweep_once(self, only: RepoRef | None = None) -> int:
        """Sweep every repository (or just ``only``); returns how many were swept."""
        repositories = await self.clients.installed_repositories()
        if only is not None:
            repositories = [(repo, installation_id) for repo, installation_id in repositories if repo == only]
            if not repositories:
                # Token mode, or a repository outside the configured list
                repositories = [(only, None)]

        log.info("sweep_started", repositories=len(repositories))
        for repo, installation_id in repositories:
            result = await self.dispatcher.dispatch(WebhookEvent.scheduled(repo, installation_id))
            if not result.ok:
                log.warning("sweep_repository_failed", repository=repo.full_name, failed=sorted(result.failed))
        log.info("sweep_finished", repositories=len(repositories))
        return len(repositories)

    async def run_forever(self) -> None:
        """Sweep immediately, then every ``interval_seconds`` until cancelled."""
        while True:
            try:
                await self.sweep_once()
            except Exception as e:
                log.error("sweep_failed", error=str(e), exc_info=True)
            await asyncio.sleep(self.interval_seconds)
