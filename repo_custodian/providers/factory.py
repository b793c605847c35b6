"""Factory handing out authenticated GitHub clients."""

import structlog

from repo_custodian.config.settings import CustodianSettings
from repo_custodian.exceptions import ConfigurationError
from repo_custodian.models.domain import RepoRef
from repo_custodian.providers.github_app import GitHubApp, InstallationTokenAuth
from repo_custodian.providers.github_rest import GitHubClient

log = structlog.get_logger(__name__)


class ClientFactory:
    """Builds and caches one :class:`GitHubClient` per auth identity.

    Token mode shares a single client. App mode keeps one client per
    installation; its auth flow refreshes tokens as they expire.
    """

    def __init__(self, settings: CustodianSettings):
        self.settings = settings
        github = settings.github
        self._app: GitHubApp | None = None
        if github.uses_app_auth:
            assert github.app_id is not None and github.private_key is not None
            self._app = GitHubApp(github.app_id, github.private_key.get_secret_value(), github.api_url)
        self._clients: dict[int | None, GitHubClient] = {}

    async def client_for(self, installation_id: int | None) -> GitHubClient:
        """Client authenticated for ``installation_id``.

        Raises:
            ConfigurationError: In app mode, when the event has no installation
        """
        github = self.settings.github
        key = None if self._app is None else installation_id
        if key in self._clients:
            return self._clients[key]

        if self._app is None:
            assert github.token is not None
            client = GitHubClient(github.api_url, token=github.token.get_secret_value(), timeout=github.timeout)
        elif installation_id is None:
            raise ConfigurationError("Event carries no installation id; cannot authenticate as a GitHub App")
        else:
            auth = InstallationTokenAuth(self._app, installation_id)
            client = GitHubClient(github.api_url, auth=auth, timeout=github.timeout)

        await client.connect()
        self._clients[key] = client
        log.debug("github_client_created", installation_id=installation_id)
        return client

    async def installed_repositories(self) -> list[tuple[RepoRef, int | None]]:
        """Repositories swept by the scheduler."""
        if self._app is not None:
            return list(await self._app.list_installation_repositories())
        return [(RepoRef.parse(name), None) for name in self.settings.scheduler.repositories]

    async def close(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
