"""GitHub App authentication using PyGithub.

PyGithub is synchronous; every call goes through :func:`_run_sync` so it
never blocks the event loop.
"""

import asyncio
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from typing import TypeVar

import httpx
import structlog
from github import Auth, GithubException, GithubIntegration  # type: ignore[import-not-found]

from repo_custodian.exceptions import AppAuthenticationError
from repo_custodian.models.domain import RepoRef

log = structlog.get_logger(__name__)

T = TypeVar("T")

# Refresh installation tokens this long before GitHub expires them
TOKEN_EXPIRY_MARGIN = timedelta(minutes=5)


async def _run_sync(func: Callable[[], T]) -> T:
    """Run a synchronous PyGithub call in a worker thread."""
    return await asyncio.to_thread(func)


class GitHubApp:
    """A GitHub App identity able to mint installation tokens."""

    def __init__(self, app_id: int, private_key: str, api_url: str = "https://api.github.com"):
        self.app_id = app_id
        self.api_url = api_url.rstrip("/")
        self._private_key = private_key
        self._integration: GithubIntegration | None = None
        self._tokens: dict[int, tuple[str, datetime]] = {}
        self._lock = asyncio.Lock()

    def _get_integration(self) -> GithubIntegration:
        if self._integration is None:
            auth = Auth.AppAuth(self.app_id, self._private_key)
            self._integration = GithubIntegration(auth=auth, base_url=self.api_url)
        return self._integration

    async def get_installation_token(self, installation_id: int) -> str:
        """Return a cached installation token, minting a new one near expiry.

        Raises:
            AppAuthenticationError: If GitHub refuses to issue the token
        """
        async with self._lock:
            cached = self._tokens.get(installation_id)
            if cached and cached[1] - TOKEN_EXPIRY_MARGIN > datetime.now(UTC):
                return cached[0]

            integration = self._get_integration()
            try:
                authorization = await _run_sync(lambda: integration.get_access_token(installation_id))
            except GithubException as e:
                log.error("installation_token_failed", installation_id=installation_id, status=e.status)
                raise AppAuthenticationError(
                    f"Cannot obtain token for installation {installation_id}: {e.status}",
                    installation_id=installation_id,
                ) from e

            expires_at = authorization.expires_at or datetime.now(UTC) + timedelta(hours=1)
            self._tokens[installation_id] = (authorization.token, expires_at)
            log.info("installation_token_issued", installation_id=installation_id, expires_at=expires_at.isoformat())
            return authorization.token

    async def list_installation_repositories(self) -> list[tuple[RepoRef, int]]:
        """Every repository the app is installed on, with its installation id."""
        integration = self._get_integration()

        def _list() -> list[tuple[RepoRef, int]]:
            repositories = []
            for installation in integration.get_installations():
                for repo in installation.get_repos():
                    repositories.append((RepoRef(owner=repo.owner.login, name=repo.name), installation.id))
            return repositories

        try:
            repositories = await _run_sync(_list)
        except GithubException as e:
            log.error("list_installations_failed", status=e.status)
            raise AppAuthenticationError(f"Cannot list app installations: {e.status}") from e

        log.info("installations_listed", repositories=len(repositories))
        return repositories


class InstallationTokenAuth(httpx.Auth):
    """httpx auth flow adding the current installation token to each request."""

    def __init__(self, app: GitHubApp, installation_id: int):
        self.app = app
        self.installation_id = installation_id

    async def async_auth_flow(self, request: httpx.Request) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self.app.get_installation_token(self.installation_id)
        request.headers["Authorization"] = f"Bearer {token}"
        yield request
