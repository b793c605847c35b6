"""GitHub REST client built on httpx.

Responses are returned as decoded JSON. List endpoints go through
:meth:`GitHubClient.paginate`, which follows ``Link: rel="next"`` headers
until the last page.
"""

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from repo_custodian.exceptions import GitHubAPIError, RateLimitError, TransientAPIError
from repo_custodian.models.domain import CommitStatus, IssueRef, RepoRef
from repo_custodian.utils.retry import async_retry

log = structlog.get_logger(__name__)

PER_PAGE = 100

IDEMPOTENT_METHODS = frozenset({"GET", "PUT", "PATCH", "DELETE"})

_RETRYABLE = (TransientAPIError, httpx.TransportError)
# Failures where GitHub never acted on the request; safe to resend a POST
_RETRYABLE_UNSENT = (RateLimitError, httpx.ConnectError)


class GitHubClient:
    """Async GitHub REST client.

    Authenticates either with a static ``token`` or with an ``httpx.Auth``
    flow (GitHub App installation tokens).
    """

    def __init__(
        self,
        api_url: str = "https://api.github.com",
        token: str | None = None,
        auth: httpx.Auth | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize client.

        Args:
            api_url: REST API base URL (GitHub Enterprise uses ``https://host/api/v3``)
            token: Static token, mutually exclusive with ``auth``
            auth: Per-request authentication flow
            timeout: Request timeout in seconds
            transport: Custom transport, used by tests
        """
        self.api_url = api_url.rstrip("/")
        self.token = token.strip() if token else token
        self.auth = auth
        self.timeout = timeout
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        if self._http is not None:
            return
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "repo-custodian",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        self._http = httpx.AsyncClient(
            base_url=self.api_url,
            headers=headers,
            auth=self.auth,
            timeout=self.timeout,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5, keepalive_expiry=30.0),
            http2=True,
            transport=self._transport,
        )
        log.debug("github_client_connected", api_url=self.api_url)

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "GitHubClient":
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        """Send a request, retrying transient failures.

        ``POST`` creates comments, issues and statuses, so a 5xx or a read
        timeout is not retried for it: GitHub may already have acted.
        """
        if method in IDEMPOTENT_METHODS:
            return await self._send_idempotent(method, path, params, json)
        return await self._send_unsafe(method, path, params, json)

    @async_retry(max_attempts=3, backoff_factor=2.0, exceptions=_RETRYABLE)
    async def _send_idempotent(
        self, method: str, path: str, params: dict[str, Any] | None, json: Any
    ) -> httpx.Response:
        return await self._send(method, path, params, json)

    @async_retry(max_attempts=3, backoff_factor=2.0, exceptions=_RETRYABLE_UNSENT)
    async def _send_unsafe(
        self, method: str, path: str, params: dict[str, Any] | None, json: Any
    ) -> httpx.Response:
        return await self._send(method, path, params, json)

    async def _send(self, method: str, path: str, params: dict[str, Any] | None, json: Any) -> httpx.Response:
        if self._http is None:
            await self.connect()
        assert self._http is not None
        response = await self._http.request(method, path, params=params, json=json)
        self._raise_for_status(response, method, path)
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
        if response.is_success:
            return

        status = response.status_code
        message = f"GitHub API {method} {path} returned {status}"
        if status == 429 or (status == 403 and response.headers.get("x-ratelimit-remaining") == "0"):
            raise RateLimitError(message, status, method, path, response.text)
        if status >= 500:
            raise TransientAPIError(message, status, method, path, response.text)
        raise GitHubAPIError(message, status, method, path, response.text)

    async def paginate(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        item_key: str | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch every page of a list endpoint.

        Args:
            path: Endpoint path
            params: Query parameters for the first page
            item_key: Key holding the items when the endpoint wraps them
                (``items`` for search, ``statuses`` for combined status)

        Returns:
            All items, in API order
        """
        items: list[dict[str, Any]] = []
        url: str | None = path
        query: dict[str, Any] | None = {"per_page": PER_PAGE, **(params or {})}
        while url:
            response = await self._request("GET", url, params=query)
            data = response.json()
            items.extend(data[item_key] if item_key else data)
            next_link = response.links.get("next")
            url = next_link["url"] if next_link else None
            # The next link already carries the query string
            query = None
        return items

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    async def get_issue(self, issue: IssueRef) -> dict[str, Any]:
        log.debug("get_issue", issue=str(issue))
        response = await self._request("GET", _issue_path(issue))
        return response.json()

    async def update_issue(self, issue: IssueRef, **fields: Any) -> dict[str, Any]:
        log.info("update_issue", issue=str(issue), fields=sorted(fields))
        response = await self._request("PATCH", _issue_path(issue), json=fields)
        return response.json()

    async def close_issue(self, issue: IssueRef) -> dict[str, Any]:
        return await self.update_issue(issue, state="closed")

    async def create_issue(
        self,
        repo: RepoRef,
        title: str,
        body: str,
        labels: list[str] | None = None,
    ) -> dict[str, Any]:
        log.info("create_issue", repo=repo.full_name, title=title)
        data: dict[str, Any] = {"title": title, "body": body}
        if labels:
            data["labels"] = labels
        response = await self._request("POST", f"{_repo_path(repo)}/issues", json=data)
        return response.json()

    async def list_issues(
        self,
        repo: RepoRef,
        state: str = "open",
        labels: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """List issues (pull requests included, as GitHub does)."""
        params: dict[str, Any] = {"state": state}
        if labels:
            params["labels"] = ",".join(labels)
        return await self.paginate(f"{_repo_path(repo)}/issues", params=params)

    async def add_labels(self, issue: IssueRef, labels: list[str]) -> list[dict[str, Any]]:
        log.info("add_labels", issue=str(issue), labels=labels)
        response = await self._request("POST", f"{_issue_path(issue)}/labels", json={"labels": labels})
        return response.json()

    async def remove_label(self, issue: IssueRef, name: str) -> None:
        """Remove a label; a label that is not on the issue is not an error."""
        log.info("remove_label", issue=str(issue), label=name)
        try:
            await self._request("DELETE", f"{_issue_path(issue)}/labels/{quote(name, safe='')}")
        except GitHubAPIError as e:
            if not e.not_found:
                raise
            log.debug("remove_label_absent", issue=str(issue), label=name)

    async def add_assignees(self, issue: IssueRef, assignees: list[str]) -> dict[str, Any]:
        log.info("add_assignees", issue=str(issue), assignees=assignees)
        response = await self._request("POST", f"{_issue_path(issue)}/assignees", json={"assignees": assignees})
        return response.json()

    async def lock_issue(self, issue: IssueRef) -> None:
        log.info("lock_issue", issue=str(issue))
        await self._request("PUT", f"{_issue_path(issue)}/lock")

    async def list_issue_events(self, issue: IssueRef) -> list[dict[str, Any]]:
        return await self.paginate(f"{_issue_path(issue)}/events")

    async def search_issues(self, query: str) -> list[dict[str, Any]]:
        log.debug("search_issues", query=query)
        return await self.paginate("/search/issues", params={"q": query}, item_key="items")

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def list_comments(self, issue: IssueRef) -> list[dict[str, Any]]:
        return await self.paginate(f"{_issue_path(issue)}/comments")

    async def create_comment(self, issue: IssueRef, body: str) -> dict[str, Any]:
        log.info("create_comment", issue=str(issue))
        response = await self._request("POST", f"{_issue_path(issue)}/comments", json={"body": body})
        return response.json()

    async def delete_comment(self, repo: RepoRef, comment_id: int) -> None:
        log.info("delete_comment", repo=repo.full_name, comment_id=comment_id)
        await self._request("DELETE", f"{_repo_path(repo)}/issues/comments/{comment_id}")

    # ------------------------------------------------------------------
    # Repositories and pull requests
    # ------------------------------------------------------------------

    async def list_repo_labels(self, repo: RepoRef) -> list[dict[str, Any]]:
        return await self.paginate(f"{_repo_path(repo)}/labels")

    async def list_pull_requests(self, repo: RepoRef, state: str = "open") -> list[dict[str, Any]]:
        return await self.paginate(f"{_repo_path(repo)}/pulls", params={"state": state})

    async def list_pull_commits(self, pull: IssueRef) -> list[dict[str, Any]]:
        return await self.paginate(f"{_repo_path(pull.repo)}/pulls/{pull.number}/commits")

    async def list_pull_files(self, pull: IssueRef) -> list[dict[str, Any]]:
        return await self.paginate(f"{_repo_path(pull.repo)}/pulls/{pull.number}/files")

    async def list_pull_reviews(self, pull: IssueRef) -> list[dict[str, Any]]:
        return await self.paginate(f"{_repo_path(pull.repo)}/pulls/{pull.number}/reviews")

    # ------------------------------------------------------------------
    # Commit statuses
    # ------------------------------------------------------------------

    async def get_combined_status(self, repo: RepoRef, ref: str) -> dict[str, Any]:
        """Combined status of ``ref``; ``statuses`` holds one entry per context."""
        response = await self._request(
            "GET", f"{_repo_path(repo)}/commits/{ref}/status", params={"per_page": PER_PAGE}
        )
        return response.json()

    async def create_commit_status(self, repo: RepoRef, status: CommitStatus) -> dict[str, Any]:
        log.info(
            "create_commit_status",
            repo=repo.full_name,
            sha=status.sha,
            context=status.context,
            state=str(status.state),
        )
        response = await self._request(
            "POST", f"{_repo_path(repo)}/statuses/{status.sha}", json=status.to_payload()
        )
        return response.json()

    # ------------------------------------------------------------------
    # Organizations and users
    # ------------------------------------------------------------------

    async def list_org_teams(self, org: str) -> list[dict[str, Any]]:
        return await self.paginate(f"/orgs/{org}/teams")

    async def list_team_members(self, org: str, team_slug: str) -> list[dict[str, Any]]:
        return await self.paginate(f"/orgs/{org}/teams/{team_slug}/members")

    async def get_user(self, login: str) -> dict[str, Any]:
        response = await self._request("GET", f"/users/{login}")
        return response.json()


def _repo_path(repo: RepoRef) -> str:
    return f"/repos/{repo.owner}/{repo.name}"


def _issue_path(issue: IssueRef) -> str:
    return f"{_repo_path(issue.repo)}/issues/{issue.number}"
