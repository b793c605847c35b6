"""Pytest configuration and shared fixtures."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from repo_custodian.config.settings import CustodianSettings
from repo_custodian.engine.context import EventContext
from repo_custodian.models.domain import WebhookEvent
from repo_custodian.providers.github_rest import GitHubClient

OWNER = "test-owner"
REPO = "test-repo"


@pytest.fixture
def settings() -> CustodianSettings:
    """Token-mode settings with a known bot account."""
    return CustodianSettings(
        github={"token": "ghp_test_token"},
        webhook={"secret": "webhook-secret"},
        scheduler={"enabled": False, "repositories": [f"{OWNER}/{REPO}"]},
        bot_account_name="custodian-bot",
    )


@pytest.fixture
def github() -> AsyncMock:
    """GitHubClient double; read methods return empty results by default."""
    client = AsyncMock(spec=GitHubClient)
    for name in (
        "list_issues",
        "search_issues",
        "list_comments",
        "list_issue_events",
        "list_repo_labels",
        "list_pull_requests",
        "list_pull_commits",
        "list_pull_files",
        "list_pull_reviews",
        "list_org_teams",
        "list_team_members",
    ):
        getattr(client, name).return_value = []
    client.get_combined_status.return_value = {"state": "pending", "statuses": []}
    client.get_issue.return_value = {"state": "open", "labels": []}
    return client


def _repository_payload() -> dict[str, Any]:
    return {
        "name": REPO,
        "full_name": f"{OWNER}/{REPO}",
        "owner": {"login": OWNER},
        "html_url": f"https://github.com/{OWNER}/{REPO}",
    }


def _pull_request_payload(number: int = 7, title: str = "fix: handle empty input", **extra: Any) -> dict[str, Any]:
    pr = {
        "number": number,
        "title": title,
        "body": "",
        "labels": [],
        "user": {"login": "contributor"},
        "head": {"sha": "head-sha"},
        "html_url": f"https://github.com/{OWNER}/{REPO}/pull/{number}",
    }
    pr.update(extra)
    return pr


def _commit(sha: str, message: str) -> dict[str, Any]:
    return {"sha": sha, "commit": {"message": message}}


@pytest.fixture
def make_context(settings: CustodianSettings, github: AsyncMock):
    """Build an EventContext for ``name`` / ``payload`` around the github double."""

    def _make(name: str, payload: dict[str, Any]) -> EventContext:
        payload = {"repository": _repository_payload(), "sender": {"login": "sender-user"}, **payload}
        event = WebhookEvent.from_payload(name, payload, delivery_id="delivery-1")
        return EventContext(event=event, github=github, settings=settings, log=MagicMock())

    return _make


@pytest.fixture
def pull_request():
    """Factory for pull_request payload objects."""
    return _pull_request_payload


@pytest.fixture
def commit():
    """Factory for entries of the PR commits listing."""
    return _commit
