"""Per-event context handed to plugin handlers."""

from dataclasses import dataclass
from typing import Any

from repo_custodian.config.settings import CustodianSettings
from repo_custodian.models.domain import IssueRef, RepoRef, WebhookEvent
from repo_custodian.providers.github_rest import GitHubClient


@dataclass
class EventContext:
    """Everything a handler may use while processing one event.

    Attributes:
        event: The delivery being handled
        github: Client authenticated for the event's installation
        settings: Service settings
        log: structlog logger bound with delivery, event and repository
    """

    event: WebhookEvent
    github: GitHubClient
    settings: CustodianSettings
    log: Any

    @property
    def payload(self) -> dict[str, Any]:
        return self.event.payload

    @property
    def sender_login(self) -> str | None:
        return (self.payload.get("sender") or {}).get("login")

    def repo(self) -> RepoRef:
        repo = self.event.repository
        if repo is None:
            raise ValueError(f"{self.event.qualified_name} payload has no repository")
        return repo

    def issue(self, number: int | None = None) -> IssueRef:
        """Reference to the event's issue or pull request, or to ``number``."""
        if number is None:
            for key in ("issue", "pull_request"):
                subject = self.payload.get(key)
                if subject and "number" in subject:
                    number = subject["number"]
                    break
            else:
                number = self.payload.get("number")
        if number is None:
            raise ValueError(f"{self.event.qualified_name} payload has no issue number")
        return IssueRef(repo=self.repo(), number=int(number))
