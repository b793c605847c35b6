"""Core domain models.

Payloads and API responses stay plain JSON dicts; these dataclasses only
cover the values the engine itself passes around.
"""

from dataclasses import dataclass, field
from typing import Any

from repo_custodian.enums import CommitState

SCHEDULE_EVENT = "schedule"
SCHEDULE_ACTION = "repository"


@dataclass(frozen=True)
class RepoRef:
    """Repository address."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, full_name: str) -> "RepoRef":
        owner, _, name = full_name.partition("/")
        if not owner or not name:
            raise ValueError(f"Expected owner/name, got: {full_name}")
        return cls(owner=owner, name=name)

    @classmethod
    def from_payload(cls, repository: dict[str, Any]) -> "RepoRef":
        return cls(owner=repository["owner"]["login"], name=repository["name"])

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class IssueRef:
    """Issue or pull request address. GitHub numbers both from one sequence."""

    repo: RepoRef
    number: int

    def __str__(self) -> str:
        return f"{self.repo.full_name}#{self.number}"


@dataclass(frozen=True)
class CommitStatus:
    """A commit status to post.

    GitHub keeps the last write per (sha, context); posting the same status
    twice is harmless.
    """

    sha: str
    state: CommitState
    description: str
    context: str
    target_url: str | None = None

    def to_payload(self) -> dict[str, Any]:
        # GitHub rejects descriptions longer than 140 characters
        payload: dict[str, Any] = {
            "state": str(self.state),
            "description": self.description[:140],
            "context": self.context,
        }
        if self.target_url:
            payload["target_url"] = self.target_url
        return payload


@dataclass(frozen=True)
class WebhookEvent:
    """A webhook delivery, or a synthetic ``schedule.repository`` event.

    Attributes:
        name: Event name from ``X-GitHub-Event`` (``issues``, ``status``...)
        action: ``payload["action"]`` when present
        payload: Decoded JSON body
        delivery_id: ``X-GitHub-Delivery`` header, when known
    """

    name: str
    action: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    delivery_id: str | None = None

    @classmethod
    def from_payload(cls, name: str, payload: dict[str, Any], delivery_id: str | None = None) -> "WebhookEvent":
        action = payload.get("action")
        return cls(
            name=name,
            action=action if isinstance(action, str) else None,
            payload=payload,
            delivery_id=delivery_id,
        )

    @classmethod
    def scheduled(cls, repo: RepoRef, installation_id: int | None = None) -> "WebhookEvent":
        """Synthetic event the sweep scheduler dispatches once per repository."""
        payload: dict[str, Any] = {
            "action": SCHEDULE_ACTION,
            "repository": {
                "name": repo.name,
                "full_name": repo.full_name,
                "owner": {"login": repo.owner},
            },
        }
        if installation_id is not None:
            payload["installation"] = {"id": installation_id}
        return cls(name=SCHEDULE_EVENT, action=SCHEDULE_ACTION, payload=payload)

    @property
    def qualified_name(self) -> str:
        return f"{self.name}.{self.action}" if self.action else self.name

    @property
    def installation_id(self) -> int | None:
        installation = self.payload.get("installation") or {}
        return installation.get("id")

    @property
    def repository(self) -> RepoRef | None:
        repository = self.payload.get("repository")
        if not repository:
            return None
        return RepoRef.from_payload(repository)
