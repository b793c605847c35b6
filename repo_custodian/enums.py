"""Enumerations shared across repo-custodian."""

from enum import Enum


class CommitState(str, Enum):
    """States accepted by the GitHub commit status API."""

    SUCCESS = "success"
    PENDING = "pending"
    FAILURE = "failure"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


class ReviewState(str, Enum):
    """Pull request review verdicts as reported by the reviews API.

    Webhook payloads report the same states in lowercase, so lookups go
    through :meth:`parse`.
    """

    APPROVED = "APPROVED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    COMMENTED = "COMMENTED"
    DISMISSED = "DISMISSED"
    PENDING = "PENDING"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str | None) -> "ReviewState | None":
        if not value:
            return None
        try:
            return cls(value.upper())
        except ValueError:
            return None


class LogFormat(str, Enum):
    """Renderers supported by :func:`configure_logging`."""

    JSON = "json"
    CONSOLE = "console"

    def __str__(self) -> str:
        return self.value
