"""Domain models for repo-custodian.

Key Models:
    - WebhookEvent: One webhook delivery or synthetic schedule event
    - RepoRef / IssueRef: Addresses for REST calls
    - CommitStatus: A status to post on a commit
"""

from repo_custodian.models.domain import CommitStatus, IssueRef, RepoRef, WebhookEvent

__all__ = ["CommitStatus", "IssueRef", "RepoRef", "WebhookEvent"]
