"""Blocks non-patch pull requests while a patch release is pending.

A patch release is pending while an open issue carries both the ``release``
and ``patch release pending`` labels. During that window only pull requests
whose message has a patch-safe tag may merge; every other open pull request
gets a pending ``release-monitor`` status.

Publishing a minor or major release marks the open release issue as
pending, which starts the window (the "merge purifier").
"""

import re
from typing import Any

from repo_custodian.engine.context import EventContext
from repo_custodian.enums import CommitState
from repo_custodian.models.domain import CommitStatus
from repo_custodian.plugins.utils import effective_message, label_names, latest_sha, run_all

STATUS_CONTEXT = "release-monitor"
RELEASE_LABEL = "release"
PATCH_PENDING_LABEL = "patch release pending"

PATCH_SAFE_MESSAGE = re.compile(
    r"^(?:(?:Build|Chore|Docs|Fix|Upgrade)|(?:build|chore|docs|fix|ci|test|refactor|perf)(?:\([^)]*\))?):"
)
RELEASE_VERSION = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)")

NOT_PENDING_DESCRIPTION = "No patch release is pending"
PATCH_SAFE_DESCRIPTION = "This change is semver-patch"
PENDING_DESCRIPTION = "A patch release is pending"


def is_patch_safe(message: str) -> bool:
    return bool(PATCH_SAFE_MESSAGE.match(message))


def is_minor_or_major(tag_name: str) -> bool:
    """True for ``x.y.0`` versions."""
    match = RELEASE_VERSION.match(tag_name.strip())
    return match is not None and int(match.group(3)) == 0


async def patch_release_pending(ctx: EventContext) -> bool:
    pending = await ctx.github.list_issues(ctx.repo(), state="open", labels=[RELEASE_LABEL, PATCH_PENDING_LABEL])
    return bool(pending)


def status_for(sha: str, message: str, pending: bool) -> CommitStatus:
    if not pending:
        return CommitStatus(sha, CommitState.SUCCESS, NOT_PENDING_DESCRIPTION, STATUS_CONTEXT)
    if is_patch_safe(message):
        return CommitStatus(sha, CommitState.SUCCESS, PATCH_SAFE_DESCRIPTION, STATUS_CONTEXT)
    return CommitStatus(sha, CommitState.PENDING, PENDING_DESCRIPTION, STATUS_CONTEXT)


async def _update_pull(ctx: EventContext, pr: dict[str, Any], pending: bool) -> None:
    pull = ctx.issue(pr["number"])
    commits = await ctx.github.list_pull_commits(pull)
    sha = latest_sha(commits)
    if sha is None:
        return
    await ctx.github.create_commit_status(pull.repo, status_for(sha, effective_message(commits, pr), pending))


async def broadcast(ctx: EventContext) -> None:
    """Recompute the window and post a status on every open pull request."""
    pending = await patch_release_pending(ctx)
    pulls = await ctx.github.list_pull_requests(ctx.repo(), state="open")
    ctx.log.info("release_monitor_broadcast", pending=pending, pulls=len(pulls))
    await run_all(ctx.log, "release_status", (_update_pull(ctx, pr, pending) for pr in pulls))


async def on_issue_labeled(ctx: EventContext) -> None:
    label = (ctx.payload.get("label") or {}).get("name")
    if label == PATCH_PENDING_LABEL and RELEASE_LABEL in label_names(ctx.payload["issue"].get("labels")):
        await broadcast(ctx)


async def on_issue_closed(ctx: EventContext) -> None:
    if RELEASE_LABEL in label_names(ctx.payload["issue"].get("labels")):
        await broadcast(ctx)


async def on_pull_request(ctx: EventContext) -> None:
    await broadcast(ctx)


async def on_release_published(ctx: EventContext) -> None:
    release = ctx.payload["release"]
    if release.get("prerelease") or not is_minor_or_major(release.get("tag_name") or ""):
        return

    release_issues = await ctx.github.list_issues(ctx.repo(), state="open", labels=[RELEASE_LABEL])
    if not release_issues:
        ctx.log.info("release_issue_missing", tag=release.get("tag_name"))
        return

    await ctx.github.add_labels(ctx.issue(release_issues[0]["number"]), [PATCH_PENDING_LABEL])
    await broadcast(ctx)
