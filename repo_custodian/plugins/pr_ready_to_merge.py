"""Labels pull requests that are approved and have green statuses.

Nothing is stored: every status or review event recomputes the label from
the current reviews and combined status.
"""

from typing import Any

from repo_custodian.engine.context import EventContext
from repo_custodian.enums import CommitState, ReviewState
from repo_custodian.models.domain import IssueRef
from repo_custodian.plugins.utils import latest_sha

READY_LABEL = "ready to merge"

VERDICTS = (ReviewState.APPROVED, ReviewState.CHANGES_REQUESTED)


def is_approved(reviews: list[dict[str, Any]]) -> bool:
    """At least one reviewer's latest approve/request-changes verdict is an approval.

    Reviews are ordered by submission time; the sort is stable, so API order
    breaks ties.
    """
    ordered = sorted(reviews, key=lambda review: review.get("submitted_at") or "")
    latest: dict[str, ReviewState] = {}
    for review in ordered:
        state = ReviewState.parse(review.get("state"))
        user = (review.get("user") or {}).get("login")
        if state in VERDICTS and user:
            latest[user] = state
    return ReviewState.APPROVED in latest.values()


async def _find_pull_for_sha(ctx: EventContext, sha: str) -> IssueRef | None:
    repo = ctx.repo()
    results = await ctx.github.search_issues(f"{sha} repo:{repo.full_name} is:pr")
    if len(results) != 1:
        ctx.log.debug("ready_to_merge_ambiguous_sha", sha=sha, matches=len(results))
        return None
    return ctx.issue(results[0]["number"])


async def _statuses_green(ctx: EventContext, pull: IssueRef) -> bool:
    commits = await ctx.github.list_pull_commits(pull)
    sha = latest_sha(commits)
    if sha is None:
        return False
    combined = await ctx.github.get_combined_status(pull.repo, sha)
    if not combined.get("statuses"):
        return True
    return combined.get("state") == str(CommitState.SUCCESS)


async def on_status(ctx: EventContext) -> None:
    state = ctx.payload.get("state")
    if state == str(CommitState.PENDING):
        return

    pull = await _find_pull_for_sha(ctx, ctx.payload["sha"])
    if pull is None:
        return

    if state == str(CommitState.SUCCESS):
        reviews = await ctx.github.list_pull_reviews(pull)
        if is_approved(reviews):
            await ctx.github.add_labels(pull, [READY_LABEL])
    else:
        await ctx.github.remove_label(pull, READY_LABEL)


async def on_review(ctx: EventContext) -> None:
    pull = ctx.issue()
    state = ReviewState.parse(ctx.payload["review"].get("state"))
    if state is not ReviewState.APPROVED:
        await ctx.github.remove_label(pull, READY_LABEL)
        return

    if await _statuses_green(ctx, pull):
        await ctx.github.add_labels(pull, [READY_LABEL])
