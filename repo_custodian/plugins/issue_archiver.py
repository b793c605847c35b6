"""Locks issues that have been closed for more than 180 days.

Repositories opt in by creating the ``archived due to age`` label.
"""

import asyncio
from datetime import UTC, date, datetime, timedelta

from repo_custodian.engine.context import EventContext
from repo_custodian.models.domain import IssueRef, RepoRef
from repo_custodian.plugins.utils import label_names, run_all

ARCHIVED_LABEL = "archived due to age"
ARCHIVE_AFTER_DAYS = 180


def build_query(repo: RepoRef, today: date) -> str:
    cutoff = (today - timedelta(days=ARCHIVE_AFTER_DAYS)).isoformat()
    return f'is:closed repo:{repo.full_name} -label:"{ARCHIVED_LABEL}" closed:<{cutoff}'


async def _archive(ctx: EventContext, issue: IssueRef) -> None:
    await asyncio.gather(ctx.github.lock_issue(issue), ctx.github.add_labels(issue, [ARCHIVED_LABEL]))


async def archive_old_issues(ctx: EventContext) -> None:
    repo = ctx.repo()
    if ARCHIVED_LABEL not in label_names(await ctx.github.list_repo_labels(repo)):
        return

    results = await ctx.github.search_issues(build_query(repo, datetime.now(UTC).date()))
    unlocked = [issue for issue in results if not issue.get("locked")]
    ctx.log.info("archive_candidates", found=len(results), unlocked=len(unlocked))
    await run_all(ctx.log, "archive", (_archive(ctx, ctx.issue(issue["number"])) for issue in unlocked))
