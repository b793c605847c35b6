"""Closes stale issues during the periodic sweep.

Repositories opt in by creating the ``auto closed`` label. Only issues
nobody has claimed (no assignee, milestone or project) are considered:

- accepted issues older than 90 days with no activity for 30 days;
- unaccepted issues that are not questions, inactive for 30 days;
- unaccepted questions, inactive for 30 days.
"""

import asyncio
from datetime import UTC, date, datetime, timedelta

from repo_custodian.engine.context import EventContext
from repo_custodian.models.domain import IssueRef, RepoRef
from repo_custodian.plugins.utils import hidden_tag, label_names, run_all

AUTO_CLOSE_LABEL = "auto closed"
ACCEPTED_AGE_DAYS = 90
INACTIVITY_DAYS = 30

_UNCLAIMED = "is:open is:issue repo:{repo} no:assignee no:milestone no:project"

ACCEPTED_MESSAGE = f"""Unfortunately, it looks like there wasn't enough interest from the team
or community to implement this change. While we wish we'd be able to
accommodate everyone's requests, we do need to prioritize. We've found
that accepted issues failing to be implemented after {ACCEPTED_AGE_DAYS} days tend to
never be implemented, and as such, we close those issues.
This doesn't mean the idea isn't interesting or useful, just that it's
not something the team can commit to.

Thanks for contributing and we appreciate your understanding.

{hidden_tag("auto-close")}
"""

UNACCEPTED_MESSAGE = f"""Unfortunately, it looks like there wasn't enough interest from the team
or community to implement this change. While we wish we'd be able to
accommodate everyone's requests, we do need to prioritize. We've found
that issues failing to reach accepted status after {INACTIVITY_DAYS} days tend to
never be accepted, and as such, we close those issues.
This doesn't mean the idea isn't interesting or useful, just that it's
not something the team can commit to.

Thanks for contributing and we appreciate your understanding.

{hidden_tag("auto-close")}
"""

QUESTION_MESSAGE = f"""It looks like the conversation is stalled here. As this is a question rather
than an action item, I'm closing the issue. If you still need help, please
open a new issue with more details. Thanks!

{hidden_tag("auto-close")}
"""


def _cutoff(today: date, days: int) -> str:
    return (today - timedelta(days=days)).isoformat()


def build_queries(repo: RepoRef, today: date) -> list[tuple[str, str]]:
    """``(search query, closing comment)`` pairs for the three stale buckets."""
    unclaimed = _UNCLAIMED.format(repo=repo.full_name)
    inactive = f"updated:<{_cutoff(today, INACTIVITY_DAYS)}"
    return [
        (
            f"{unclaimed} label:accepted created:<{_cutoff(today, ACCEPTED_AGE_DAYS)} {inactive}",
            ACCEPTED_MESSAGE,
        ),
        (f"{unclaimed} -label:accepted -label:question {inactive}", UNACCEPTED_MESSAGE),
        (f"{unclaimed} -label:accepted label:question {inactive}", QUESTION_MESSAGE),
    ]


async def _close(ctx: EventContext, issue: IssueRef, message: str) -> None:
    await asyncio.gather(
        ctx.github.close_issue(issue),
        ctx.github.add_labels(issue, [AUTO_CLOSE_LABEL]),
        ctx.github.create_comment(issue, message),
    )


async def close_stale_issues(ctx: EventContext) -> None:
    repo = ctx.repo()
    if AUTO_CLOSE_LABEL not in label_names(await ctx.github.list_repo_labels(repo)):
        return

    queries = build_queries(repo, datetime.now(UTC).date())
    results = await asyncio.gather(*(ctx.github.search_issues(query) for query, _ in queries))

    closes = []
    for (query, message), issues in zip(queries, results, strict=True):
        ctx.log.info("auto_close_candidates", query=query, count=len(issues))
        closes.extend(_close(ctx, ctx.issue(issue["number"]), message) for issue in issues)
    await run_all(ctx.log, "auto_close", closes)
