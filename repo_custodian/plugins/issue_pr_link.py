"""Comments on issues that a new pull request says it fixes.

References such as ``Fixes #12`` or ``resolves: #7`` are collected from the
pull request title. At most three issues are commented on, and an
issue already linked to the same pull request is left alone.
"""

import re
from typing import Any

from repo_custodian.engine.context import EventContext
from repo_custodian.models.domain import IssueRef
from repo_custodian.plugins.utils import hidden_tag, is_bot_comment

LINK_TAG = "issue-pr-link"
MAX_LINKED_ISSUES = 3

ISSUE_REFERENCE = re.compile(r"\b(?:fix|fixes|close|closes|resolve|resolves):?[ \t]+#(\d+)\b", re.IGNORECASE)


def referenced_issues(title: str | None) -> list[int]:
    """Issue numbers in first-appearance order, deduplicated and capped."""
    numbers: list[int] = []
    for match in ISSUE_REFERENCE.finditer(title or ""):
        number = int(match.group(1))
        if number not in numbers:
            numbers.append(number)
    return numbers[:MAX_LINKED_ISSUES]


def comment_body(pr_url: str, author: str) -> str:
    return f"👋 Hi! This issue is being addressed in pull request {pr_url}. Thanks, @{author}!\n\n{hidden_tag(LINK_TAG)}"


def already_linked(comments: list[dict[str, Any]], pr_number: int, bot_account_name: str | None) -> bool:
    marker = hidden_tag(LINK_TAG)
    pull_link = re.compile(rf"/pull/{pr_number}(?!\d)")
    return any(
        is_bot_comment(comment, bot_account_name)
        and marker in (comment.get("body") or "")
        and pull_link.search(comment.get("body") or "") is not None
        for comment in comments
    )


async def _link(ctx: EventContext, issue: IssueRef, pr: dict[str, Any]) -> None:
    current = await ctx.github.get_issue(issue)
    if current.get("state") != "open" or current.get("pull_request"):
        ctx.log.debug("issue_pr_link_skipped", issue=str(issue), state=current.get("state"))
        return

    comments = await ctx.github.list_comments(issue)
    if already_linked(comments, pr["number"], ctx.settings.bot_account_name):
        return

    await ctx.github.create_comment(issue, comment_body(pr["html_url"], pr["user"]["login"]))


async def link_issues(ctx: EventContext) -> None:
    pr = ctx.payload["pull_request"]
    for number in referenced_issues(pr.get("title")):
        issue = ctx.issue(number)
        try:
            await _link(ctx, issue, pr)
        except Exception as e:
            ctx.log.error("issue_pr_link_failed", issue=str(issue), error=str(e), exc_info=True)
