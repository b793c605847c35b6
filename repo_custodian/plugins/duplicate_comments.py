"""Deletes older copies of the bot's own tagged comments.

Comments are grouped by hidden tag; in each group only the most recent
(last in API order) survives.
"""

from collections import defaultdict
from typing import Any

from repo_custodian.engine.context import EventContext
from repo_custodian.plugins.utils import extract_hidden_tag, is_bot_comment


def stale_duplicates(comments: list[dict[str, Any]], bot_account_name: str | None) -> list[dict[str, Any]]:
    """Bot comments superseded by a later bot comment with the same tag."""
    by_tag: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for comment in comments:
        if not is_bot_comment(comment, bot_account_name):
            continue
        tag = extract_hidden_tag(comment.get("body"))
        if tag is not None:
            by_tag[tag].append(comment)

    return [comment for group in by_tag.values() for comment in group[:-1]]


async def prune_duplicates(ctx: EventContext) -> None:
    if ctx.payload["issue"].get("state") != "open":
        return

    issue = ctx.issue()
    comments = await ctx.github.list_comments(issue)
    for comment in stale_duplicates(comments, ctx.settings.bot_account_name):
        await ctx.github.delete_comment(issue.repo, comment["id"])
