"""Assigns an issue to its author when they volunteer to implement it."""

from repo_custodian.engine.context import EventContext

WILLING_TO_SUBMIT = "- [x] I am willing to submit a pull request to implement this change."


def volunteers(body: str | None) -> bool:
    return WILLING_TO_SUBMIT.lower() in (body or "").lower()


async def assign_volunteer(ctx: EventContext) -> None:
    issue = ctx.payload["issue"]
    if not volunteers(issue.get("body")):
        return

    await ctx.github.add_assignees(ctx.issue(), [issue["user"]["login"]])
