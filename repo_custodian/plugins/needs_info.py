"""Asks the issue author for details once the ``needs info`` label is added."""

from repo_custodian.engine.context import EventContext
from repo_custodian.plugins.utils import hidden_tag

NEEDS_INFO_LABEL = "needs info"


def comment_body(username: str) -> str:
    return f"""Hi @{username}, thanks for the issue. It looks like there's not enough information for us to know how to help you.

If you're reporting a bug, please be sure to include:

1. The version of the project you are using
2. Is it a bug or enhancement?
3. What you did (the source code and configuration)?
4. The actual output, complete with any error messages
5. What you expected to happen instead?
6. Are you willing to submit a pull request if this issue is accepted?

If it's something else, please just provide as much additional information as possible. Thanks!

{hidden_tag("needs-info")}
"""


async def request_info(ctx: EventContext) -> None:
    label = ctx.payload.get("label") or {}
    if label.get("name") != NEEDS_INFO_LABEL:
        return

    author = ctx.payload["issue"]["user"]["login"]
    await ctx.github.create_comment(ctx.issue(), comment_body(author))
