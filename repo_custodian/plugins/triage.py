"""Adds the ``triage`` label to new issues and pull requests that have no labels."""

from repo_custodian.engine.context import EventContext
from repo_custodian.plugins.utils import label_names

TRIAGE_LABEL = "triage"


async def label_untriaged(ctx: EventContext) -> None:
    subject = ctx.payload.get("issue") or ctx.payload.get("pull_request") or {}
    if label_names(subject.get("labels")):
        return

    # Labels applied from an issue template may be missing from the payload
    issue = ctx.issue()
    current = await ctx.github.get_issue(issue)
    if label_names(current.get("labels")):
        ctx.log.debug("triage_skipped_labeled", issue=str(issue))
        return

    await ctx.github.add_labels(issue, [TRIAGE_LABEL])
