"""Holds work-in-progress pull requests with a pending ``wip`` status.

A pull request is a work in progress when its title starts with ``WIP:``,
contains ``(WIP)``, or it carries the ``do not merge`` label.
"""

import re
from typing import Any

from repo_custodian.engine.context import EventContext
from repo_custodian.enums import CommitState
from repo_custodian.models.domain import CommitStatus
from repo_custodian.plugins.utils import label_names, latest_sha

STATUS_CONTEXT = "wip"
WIP_TITLE = re.compile(r"^WIP:|\(WIP\)", re.IGNORECASE)
DO_NOT_MERGE_LABEL = "do not merge"

PENDING_DESCRIPTION = "This PR appears to be a work in progress"
DONE_DESCRIPTION = "This PR is no longer a work in progress"


def is_work_in_progress(pr: dict[str, Any]) -> bool:
    return bool(WIP_TITLE.search(pr.get("title") or "")) or DO_NOT_MERGE_LABEL in label_names(pr.get("labels"))


async def update_wip_status(ctx: EventContext) -> None:
    pr = ctx.payload["pull_request"]
    pull = ctx.issue()
    commits = await ctx.github.list_pull_commits(pull)
    sha = latest_sha(commits)
    if sha is None:
        return

    if is_work_in_progress(pr):
        await ctx.github.create_commit_status(
            pull.repo, CommitStatus(sha, CommitState.PENDING, PENDING_DESCRIPTION, STATUS_CONTEXT)
        )
        return

    # Only clear a wip status this plugin posted before; never add a fresh one
    combined = await ctx.github.get_combined_status(pull.repo, sha)
    if any(status.get("context") == STATUS_CONTEXT for status in combined.get("statuses", [])):
        await ctx.github.create_commit_status(
            pull.repo, CommitStatus(sha, CommitState.SUCCESS, DONE_DESCRIPTION, STATUS_CONTEXT)
        )
