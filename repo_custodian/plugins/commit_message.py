"""Checks that the commit message (or PR title) follows the tag convention.

The checked message is the sole commit's message, or the PR title when the
pull request has several commits (it becomes the squash commit summary).
Only the first line is checked. Both the conventional lowercase tags
(``feat:``, ``fix!:``...) and the capitalized tags (``Fix:``, ``New:``...)
are accepted.
"""

import re
from enum import Enum

from repo_custodian.engine.context import EventContext
from repo_custodian.enums import CommitState
from repo_custodian.models.domain import CommitStatus
from repo_custodian.plugins.utils import effective_message, first_line, hidden_tag, latest_sha

STATUS_CONTEXT = "commit-message"
MAX_SUMMARY_LENGTH = 72

TAG_PATTERN = re.compile(r"^(?P<tag>[A-Za-z]+)(?:\([^)]*\))?(?P<breaking>!)?:(?P<rest>.*)$")

CAPITALIZED_TAGS = frozenset({"Breaking", "Build", "Chore", "Docs", "Fix", "New", "Update", "Upgrade"})

# Labels added to pull requests whose summary carries a conventional tag
TAG_LABELS: dict[str, list[str]] = {
    "feat": ["feature"],
    "feat!": ["feature", "breaking"],
    "build": ["build"],
    "chore": ["chore"],
    "docs": ["documentation"],
    "fix": ["bug"],
    "fix!": ["bug", "breaking"],
    "refactor": ["chore"],
    "test": ["chore"],
    "ci": ["build"],
    "perf": ["chore"],
}


class MessageProblem(str, Enum):
    """A failed check, valued by its short status description."""

    SPACE_AFTER_COLON = "space after colon"
    LOWERCASE_TAG = "lowercase tag"
    RECOGNIZED_TAG = "recognized tag"
    LENGTH = "length"

    def __str__(self) -> str:
        return self.value

    @property
    def explanation(self) -> str:
        return PROBLEM_EXPLANATIONS[self]


PROBLEM_EXPLANATIONS = {
    MessageProblem.SPACE_AFTER_COLON: "- The tag must be followed by a colon and a single space, e.g. `fix: `.",
    MessageProblem.LOWERCASE_TAG: "- The tag must be written in lowercase, e.g. `feat:` rather than `Feat:`.",
    MessageProblem.RECOGNIZED_TAG: (
        "- The summary must begin with a recognized tag: "
        + ", ".join(f"`{tag}:`" for tag in TAG_LABELS)
        + "."
    ),
    MessageProblem.LENGTH: f"- The summary must be {MAX_SUMMARY_LENGTH} characters or shorter.",
}


def _tag_key(tag: str, breaking: bool) -> str:
    return f"{tag}!" if breaking else tag


def check_message(message: str) -> list[MessageProblem]:
    """Problems with the first line of ``message``; empty when it is fine."""
    summary = first_line(message)
    if summary.startswith('Revert "'):
        return []

    problems = []
    match = TAG_PATTERN.match(summary)
    if match is None:
        problems.append(MessageProblem.RECOGNIZED_TAG)
    else:
        tag = _tag_key(match["tag"], bool(match["breaking"]))
        if not match["rest"].startswith(" "):
            problems.append(MessageProblem.SPACE_AFTER_COLON)
        if tag not in CAPITALIZED_TAGS and tag not in TAG_LABELS:
            if tag.lower() in TAG_LABELS:
                problems.append(MessageProblem.LOWERCASE_TAG)
            else:
                problems.append(MessageProblem.RECOGNIZED_TAG)

    if len(summary) > MAX_SUMMARY_LENGTH:
        problems.append(MessageProblem.LENGTH)
    return problems


def labels_for(message: str) -> list[str]:
    match = TAG_PATTERN.match(first_line(message))
    if match is None:
        return []
    return TAG_LABELS.get(_tag_key(match["tag"], bool(match["breaking"])), [])


def comment_body(username: str, problems: list[MessageProblem], from_title: bool) -> str:
    source = "pull request title" if from_title else "commit message"
    explanations = "\n".join(problem.explanation for problem in problems)
    return f"""Hi @{username}!, thanks for the Pull Request

The {source} isn't properly formatted. We ask that you update the {source} to match this format, as we use it to generate changelogs and automate releases.

{explanations}

Read more about contributing in our [pull request guide](CONTRIBUTING.md).

{hidden_tag("commit-message")}
"""


async def check_commit_message(ctx: EventContext) -> None:
    pr = ctx.payload["pull_request"]
    pull = ctx.issue()
    commits = await ctx.github.list_pull_commits(pull)
    sha = latest_sha(commits) or pr["head"]["sha"]
    message = effective_message(commits, pr)
    problems = check_message(message)

    if not problems:
        await ctx.github.create_commit_status(
            pull.repo,
            CommitStatus(sha, CommitState.SUCCESS, "Commit message follows guidelines", STATUS_CONTEXT),
        )
        labels = labels_for(message)
        if labels:
            await ctx.github.add_labels(pull, labels)
        return

    ctx.log.info("commit_message_rejected", pull=str(pull), problems=[str(p) for p in problems])
    description = "Failed checks: " + ", ".join(str(problem) for problem in problems)
    await ctx.github.create_commit_status(
        pull.repo, CommitStatus(sha, CommitState.FAILURE, description, STATUS_CONTEXT)
    )
    await ctx.github.create_comment(pull, comment_body(pr["user"]["login"], problems, len(commits) != 1))
