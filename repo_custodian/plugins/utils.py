"""Helpers shared by plugins."""

import asyncio
import re
from collections.abc import Awaitable, Iterable
from typing import Any

# Markdown link-reference comment; renders as nothing on GitHub
HIDDEN_TAG_PATTERN = re.compile(r"\[//\]: # \(([^)]*)\)")


def hidden_tag(tag: str) -> str:
    """Invisible marker identifying which plugin wrote a comment."""
    return f"[//]: # ({tag})"


def extract_hidden_tag(body: str | None) -> str | None:
    """First hidden tag in ``body``, or None."""
    match = HIDDEN_TAG_PATTERN.search(body or "")
    if match is None or not match.group(1):
        return None
    return match.group(1)


def label_names(labels: Iterable[dict[str, Any] | str] | None) -> set[str]:
    """Names from a payload label list (objects or bare strings)."""
    names = set()
    for label in labels or ():
        names.add(label if isinstance(label, str) else label["name"])
    return names


def effective_message(commits: list[dict[str, Any]], pull_request: dict[str, Any]) -> str:
    """The sole commit's message, or the PR title when there are several commits."""
    if len(commits) == 1:
        return commits[0]["commit"]["message"]
    return pull_request.get("title") or ""


def latest_sha(commits: list[dict[str, Any]]) -> str | None:
    """Sha of the last commit in API order, the PR head."""
    return commits[-1]["sha"] if commits else None


def first_line(message: str) -> str:
    return message.split("\n", 1)[0]


def is_bot_comment(comment: dict[str, Any], bot_account_name: str | None) -> bool:
    """Whether ``comment`` was written by this bot.

    With no account name configured, any Bot-type author counts.
    """
    user = comment.get("user") or {}
    if bot_account_name:
        return user.get("login") in (bot_account_name, f"{bot_account_name}[bot]")
    return user.get("type") == "Bot"


async def run_all(log: Any, operation: str, coroutines: Iterable[Awaitable[Any]]) -> None:
    """Run independent API mutations concurrently.

    Every coroutine runs to completion. Failures are logged one by one, then
    the first is re-raised.
    """
    results = await asyncio.gather(*coroutines, return_exceptions=True)
    errors = [result for result in results if isinstance(result, BaseException)]
    for error in errors:
        log.error(f"{operation}_failed", error=str(error), exc_info=error)
    if errors:
        raise errors[0]
