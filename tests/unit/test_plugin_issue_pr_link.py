"""Tests for repo_custodian/plugins/issue_pr_link.py."""

import pytest

from repo_custodian.exceptions import GitHubAPIError
from repo_custodian.models.domain import IssueRef, RepoRef
from repo_custodian.plugins.issue_pr_link import comment_body, link_issues, referenced_issues
from repo_custodian.plugins.utils import hidden_tag

REPO = RepoRef("test-owner", "test-repo")
PR_URL = "https://github.com/test-owner/test-repo/pull/7"


class TestReferencedIssues:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Fixes #123", [123]),
            ("fix #1, closes #2 and RESOLVES #3", [1, 2, 3]),
            ("Resolves: #9", [9]),
            ("Closes\t#4", [4]),
            ("prefix #123", []),
            ("fixes\n#5", []),
            ("see #6", []),
            ("fixes#7", []),
            (None, []),
        ],
    )
    def test_patterns(self, text, expected):
        assert referenced_issues(text) == expected

    def test_limit_and_dedup(self):
        """Should keep the first three distinct numbers in order."""
        assert referenced_issues("Fix #1 and fix #2 and fix #1 and fix #3 and fix #4 and fix #5") == [1, 2, 3]


class TestLinkIssues:
    @pytest.mark.asyncio
    async def test_comments_on_open_issue(self, make_context, github, pull_request):
        """Should post the link comment with the author mention."""
        pr = pull_request(number=7, title="fix: parser (fixes #12)")
        ctx = make_context("pull_request", {"action": "opened", "pull_request": pr})

        await link_issues(ctx)

        github.create_comment.assert_awaited_once_with(IssueRef(REPO, 12), comment_body(PR_URL, "contributor"))
        body = comment_body(PR_URL, "contributor")
        assert body.startswith("👋 Hi! This issue is being addressed in pull request " + PR_URL)
        assert body.endswith(hidden_tag("issue-pr-link"))

    @pytest.mark.asyncio
    async def test_body_references_are_ignored(self, make_context, github, pull_request):
        """Should only look at the title for issue references."""
        pr = pull_request(title="Update docs", body="Fixes #5")
        ctx = make_context("pull_request", {"action": "opened", "pull_request": pr})

        await link_issues(ctx)

        github.get_issue.assert_not_awaited()
        assert github.create_comment.await_count == 0

    @pytest.mark.asyncio
    async def test_links_at_most_three_issues(self, make_context, github, pull_request):
        pr = pull_request(title="Fix #1 and fix #2 and fix #3 and fix #4 and fix #5")
        ctx = make_context("pull_request", {"action": "opened", "pull_request": pr})

        await link_issues(ctx)

        commented = [call.args[0] for call in github.create_comment.await_args_list]
        assert commented == [IssueRef(REPO, 1), IssueRef(REPO, 2), IssueRef(REPO, 3)]

    @pytest.mark.asyncio
    async def test_skips_closed_issue(self, make_context, github, pull_request):
        github.get_issue.return_value = {"state": "closed"}
        ctx = make_context("pull_request", {"action": "opened", "pull_request": pull_request(title="Fixes #12")})

        await link_issues(ctx)

        github.create_comment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_skips_already_linked_issue(self, make_context, github, pull_request):
        """Should not comment twice for the same pull request."""
        github.list_comments.return_value = [
            {"id": 1, "body": comment_body(PR_URL, "contributor"), "user": {"login": "custodian-bot"}},
        ]
        ctx = make_context("pull_request", {"action": "edited", "pull_request": pull_request(title="Fixes #12")})

        await link_issues(ctx)

        github.create_comment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_pull_link_does_not_count(self, make_context, github, pull_request):
        """Should still comment when the existing link is for another pull request."""
        github.list_comments.return_value = [
            {
                "id": 1,
                "body": comment_body("https://github.com/test-owner/test-repo/pull/70", "someone"),
                "user": {"login": "custodian-bot"},
            },
        ]
        ctx = make_context("pull_request", {"action": "edited", "pull_request": pull_request(title="Fixes #12")})

        await link_issues(ctx)

        github.create_comment.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_error_on_one_issue_continues(self, make_context, github, pull_request):
        """Should log per-issue failures and keep going."""
        github.get_issue.side_effect = [GitHubAPIError("missing", 404), {"state": "open"}]
        pr = pull_request(title="fix: parser, fixes #1, fixes #2")
        ctx = make_context("pull_request", {"action": "opened", "pull_request": pr})

        await link_issues(ctx)

        github.create_comment.assert_awaited_once()
        assert github.create_comment.await_args.args[0] == IssueRef(REPO, 2)
        ctx.log.error.assert_called_once()
