"""Tests for the pull request gates: check-unit-test, wip, ready-to-merge."""

import pytest

from repo_custodian.enums import CommitState
from repo_custodian.models.domain import IssueRef, RepoRef
from repo_custodian.plugins import check_unit_test, pr_ready_to_merge, wip
from repo_custodian.plugins.pr_ready_to_merge import READY_LABEL, is_approved
from repo_custodian.plugins.utils import extract_hidden_tag

REPO = RepoRef("test-owner", "test-repo")
PULL = IssueRef(REPO, 7)


class TestCheckUnitTest:
    """Tests for the unit test reminder."""

    @pytest.mark.asyncio
    async def test_comments_when_no_test_directory(self, make_context, github, pull_request):
        """Should remind the sender when no changed file sits under a test directory."""
        github.list_pull_files.return_value = [{"filename": "lib/rules/semi.js"}, {"filename": "test.js"}]
        ctx = make_context("pull_request", {"action": "opened", "pull_request": pull_request(title="Fix: semi")})

        await check_unit_test.check_for_tests(ctx)

        issue, body = github.create_comment.await_args.args
        assert issue == PULL
        assert body.startswith("Hi @sender-user,")
        assert extract_hidden_tag(body) == "check-unit-test"

    @pytest.mark.asyncio
    async def test_silent_when_tests_changed(self, make_context, github, pull_request):
        """Should not comment when a file under a test directory changed."""
        github.list_pull_files.return_value = [
            {"filename": "lib/rules/semi.js"},
            {"filename": "tests/lib/rules/semi.js"},
        ]
        ctx = make_context("pull_request", {"action": "synchronize", "pull_request": pull_request(title="Fix: semi")})

        await check_unit_test.check_for_tests(ctx)

        github.create_comment.assert_not_awaited()

    @pytest.mark.parametrize("title", ["Build: ci", "Chore: deps", "Docs: typo", "Upgrade: espree"])
    @pytest.mark.asyncio
    async def test_exempt_titles(self, make_context, github, pull_request, title):
        """Should skip chore-type pull requests without listing files."""
        ctx = make_context("pull_request", {"action": "opened", "pull_request": pull_request(title=title)})

        await check_unit_test.check_for_tests(ctx)

        github.list_pull_files.assert_not_awaited()
        github.create_comment.assert_not_awaited()


class TestWip:
    """Tests for the WIP status gate."""

    @pytest.mark.parametrize(
        ("title", "labels", "expected"),
        [
            ("WIP: new parser", [], True),
            ("wip: lowercase", [], True),
            ("New parser (wip)", [], True),
            ("Parser WIP", [], False),
            ("feat: parser", [{"name": "do not merge"}], True),
            ("feat: parser", [{"name": "bug"}], False),
        ],
    )
    def test_is_work_in_progress(self, title, labels, expected):
        """Should detect WIP titles and the do-not-merge label."""
        assert wip.is_work_in_progress({"title": title, "labels": labels}) is expected

    @pytest.mark.asyncio
    async def test_pending_status_for_wip(self, make_context, github, pull_request, commit):
        """Should post a pending wip status on the latest commit."""
        github.list_pull_commits.return_value = [commit("sha-1", "a"), commit("sha-2", "b")]
        ctx = make_context("pull_request", {"action": "edited", "pull_request": pull_request(title="WIP: x")})

        await wip.update_wip_status(ctx)

        repo, status = github.create_commit_status.await_args.args
        assert repo == REPO
        assert (status.sha, status.state, status.context) == ("sha-2", CommitState.PENDING, "wip")
        github.get_combined_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_success_only_when_wip_status_exists(self, make_context, github, pull_request, commit):
        """Should resolve a previous wip status once the PR is ready."""
        github.list_pull_commits.return_value = [commit("sha-1", "a")]
        github.get_combined_status.return_value = {"state": "pending", "statuses": [{"context": "wip"}]}
        ctx = make_context("pull_request", {"action": "edited", "pull_request": pull_request(title="feat: x")})

        await wip.update_wip_status(ctx)

        github.get_combined_status.assert_awaited_once_with(REPO, "sha-1")
        _, status = github.create_commit_status.await_args.args
        assert status.state is CommitState.SUCCESS
        assert status.description == wip.DONE_DESCRIPTION

    @pytest.mark.asyncio
    async def test_no_status_without_previous_wip(self, make_context, github, pull_request, commit):
        """Should post nothing when the PR never was a WIP."""
        github.list_pull_commits.return_value = [commit("sha-1", "a")]
        github.get_combined_status.return_value = {"state": "success", "statuses": [{"context": "ci"}]}
        ctx = make_context("pull_request", {"action": "opened", "pull_request": pull_request(title="feat: x")})

        await wip.update_wip_status(ctx)

        github.create_commit_status.assert_not_awaited()


def review(login: str, state: str, submitted_at: str) -> dict:
    return {"user": {"login": login}, "state": state, "submitted_at": submitted_at}


class TestIsApproved:
    """Tests for the review verdict reduction."""

    def test_latest_verdict_per_reviewer_wins(self):
        """Should use each reviewer's most recent verdict."""
        reviews = [
            review("alice", "APPROVED", "2024-01-01T10:00:00Z"),
            review("alice", "CHANGES_REQUESTED", "2024-01-02T10:00:00Z"),
        ]
        assert not is_approved(reviews)

    def test_comments_do_not_override_verdicts(self):
        """Should ignore COMMENTED reviews."""
        reviews = [
            review("alice", "APPROVED", "2024-01-01T10:00:00Z"),
            review("alice", "COMMENTED", "2024-01-02T10:00:00Z"),
        ]
        assert is_approved(reviews)

    def test_one_approval_is_enough(self):
        """Should approve when any reviewer's latest verdict is approved."""
        reviews = [
            review("bob", "CHANGES_REQUESTED", "2024-01-01T10:00:00Z"),
            review("alice", "APPROVED", "2024-01-01T11:00:00Z"),
        ]
        assert is_approved(reviews)

    def test_ordering_uses_submission_time(self):
        """Should order by submitted_at, not API order."""
        reviews = [
            review("alice", "APPROVED", "2024-01-03T10:00:00Z"),
            review("alice", "CHANGES_REQUESTED", "2024-01-02T10:00:00Z"),
        ]
        assert is_approved(reviews)

    def test_no_reviews(self):
        """Should not approve without reviews."""
        assert not is_approved([])


class TestReadyToMerge:
    """Tests for the ready-to-merge handlers."""

    @pytest.mark.asyncio
    async def test_success_status_with_approval_adds_label(self, make_context, github):
        """Should label the single PR matching the sha when it is approved."""
        github.search_issues.return_value = [{"number": 7}]
        github.list_pull_reviews.return_value = [review("alice", "APPROVED", "2024-01-01T10:00:00Z")]
        ctx = make_context("status", {"state": "success", "sha": "abc123"})

        await pr_ready_to_merge.on_status(ctx)

        query = github.search_issues.await_args.args[0]
        assert "abc123" in query and "repo:test-owner/test-repo" in query
        github.add_labels.assert_awaited_once_with(PULL, [READY_LABEL])

    @pytest.mark.asyncio
    async def test_success_status_without_approval(self, make_context, github):
        """Should leave the label alone when nobody approved."""
        github.search_issues.return_value = [{"number": 7}]
        ctx = make_context("status", {"state": "success", "sha": "abc123"})

        await pr_ready_to_merge.on_status(ctx)

        github.add_labels.assert_not_awaited()
        github.remove_label.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ambiguous_sha_is_ignored(self, make_context, github):
        """Should do nothing unless exactly one PR matches."""
        github.search_issues.return_value = [{"number": 7}, {"number": 8}]
        ctx = make_context("status", {"state": "failure", "sha": "abc123"})

        await pr_ready_to_merge.on_status(ctx)

        github.remove_label.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_status_removes_label(self, make_context, github):
        """Should remove the label on a failed status."""
        github.search_issues.return_value = [{"number": 7}]
        ctx = make_context("status", {"state": "failure", "sha": "abc123"})

        await pr_ready_to_merge.on_status(ctx)

        github.remove_label.assert_awaited_once_with(PULL, READY_LABEL)

    @pytest.mark.asyncio
    async def test_approval_with_green_status(self, make_context, github, pull_request, commit):
        """Should label an approved PR whose head status is success."""
        github.list_pull_commits.return_value = [commit("sha-1", "a"), commit("sha-2", "b")]
        github.get_combined_status.return_value = {"state": "success", "statuses": [{"context": "ci"}]}
        ctx = make_context(
            "pull_request_review",
            {"action": "submitted", "review": {"state": "approved"}, "pull_request": pull_request()},
        )

        await pr_ready_to_merge.on_review(ctx)

        github.get_combined_status.assert_awaited_once_with(REPO, "sha-2")
        github.add_labels.assert_awaited_once_with(PULL, [READY_LABEL])

    @pytest.mark.asyncio
    async def test_approval_without_statuses_counts_as_green(self, make_context, github, pull_request, commit):
        """Should treat a commit without statuses as green."""
        github.list_pull_commits.return_value = [commit("sha-1", "a")]
        github.get_combined_status.return_value = {"state": "pending", "statuses": []}
        ctx = make_context(
            "pull_request_review",
            {"action": "submitted", "review": {"state": "approved"}, "pull_request": pull_request()},
        )

        await pr_ready_to_merge.on_review(ctx)

        github.add_labels.assert_awaited_once_with(PULL, [READY_LABEL])

    @pytest.mark.asyncio
    async def test_approval_with_pending_status(self, make_context, github, pull_request, commit):
        """Should not label while statuses are pending."""
        github.list_pull_commits.return_value = [commit("sha-1", "a")]
        github.get_combined_status.return_value = {"state": "pending", "statuses": [{"context": "ci"}]}
        ctx = make_context(
            "pull_request_review",
            {"action": "submitted", "review": {"state": "approved"}, "pull_request": pull_request()},
        )

        await pr_ready_to_merge.on_review(ctx)

        github.add_labels.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_changes_requested_removes_label(self, make_context, github, pull_request):
        """Should remove the label for any non-approving review."""
        ctx = make_context(
            "pull_request_review",
            {"action": "submitted", "review": {"state": "changes_requested"}, "pull_request": pull_request()},
        )

        await pr_ready_to_merge.on_review(ctx)

        github.remove_label.assert_awaited_once_with(PULL, READY_LABEL)
        github.list_pull_commits.assert_not_awaited()
