"""Tests for repo_custodian/exceptions.py."""

import pytest

from repo_custodian.exceptions import (
    AppAuthenticationError,
    ConfigurationError,
    GitHubAPIError,
    RateLimitError,
    RepoCustodianError,
    TransientAPIError,
)


class TestHierarchy:
    @pytest.mark.parametrize("error_class", [ConfigurationError, AppAuthenticationError, GitHubAPIError])
    def test_subclasses_base(self, error_class):
        assert issubclass(error_class, RepoCustodianError)

    def test_transient_is_api_error(self):
        assert issubclass(TransientAPIError, GitHubAPIError)

    def test_rate_limit_is_transient(self):
        assert issubclass(RateLimitError, TransientAPIError)

    def test_catch_all(self):
        """Should be catchable through the base class."""
        with pytest.raises(RepoCustodianError) as exc_info:
            raise ConfigurationError("no token")

        assert exc_info.value.message == "no token"
        assert str(exc_info.value) == "no token"


class TestGitHubAPIError:
    def test_attributes(self):
        error = GitHubAPIError("boom", 422, method="POST", path="/repos/o/r/issues", response_text="{}")

        assert error.status_code == 422
        assert error.method == "POST"
        assert error.path == "/repos/o/r/issues"
        assert error.response_text == "{}"
        assert not error.not_found

    def test_not_found(self):
        assert GitHubAPIError("gone", 404).not_found


def test_app_authentication_error_keeps_installation():
    assert AppAuthenticationError("expired", installation_id=5).installation_id == 5
