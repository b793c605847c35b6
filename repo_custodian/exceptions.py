"""Custom exception hierarchy for repo-custodian.

Exception Hierarchy:
    RepoCustodianError (base)
    ├── ConfigurationError
    ├── AppAuthenticationError
    └── GitHubAPIError
        └── TransientAPIError
            └── RateLimitError

Example Usage:
    >>> from repo_custodian.exceptions import ConfigurationError
    >>> try:
    ...     load_settings(path)
    ... except FileNotFoundError as e:
    ...     raise ConfigurationError(f"Config file not found: {path}") from e
"""


class RepoCustodianError(Exception):
    """Base exception for all repo-custodian errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(RepoCustodianError):
    """Configuration-related errors.

    Examples:
        - Configuration file not found
        - Invalid YAML syntax
        - Missing credentials
        - Unknown plugin name in ``plugins.enabled``
    """

    pass


class AppAuthenticationError(RepoCustodianError):
    """Failure to obtain a GitHub App installation token."""

    def __init__(self, message: str, installation_id: int | None = None) -> None:
        super().__init__(message)
        self.installation_id = installation_id


class GitHubAPIError(RepoCustodianError):
    """Non-success response from the GitHub REST API.

    Attributes:
        message: Error description
        status_code: HTTP status code returned by GitHub
        method: HTTP method of the failed request
        path: Request path
        response_text: Raw response body, if available
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        method: str = "",
        path: str = "",
        response_text: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.method = method
        self.path = path
        self.response_text = response_text

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class TransientAPIError(GitHubAPIError):
    """Rate-limit or server-side failure that is worth retrying.

    Raised for 429, 5xx and 403 responses whose rate limit is exhausted.
    Only the API client retries these; plugins never do.
    """

    pass


class RateLimitError(TransientAPIError):
    """429, or 403 with an exhausted rate limit.

    GitHub rejected the request without acting on it, so even a ``POST`` may
    be sent again.
    """

    pass
