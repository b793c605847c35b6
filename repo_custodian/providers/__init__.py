"""GitHub access for repo-custodian.

Key Components:
    - GitHubClient: Async REST client (httpx)
    - GitHubApp: App identity minting installation tokens (PyGithub)
    - ClientFactory: Hands out authenticated clients per installation
"""

from repo_custodian.providers.factory import ClientFactory
from repo_custodian.providers.github_app import GitHubApp, InstallationTokenAuth
from repo_custodian.providers.github_rest import GitHubClient

__all__ = ["ClientFactory", "GitHubApp", "GitHubClient", "InstallationTokenAuth"]
