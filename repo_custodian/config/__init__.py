"""Configuration for repo-custodian.

Example:
    >>> from repo_custodian.config import load_settings
    >>> settings = load_settings("custodian.yaml")
    >>> settings.webhook.port
    8000
"""

from repo_custodian.config.settings import ALL_PLUGINS, CustodianSettings, load_settings

__all__ = ["ALL_PLUGINS", "CustodianSettings", "load_settings"]
