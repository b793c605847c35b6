"""Settings for the repo-custodian service.

Settings come from ``CUSTODIAN_`` environment variables (nested sections use
``__``, e.g. ``CUSTODIAN_WEBHOOK__SECRET``) or from a YAML file with
``${VAR}`` / ``${VAR:-default}`` interpolation.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from repo_custodian.enums import LogFormat
from repo_custodian.exceptions import ConfigurationError

ALL_PLUGINS: tuple[str, ...] = (
    "triage",
    "needs_info",
    "auto_assign",
    "commit_message",
    "check_unit_test",
    "duplicate_comments",
    "wip",
    "pr_ready_to_merge",
    "recurring_issues",
    "release_monitor",
    "auto_closer",
    "issue_archiver",
    "issue_pr_link",
)


class GitHubConfig(BaseModel):
    """GitHub API endpoint and credentials.

    Exactly one credential mode is used: a personal/bot ``token``, or a
    GitHub App (``app_id`` + ``private_key``) whose installation tokens are
    minted per webhook delivery.
    """

    api_url: str = Field(default="https://api.github.com", description="REST API base URL")
    token: SecretStr | None = Field(default=None, description="Token for token mode")
    app_id: int | None = Field(default=None, description="GitHub App id")
    private_key: SecretStr | None = Field(default=None, description="GitHub App PEM private key")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")

    @model_validator(mode="after")
    def validate_credentials(self) -> GitHubConfig:
        if self.token is not None:
            return self
        if self.app_id is None or self.private_key is None:
            raise ValueError("either github.token or both github.app_id and github.private_key are required")
        return self

    @property
    def uses_app_auth(self) -> bool:
        return self.token is None


class WebhookConfig(BaseModel):
    """HTTP receiver settings."""

    secret: SecretStr = Field(..., description="Shared secret used to sign webhook deliveries")
    host: str = Field(default="0.0.0.0", description="Bind address")  # nosec B104
    port: int = Field(default=8000, ge=1, le=65535)
    path: str = Field(default="/", description="Route receiving webhook deliveries")


class SchedulerConfig(BaseModel):
    """Periodic sweep settings."""

    enabled: bool = True
    interval_seconds: int = Field(default=24 * 60 * 60, gt=0)
    repositories: list[str] = Field(
        default_factory=list,
        description="owner/name list swept in token mode (app mode enumerates installations)",
    )

    @model_validator(mode="after")
    def validate_repositories(self) -> SchedulerConfig:
        for full_name in self.repositories:
            owner, _, name = full_name.partition("/")
            if not owner or not name or "/" in name:
                raise ValueError(f"scheduler.repositories entries must be owner/name, got: {full_name}")
        return self


class PluginsConfig(BaseModel):
    """Which plugins run, plus their few tunables."""

    enabled: list[str] = Field(default_factory=lambda: list(ALL_PLUGINS))
    tsc_team_slug: str = Field(default="tsc", description="Team listed in TSC meeting issues")
    tsc_meeting_location: str | None = Field(default=None, description="Where TSC meetings take place")


class CustodianSettings(BaseSettings):
    """Top-level service settings."""

    model_config = SettingsConfigDict(
        env_prefix="CUSTODIAN_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    github: GitHubConfig
    webhook: WebhookConfig
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
    bot_account_name: str | None = Field(
        default=None,
        description="Login the bot posts as; used to recognise its own comments",
    )
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.JSON

    @classmethod
    def from_yaml(cls, config_path: str) -> CustodianSettings:
        """Load settings from a YAML file with environment variable interpolation.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            CustodianSettings instance

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            yaml_content = config_file.read_text()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = cls._interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e
        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")

        try:
            return cls(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Missing or invalid configuration fields: {e}") from e

    @staticmethod
    def _interpolate_env_vars(content: str) -> str:
        """Replace ``${VAR}`` and ``${VAR:-default}`` outside YAML comment lines.

        Raises:
            ValueError: If a variable without default is not set
        """
        pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name, default_value = match.group(1), match.group(2)
            value = os.getenv(var_name)
            if value is not None:
                return value
            if default_value is not None:
                return default_value
            raise ValueError(f"Environment variable {var_name} is not set")

        def process_line(line: str) -> str:
            if line.lstrip().startswith("#"):
                return line
            return pattern.sub(replace_var, line)

        return "\n".join(process_line(line) for line in content.split("\n"))


def load_settings(config_path: str | None = None) -> CustodianSettings:
    """Load settings from ``config_path`` if given, else from the environment."""
    if config_path:
        return CustodianSettings.from_yaml(config_path)
    try:
        return CustodianSettings()
    except ValidationError as e:
        raise ConfigurationError(f"Missing or invalid configuration: {e}") from e
