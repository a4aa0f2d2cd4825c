from functools import lru_cache
from typing import Any, Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # GitHub scopes and routing
    github_orgs: List[str] = Field(default_factory=list, alias="GITHUB_ORGS")
    github_pr_review_session: str = Field("", alias="GITHUB_PR_REVIEW_SESSION")
    github_release_session: str = Field("", alias="GITHUB_RELEASE_SESSION")
    github_routing: Dict[str, str] = Field(default_factory=dict, alias="GITHUB_ROUTING")

    # Subscription bootstrap sources (legacy snapshot, embedded config)
    github_subscriptions: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict, alias="GITHUB_SUBSCRIPTIONS"
    )
    github_legacy_subscriptions_file: str = Field(
        "github-subscriptions.json", alias="GITHUB_LEGACY_SUBSCRIPTIONS_FILE"
    )

    # gh CLI
    gh_binary: str = Field("gh", alias="GH_BINARY")
    github_command_timeout: float = Field(30.0, alias="GITHUB_COMMAND_TIMEOUT")

    # Structured storage (empty url disables it)
    database_url: str = Field("sqlite+aiosqlite:///hooksync.db", alias="DATABASE_URL")
    storage_timeout: float = Field(10.0, alias="STORAGE_TIMEOUT")

    # Public delivery endpoint
    public_hostname: str = Field("", alias="PUBLIC_HOSTNAME")
    webhooks_base_path: str = Field("/hooks", alias="WEBHOOKS_BASE_PATH")
    webhooks_token: str = Field("", alias="WEBHOOKS_TOKEN")

    # Application settings
    app_name: str = Field("hooksync", alias="APP_NAME")
    log_level: str = Field("info", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
