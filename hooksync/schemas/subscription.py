"""Repository subscription schemas"""

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_REPO_EVENTS = ["push", "pull_request", "pull_request_review", "issues", "issue_comment"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RepoSubscription(BaseModel):
    """
    One repository's webhook registration and routing intent.

    Stored as ``{"repo", "webhookId", "events", "session", "createdAt"}`` in
    the legacy snapshot, the structured store and embedded config.
    """
    model_config = ConfigDict(populate_by_name=True)

    repository: str = Field(alias="repo")
    webhook_id: int = Field(alias="webhookId")
    events: List[str] = Field(default_factory=lambda: list(DEFAULT_REPO_EVENTS))
    session: str | None = None
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class SubscribeRequest(BaseModel):
    """Body for subscribing a repository"""
    events: List[str] | None = None
    session: str | None = None


class SubscriptionResponse(BaseModel):
    """Schema for a watched repository, serialized with the stored record's camelCase keys"""
    model_config = ConfigDict(populate_by_name=True)

    repo: str
    events: List[str]
    session: str | None = None
    webhook_id: int = Field(alias="webhookId")
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_subscription(cls, subscription: RepoSubscription) -> "SubscriptionResponse":
        return cls(
            repo=subscription.repository,
            events=subscription.events,
            session=subscription.session,
            webhook_id=subscription.webhook_id,
            created_at=subscription.created_at,
        )
