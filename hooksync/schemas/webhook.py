"""Webhook schemas: reconciliation results and inbound events"""

from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field

from hooksync.schemas.subscription import RepoSubscription


class ErrorKind(str, Enum):
    """Expected failure conditions of the core operations"""
    INVALID_IDENTIFIER = "invalid_identifier"
    NOT_AUTHENTICATED = "not_authenticated"
    NO_URL_AVAILABLE = "no_url_available"
    NO_TOKEN_CONFIGURED = "no_token_configured"
    ALREADY_SUBSCRIBED = "already_subscribed"
    NOT_SUBSCRIBED = "not_subscribed"
    REMOTE_CALL_FAILED = "remote_call_failed"
    NO_EXISTING_REGISTRATION = "no_existing_registration"
    UPDATE_FAILED = "update_failed"
    INVALID_RESPONSE_FORMAT = "invalid_response_format"


class SetupAction(str, Enum):
    """How a successful setup reached its registration"""
    EXISTING = "existing"
    UPDATED = "updated"
    CREATED = "created"


class WebhookSetupResult(BaseModel):
    """Outcome of an org or repo webhook setup/update"""
    success: bool
    webhook_url: str | None = None
    webhook_id: int | None = None
    action: SetupAction | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None

    @classmethod
    def ok(cls, webhook_url: str, webhook_id: int, action: SetupAction) -> "WebhookSetupResult":
        return cls(success=True, webhook_url=webhook_url, webhook_id=webhook_id, action=action)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str) -> "WebhookSetupResult":
        return cls(success=False, error=error, error_kind=kind)


class SubscriptionResult(BaseModel):
    """Outcome of subscribe/unsubscribe"""
    success: bool
    subscription: RepoSubscription | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None

    @classmethod
    def fail(cls, kind: ErrorKind, error: str) -> "SubscriptionResult":
        return cls(success=False, error=error, error_kind=kind)


class WebhookEvent(BaseModel):
    """Inbound GitHub delivery"""
    event_type: str | None = None  # X-GitHub-Event
    delivery_id: str | None = None  # X-GitHub-Delivery
    payload: Dict[str, Any] = Field(default_factory=dict)

    @property
    def repository(self) -> str | None:
        repo = self.payload.get("repository") if isinstance(self.payload, dict) else None
        if not isinstance(repo, dict):
            return None
        full_name = repo.get("full_name")
        if isinstance(full_name, str) and full_name:
            return full_name
        return None


class WebhookRouteResult(BaseModel):
    """Routing decision for an inbound event"""
    routed: bool
    session: str | None = None
    reason: str | None = None


class HostnameChange(BaseModel):
    """Body of the hostname-changed signal"""
    old_hostname: str
    new_hostname: str


class StatusResponse(BaseModel):
    """Integration status"""
    authenticated: bool
    username: str = "unknown"
    webhook_url: str | None = None
    orgs: list[str] = []
    subscription_count: int = 0
