"""Pydantic schemas for hooksync"""

from hooksync.schemas.activity import ItemSummary
from hooksync.schemas.subscription import RepoSubscription, SubscribeRequest, SubscriptionResponse
from hooksync.schemas.webhook import (
    ErrorKind,
    SetupAction,
    SubscriptionResult,
    WebhookEvent,
    WebhookRouteResult,
    WebhookSetupResult,
)

__all__ = [
    "ItemSummary",
    "RepoSubscription",
    "SubscribeRequest",
    "SubscriptionResponse",
    "ErrorKind",
    "SetupAction",
    "SubscriptionResult",
    "WebhookEvent",
    "WebhookRouteResult",
    "WebhookSetupResult",
]
