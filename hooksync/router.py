"""Route inbound GitHub events to downstream sessions."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from .config import Settings
from .schemas.webhook import WebhookEvent, WebhookRouteResult
from .store import SubscriptionStore

logger = logging.getLogger("hooksync")

WILDCARD = "*"
PR_EVENTS = {"pull_request", "pull_request_review"}
RELEASE_EVENTS = {"release", "push"}


class MissingEventTypeError(ValueError):
    """The event carries no event type; distinct from "no route"."""


@dataclass
class RoutingConfig:
    routing: Dict[str, str] = field(default_factory=dict)
    pr_review_session: Optional[str] = None
    release_session: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "RoutingConfig":
        return cls(
            routing=dict(settings.github_routing),
            pr_review_session=settings.github_pr_review_session or None,
            release_session=settings.github_release_session or None,
        )


def _usable(value: Optional[str]) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


class EventRouter:
    """
    Resolution order (first match wins):

    1. the originating repository's session override
    2. exact routing table entry for the event type
    3. the ``"*"`` routing table entry
    4. legacy prReviewSession / releaseSession fields
    """

    def __init__(self, store: SubscriptionStore, config: Callable[[], RoutingConfig]):
        self.store = store
        self._config = config

    def resolve_session(self, event_type: Optional[str], repository: Optional[str] = None) -> Optional[str]:
        if not event_type:
            raise MissingEventTypeError("Missing event type")

        if repository:
            subscription = self.store.get(repository)
            override = _usable(subscription.session) if subscription else None
            if override:
                return override

        config = self._config()
        exact = _usable(config.routing.get(event_type))
        if exact:
            return exact
        wildcard = _usable(config.routing.get(WILDCARD))
        if wildcard:
            return wildcard

        if event_type in PR_EVENTS:
            return _usable(config.pr_review_session)
        if event_type in RELEASE_EVENTS:
            return _usable(config.release_session)
        return None

    def handle_webhook(self, event: WebhookEvent) -> WebhookRouteResult:
        if not event.event_type:
            logger.warning(f"Webhook delivery {event.delivery_id or '-'} has no event type")
            return WebhookRouteResult(routed=False, reason="Missing event type")

        session = self.resolve_session(event.event_type, event.repository)
        if not session:
            logger.debug(f"No session configured for {event.event_type} (delivery {event.delivery_id or '-'})")
            return WebhookRouteResult(
                routed=False,
                reason=f"No session configured for event type: {event.event_type}",
            )

        logger.info(f"Routing {event.event_type} (delivery {event.delivery_id or '-'}) to {session}")
        return WebhookRouteResult(routed=True, session=session)
