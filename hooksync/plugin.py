"""
GitHub integration orchestrator.

Wires the subscription store, reconciler and router together, reacts to the
"infrastructure ready" and "hostname changed" signals, and serves the
``github`` command surface.
"""

import logging
from typing import Callable, List, Optional, Sequence

from .config import Settings
from .core.security import parse_ref
from .github_app import recent_activity, view_issue, view_pr
from .github_cli import GhClient, RemoteClient
from .providers import HostnameProvider, WebhooksConfigProvider
from .reconciler import WebhookReconciler
from .router import EventRouter, RoutingConfig
from .schemas.activity import ItemSummary
from .schemas.subscription import RepoSubscription
from .schemas.webhook import StatusResponse, SubscriptionResult, WebhookEvent, WebhookRouteResult, WebhookSetupResult
from .store import SubscriptionStore

logger = logging.getLogger("hooksync")

USAGE = [
    "Usage: github <status|setup|url|pr|issue|subscribe|unsubscribe|subscriptions> [args]",
    "",
    "Commands:",
    "  status                         - Show GitHub integration status",
    "  setup [org]                    - Set up webhooks for configured orgs (alias: webhook)",
    "  url                            - Show webhook URL",
    "  pr owner/repo#N                - Show a pull request",
    "  issue owner/repo#N             - Show an issue",
    "  subscribe owner/repo [--events a,b] [--session s]",
    "  unsubscribe owner/repo",
    "  subscriptions                  - List watched repositories",
]


class GitHubPlugin:
    def __init__(
        self,
        settings: Settings,
        client: RemoteClient,
        hostname_provider: HostnameProvider,
        config_provider: WebhooksConfigProvider,
        store: SubscriptionStore,
        routing: Optional[Callable[[], RoutingConfig]] = None,
    ):
        self.settings = settings
        self.client = client
        self.hostname_provider = hostname_provider
        self.store = store
        self.reconciler = WebhookReconciler(client, hostname_provider, config_provider, store)
        self.router = EventRouter(store, routing or (lambda: RoutingConfig.from_settings(settings)))

    @property
    def orgs(self) -> List[str]:
        return list(self.settings.github_orgs)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> None:
        if isinstance(self.client, GhClient) and not self.client.is_available():
            logger.warning("GitHub CLI (gh) not found. Install: brew install gh (macOS) or apt install gh (Debian)")
        elif not await self.client.check_auth():
            logger.warning("GitHub CLI not authenticated - run 'gh auth login'")
        else:
            logger.info("GitHub CLI authenticated")

        await self.store.load()

        if self.orgs:
            logger.info(f"GitHub plugin initialized for orgs: {', '.join(self.orgs)}")
        else:
            logger.info("GitHub plugin initialized (no orgs configured)")

    async def shutdown(self) -> None:
        logger.info("GitHub plugin shut down")

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    async def setup_org_webhook(self, org: str) -> WebhookSetupResult:
        return await self.reconciler.setup_org_webhook(org)

    async def update_org_webhook(self, org: str, old_hostname: str, new_hostname: str) -> WebhookSetupResult:
        return await self.reconciler.update_org_webhook(org, old_hostname, new_hostname)

    async def subscribe_repo(
        self, repository: str, events: Optional[Sequence[str]] = None, session: Optional[str] = None
    ) -> SubscriptionResult:
        return await self.reconciler.subscribe_repo(repository, events, session)

    async def unsubscribe_repo(self, repository: str) -> SubscriptionResult:
        return await self.reconciler.unsubscribe_repo(repository)

    def list_subscriptions(self) -> List[RepoSubscription]:
        return self.store.list()

    def resolve_session(self, event_type: str, repository: Optional[str] = None) -> Optional[str]:
        return self.router.resolve_session(event_type, repository)

    def handle_webhook(self, event: WebhookEvent) -> WebhookRouteResult:
        return self.router.handle_webhook(event)

    async def get_webhook_url(self) -> Optional[str]:
        return await self.reconciler.get_webhook_url()

    async def is_authenticated(self) -> bool:
        return await self.client.check_auth()

    async def get_username(self) -> Optional[str]:
        """Login of the account gh is authenticated as."""
        result = await self.client.call(["api", "user", "--jq", ".login"])
        if not result.success or not result.text:
            logger.debug(f"Could not resolve GitHub username: {result.text}")
            return None
        return result.text

    async def status(self) -> StatusResponse:
        authenticated = await self.is_authenticated()
        username = await self.get_username() if authenticated else None
        return StatusResponse(
            authenticated=authenticated,
            username=username or "unknown",
            webhook_url=await self.get_webhook_url(),
            orgs=self.orgs,
            subscription_count=len(self.store.list()),
        )

    async def view_pr(self, repo: str, number: int) -> Optional[ItemSummary]:
        return await view_pr(self.client, repo, number)

    async def view_issue(self, repo: str, number: int) -> Optional[ItemSummary]:
        return await view_issue(self.client, repo, number)

    async def recent_activity(self, repo: Optional[str] = None, limit: Optional[int] = None) -> List[ItemSummary]:
        repos = [repo] if repo else [sub.repository for sub in self.store.list()]
        return await recent_activity(self.client, repos, limit)

    # ------------------------------------------------------------------
    # Trigger signals
    # ------------------------------------------------------------------

    async def on_infrastructure_ready(self) -> List[WebhookSetupResult]:
        """Re-run setup for every configured org and tracked repository."""
        results = []
        for org in self.orgs:
            result = await self.reconciler.setup_org_webhook(org)
            if not result.success:
                logger.error(f"Webhook setup failed for {org}: {result.error}")
            results.append(result)

        for subscription in self.store.list():
            result = await self.reconciler.setup_repo_webhook(subscription.repository, subscription.events)
            await self._record_id(subscription, result)
            results.append(result)
        return results

    async def on_hostname_changed(self, old_hostname: str, new_hostname: str) -> List[WebhookSetupResult]:
        """Point every org and repo registration at ``new_hostname``."""
        logger.info(f"Public hostname changed: {old_hostname} -> {new_hostname}")
        if hasattr(self.hostname_provider, "set_hostname"):
            self.hostname_provider.set_hostname(new_hostname)

        results = []
        for org in self.orgs:
            result = await self.reconciler.update_org_webhook(org, old_hostname, new_hostname)
            if not result.success:
                logger.error(f"Webhook update failed for {org}: {result.error}")
            results.append(result)

        for subscription in self.store.list():
            result = await self.reconciler.update_repo_webhook(subscription.repository, old_hostname, new_hostname)
            await self._record_id(subscription, result)
            results.append(result)
        return results

    async def _record_id(self, subscription: RepoSubscription, result: WebhookSetupResult) -> None:
        if not result.success:
            logger.error(f"Webhook reconcile failed for {subscription.repository}: {result.error}")
            return
        if result.webhook_id != subscription.webhook_id:
            logger.info(
                f"Webhook ID for {subscription.repository} changed: {subscription.webhook_id} -> {result.webhook_id}"
            )
            await self.store.put(subscription.model_copy(update={"webhook_id": result.webhook_id}))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def run_command(self, args: Sequence[str]) -> None:
        subcommand = args[0] if args else None
        rest = list(args[1:])

        if subcommand == "status":
            status = await self.status()
            if status.authenticated:
                logger.info(f"GitHub CLI: authenticated as {status.username}")
            else:
                logger.info("GitHub CLI: not authenticated")
            logger.info(f"Webhook URL: {status.webhook_url or 'not available'}")
            if status.orgs:
                logger.info(f"Configured orgs: {', '.join(status.orgs)}")
            logger.info(f"Subscriptions: {status.subscription_count}")
            return

        if subcommand in ("setup", "webhook"):
            orgs = rest[:1] or self.orgs
            if not orgs:
                logger.error("No org specified. Usage: github setup <org>")
                return
            for org in orgs:
                logger.info(f"Setting up webhook for {org}...")
                result = await self.setup_org_webhook(org)
                if result.success:
                    logger.info(f"  Webhook URL: {result.webhook_url}")
                    logger.info(f"  Webhook ID: {result.webhook_id}")
                else:
                    logger.error(f"  Failed: {result.error}")
            return

        if subcommand == "url":
            url = await self.get_webhook_url()
            if url:
                logger.info(f"Webhook URL: {url}")
            else:
                logger.error("Webhook URL not available. Check public hostname and webhooks settings.")
            return

        if subcommand in ("pr", "issue"):
            await self._show_item(subcommand, rest)
            return

        if subcommand == "subscribe":
            await self._subscribe_command(rest)
            return

        if subcommand == "unsubscribe":
            if not rest:
                logger.error("Usage: github unsubscribe owner/repo")
                return
            result = await self.unsubscribe_repo(rest[0])
            if result.success:
                logger.info(f"Unsubscribed {rest[0]}")
            else:
                logger.error(f"Failed: {result.error}")
            return

        if subcommand == "subscriptions":
            subscriptions = self.list_subscriptions()
            if not subscriptions:
                logger.info("No repositories subscribed")
            for sub in subscriptions:
                session = f" -> {sub.session}" if sub.session else ""
                logger.info(f"{sub.repository} (webhook {sub.webhook_id}): {', '.join(sub.events)}{session}")
            return

        for line in USAGE:
            logger.info(line)

    async def _show_item(self, kind: str, rest: List[str]) -> None:
        if not rest:
            logger.error(f"Usage: github {kind} owner/repo#number")
            return
        ref = parse_ref(rest[0])
        if ref is None:
            logger.error(f"Invalid format: {rest[0]!r}. Expected owner/repo#number")
            return
        repo, number = ref
        item = await (self.view_pr(repo, number) if kind == "pr" else self.view_issue(repo, number))
        if item is None:
            label = "PR" if kind == "pr" else "issue"
            logger.error(f"Could not fetch {label} {repo}#{number}")
            return
        lines = [item.headline()]
        if item.labels:
            lines.append(f"Labels: {', '.join(item.labels)}")
        if item.head_ref and item.base_ref:
            lines.append(f"Branch: {item.head_ref} -> {item.base_ref} (+{item.additions or 0}/-{item.deletions or 0})")
        if item.body_preview:
            lines.append(item.body_preview)
        lines.append(item.url)
        logger.info("\n".join(lines))

    async def _subscribe_command(self, rest: List[str]) -> None:
        if not rest:
            logger.error("Usage: github subscribe owner/repo [--events a,b] [--session s]")
            return
        repository, options = rest[0], rest[1:]
        events: Optional[List[str]] = None
        session: Optional[str] = None
        while options:
            flag = options.pop(0)
            value = options.pop(0) if options else ""
            if flag == "--events":
                events = [event.strip() for event in value.split(",") if event.strip()]
            elif flag == "--session":
                session = value
            else:
                logger.error(f"Unknown option: {flag}")
                return

        result = await self.subscribe_repo(repository, events, session)
        if result.success and result.subscription:
            sub = result.subscription
            logger.info(f"Subscribed {sub.repository}: webhook ID {sub.webhook_id}")
            logger.info(f"  Events: {', '.join(sub.events)}")
        else:
            logger.error(f"Failed: {result.error}")
