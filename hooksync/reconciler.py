"""
Webhook reconciliation.

Drives each org or repository scope toward exactly one registration that
points at the current delivery URL. Precedence on setup is:

    exact URL match  >  stale match (same delivery path, old host)  >  create

which keeps repeated setups and hostname churn from piling up duplicate
registrations. All operations return result models; none raise for expected
failures.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from .core.security import (
    build_webhook_url,
    delivery_suffix,
    org_hooks_path,
    repo_hooks_path,
    validate_identifier,
    validate_repo,
)
from .github_cli import CommandResult, RemoteClient
from .providers import HostnameProvider, WebhooksConfig, WebhooksConfigProvider
from .schemas.subscription import DEFAULT_REPO_EVENTS, RepoSubscription
from .schemas.webhook import ErrorKind, SetupAction, SubscriptionResult, WebhookSetupResult
from .store import SubscriptionStore

logger = logging.getLogger("hooksync")

ORG_EVENTS = ["pull_request", "pull_request_review"]

# One "<id>\t<url>" line per registration
LIST_HOOKS_JQ = ".[] | [.id, .config.url] | @tsv"


@dataclass
class RemoteHook:
    id: int
    url: str


@dataclass
class _Scope:
    """An org or repo hooks collection, e.g. ``orgs/acme/hooks``."""
    name: str
    path: str


class WebhookReconciler:
    def __init__(
        self,
        client: RemoteClient,
        hostname_provider: HostnameProvider,
        config_provider: WebhooksConfigProvider,
        store: SubscriptionStore,
    ):
        self.client = client
        self.hostname_provider = hostname_provider
        self.config_provider = config_provider
        self.store = store

    # ------------------------------------------------------------------
    # URL helpers
    # ------------------------------------------------------------------

    async def get_webhook_url(self) -> Optional[str]:
        """Current delivery URL, or None when hostname or config is missing."""
        config = self.config_provider.get_config()
        if not config:
            logger.debug("Webhooks not configured")
            return None
        hostname = await self.hostname_provider.get_hostname()
        if not hostname:
            logger.debug("No public hostname available")
            return None
        return build_webhook_url(hostname, config.base_path)

    async def is_authenticated(self) -> bool:
        return await self.client.check_auth()

    # ------------------------------------------------------------------
    # Remote operations
    # ------------------------------------------------------------------

    async def _list_hooks(self, scope: _Scope) -> tuple[Optional[List[RemoteHook]], CommandResult]:
        result = await self.client.call(["api", scope.path, "--paginate", "--jq", LIST_HOOKS_JQ])
        if not result.success:
            return None, result
        hooks = []
        for line in result.text.splitlines():
            hook_id, _, url = line.strip().partition("\t")
            try:
                hooks.append(RemoteHook(id=int(hook_id), url=url))
            except ValueError:
                logger.warning(f"Ignoring unparseable hook listing line for {scope.name}: {line!r}")
        return hooks, result

    async def _patch_url(self, scope: _Scope, hook_id: int, url: str) -> CommandResult:
        # The /config endpoint only touches the keys sent, so the secret survives.
        return await self.client.call([
            "api",
            f"{scope.path}/{hook_id}/config",
            "-X", "PATCH",
            "-f", f"url={url}",
            "-f", "content_type=json",
            "--jq", ".url",
        ])

    async def _create(self, scope: _Scope, url: str, token: str, events: Sequence[str]) -> CommandResult:
        args = [
            "api",
            scope.path,
            "-X", "POST",
            "-f", "name=web",
            "-F", "active=true",
            "-f", f"config[url]={url}",
            "-f", "config[content_type]=json",
            "-f", f"config[secret]={token}",
        ]
        for event in events:
            args += ["-f", f"events[]={event}"]
        args += ["--jq", ".id"]
        return await self.client.call(args)

    async def _delete(self, scope: _Scope, hook_id: int) -> CommandResult:
        return await self.client.call(["api", f"{scope.path}/{hook_id}", "-X", "DELETE"])

    # ------------------------------------------------------------------
    # Shared algorithms
    # ------------------------------------------------------------------

    async def _check_auth(self) -> Optional[WebhookSetupResult]:
        if not await self.client.check_auth():
            return WebhookSetupResult.fail(
                ErrorKind.NOT_AUTHENTICATED,
                "gh CLI not authenticated. Run 'gh auth login' first.",
            )
        return None

    async def _setup(self, scope: _Scope, events: Sequence[str]) -> WebhookSetupResult:
        failed = await self._check_auth()
        if failed:
            return failed

        config = self.config_provider.get_config()
        webhook_url = await self.get_webhook_url()
        if not webhook_url or config is None:
            return WebhookSetupResult.fail(
                ErrorKind.NO_URL_AVAILABLE,
                "No webhook URL available. Ensure the public hostname and webhooks base path are configured.",
            )
        if not config.token:
            return WebhookSetupResult.fail(ErrorKind.NO_TOKEN_CONFIGURED, "No webhook token configured")

        hooks, listing = await self._list_hooks(scope)
        if hooks is None:
            return WebhookSetupResult.fail(
                ErrorKind.REMOTE_CALL_FAILED,
                f"Failed to list webhooks for {scope.name}: {listing.text}",
            )

        for hook in hooks:
            if hook.url == webhook_url:
                logger.info(f"Webhook already exists for {scope.name}: ID {hook.id}")
                return WebhookSetupResult.ok(webhook_url, hook.id, SetupAction.EXISTING)

        stale = self._find_stale(hooks, config, webhook_url)
        if stale is not None:
            patched = await self._patch_url(scope, stale.id, webhook_url)
            if patched.success:
                logger.info(f"Updated stale webhook for {scope.name}: ID {stale.id} ({stale.url} -> {webhook_url})")
                return WebhookSetupResult.ok(webhook_url, stale.id, SetupAction.UPDATED)
            logger.warning(
                f"Failed to update stale webhook {stale.id} for {scope.name}: {patched.text}; creating a new one"
            )

        created = await self._create(scope, webhook_url, config.token, events)
        if not created.success:
            return WebhookSetupResult.fail(
                ErrorKind.REMOTE_CALL_FAILED,
                f"Failed to create webhook for {scope.name}: {created.text}",
            )
        try:
            webhook_id = int(created.text.strip())
        except ValueError:
            return WebhookSetupResult.fail(
                ErrorKind.INVALID_RESPONSE_FORMAT,
                f"Unexpected webhook id from GitHub for {scope.name}: {created.text!r}",
            )
        logger.info(f"Created webhook for {scope.name}: ID {webhook_id}")
        return WebhookSetupResult.ok(webhook_url, webhook_id, SetupAction.CREATED)

    @staticmethod
    def _find_stale(hooks: List[RemoteHook], config: WebhooksConfig, webhook_url: str) -> Optional[RemoteHook]:
        suffix = delivery_suffix(config.base_path)
        for hook in hooks:
            if hook.url != webhook_url and hook.url.startswith("https://") and hook.url.endswith(suffix):
                return hook
        return None

    async def _update(self, scope: _Scope, old_hostname: str, new_hostname: str) -> WebhookSetupResult:
        failed = await self._check_auth()
        if failed:
            return failed

        config = self.config_provider.get_config()
        old_url = build_webhook_url(old_hostname, config.base_path if config else None)
        new_url = build_webhook_url(new_hostname, config.base_path if config else None)
        if not old_url or not new_url:
            return WebhookSetupResult.fail(
                ErrorKind.NO_URL_AVAILABLE,
                f"Cannot build webhook URLs for {scope.name}: hostnames and webhooks base path are required",
            )

        hooks, listing = await self._list_hooks(scope)
        if hooks is None:
            return WebhookSetupResult.fail(
                ErrorKind.REMOTE_CALL_FAILED,
                f"Failed to list webhooks for {scope.name}: {listing.text}",
            )

        for hook in hooks:
            if hook.url == new_url:
                logger.info(f"Webhook for {scope.name} already points at {new_url}: ID {hook.id}")
                return WebhookSetupResult.ok(new_url, hook.id, SetupAction.EXISTING)

        existing = next((hook for hook in hooks if hook.url == old_url), None)
        if existing is None:
            return WebhookSetupResult.fail(
                ErrorKind.NO_EXISTING_REGISTRATION,
                f"No webhook for {scope.name} points at {old_url}",
            )

        patched = await self._patch_url(scope, existing.id, new_url)
        if not patched.success:
            return WebhookSetupResult.fail(
                ErrorKind.UPDATE_FAILED,
                f"Failed to update webhook {existing.id} for {scope.name}: {patched.text}",
            )
        logger.info(f"Updated webhook for {scope.name}: ID {existing.id} ({old_url} -> {new_url})")
        return WebhookSetupResult.ok(new_url, existing.id, SetupAction.UPDATED)

    # ------------------------------------------------------------------
    # Organization scope
    # ------------------------------------------------------------------

    @staticmethod
    def _org_scope(org: str) -> Optional[_Scope]:
        if not validate_identifier(org):
            return None
        return _Scope(name=org, path=org_hooks_path(org))

    @staticmethod
    def _invalid_org(org: str) -> WebhookSetupResult:
        return WebhookSetupResult.fail(
            ErrorKind.INVALID_IDENTIFIER,
            f"Invalid org name: {org!r} (alphanumeric, '-', '.', '_'; 1-39 chars; no leading/trailing separator)",
        )

    async def setup_org_webhook(self, org: str) -> WebhookSetupResult:
        scope = self._org_scope(org)
        if scope is None:
            return self._invalid_org(org)
        return await self._setup(scope, ORG_EVENTS)

    async def update_org_webhook(self, org: str, old_hostname: str, new_hostname: str) -> WebhookSetupResult:
        scope = self._org_scope(org)
        if scope is None:
            return self._invalid_org(org)
        return await self._update(scope, old_hostname, new_hostname)

    # ------------------------------------------------------------------
    # Repository scope
    # ------------------------------------------------------------------

    @staticmethod
    def _repo_scope(repository: str) -> Optional[_Scope]:
        if not validate_repo(repository):
            return None
        return _Scope(name=repository, path=repo_hooks_path(repository))

    @staticmethod
    def _invalid_repo_message(repository: str) -> str:
        return f"Invalid repository: {repository!r} (expected owner/name with valid GitHub names)"

    async def setup_repo_webhook(
        self, repository: str, events: Optional[Sequence[str]] = None
    ) -> WebhookSetupResult:
        scope = self._repo_scope(repository)
        if scope is None:
            return WebhookSetupResult.fail(ErrorKind.INVALID_IDENTIFIER, self._invalid_repo_message(repository))
        return await self._setup(scope, list(events) if events else DEFAULT_REPO_EVENTS)

    async def update_repo_webhook(self, repository: str, old_hostname: str, new_hostname: str) -> WebhookSetupResult:
        scope = self._repo_scope(repository)
        if scope is None:
            return WebhookSetupResult.fail(ErrorKind.INVALID_IDENTIFIER, self._invalid_repo_message(repository))
        return await self._update(scope, old_hostname, new_hostname)

    async def subscribe_repo(
        self,
        repository: str,
        events: Optional[Sequence[str]] = None,
        session: Optional[str] = None,
    ) -> SubscriptionResult:
        if self._repo_scope(repository) is None:
            return SubscriptionResult.fail(ErrorKind.INVALID_IDENTIFIER, self._invalid_repo_message(repository))
        if self.store.get(repository) is not None:
            return SubscriptionResult.fail(
                ErrorKind.ALREADY_SUBSCRIBED,
                f"{repository} is already subscribed; unsubscribe it first",
            )

        event_list = list(dict.fromkeys(events)) if events else list(DEFAULT_REPO_EVENTS)
        setup = await self.setup_repo_webhook(repository, event_list)
        if not setup.success:
            return SubscriptionResult.fail(setup.error_kind, setup.error)

        subscription = RepoSubscription(
            repository=repository,
            webhook_id=setup.webhook_id,
            events=event_list,
            session=session or None,
            created_at=datetime.now(timezone.utc),
        )
        await self.store.put(subscription)
        logger.info(f"Subscribed {repository}: webhook ID {setup.webhook_id}")
        return SubscriptionResult(success=True, subscription=subscription)

    async def unsubscribe_repo(self, repository: str) -> SubscriptionResult:
        scope = self._repo_scope(repository)
        if scope is None:
            return SubscriptionResult.fail(ErrorKind.INVALID_IDENTIFIER, self._invalid_repo_message(repository))
        subscription = self.store.get(repository)
        if subscription is None:
            return SubscriptionResult.fail(ErrorKind.NOT_SUBSCRIBED, f"{repository} is not subscribed")

        deleted = await self._delete(scope, subscription.webhook_id)
        if not deleted.success:
            if not _is_not_found(deleted.text):
                return SubscriptionResult.fail(
                    ErrorKind.REMOTE_CALL_FAILED,
                    f"Failed to delete webhook {subscription.webhook_id} for {repository}: {deleted.text}",
                )
            logger.info(f"Webhook {subscription.webhook_id} for {repository} was already gone")

        await self.store.remove(repository)
        logger.info(f"Unsubscribed {repository}")
        return SubscriptionResult(success=True, subscription=subscription)

    def list_subscriptions(self) -> List[RepoSubscription]:
        return self.store.list()


def _is_not_found(text: str) -> bool:
    lowered = text.lower()
    return "404" in lowered or "not found" in lowered
