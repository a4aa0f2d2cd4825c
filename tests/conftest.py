"""Shared test fixtures."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from hooksync.config import Settings
from hooksync.core.storage import StorageError, StorageTableSchema
from hooksync.github_cli import CommandResult
from hooksync.plugin import GitHubPlugin
from hooksync.providers import SettingsHostnameProvider, SettingsWebhooksConfigProvider
from hooksync.reconciler import WebhookReconciler
from hooksync.store import SubscriptionStore

HOSTNAME = "box.tail1234.ts.net"
TOKEN = "s3cret-token"


class FakeGitHub:
    """
    Stateful stand-in for the gh CLI.

    Understands the ``gh api`` argument shapes used for hooks (list, create,
    PATCH config, DELETE) and keeps registrations per scope, e.g.
    ``orgs/acme/hooks``. Other commands answer from ``responses``.
    """

    def __init__(self) -> None:
        self.authenticated = True
        self.login = "hooksync-bot"
        self.hooks: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[List[str]] = []
        self.failures: Dict[str, str] = {}
        self.create_output: Optional[str] = None
        self.responses: Dict[tuple, CommandResult] = {}
        self._next_id = 1000

    # helpers --------------------------------------------------------

    def add_hook(self, scope: str, url: str, events: Optional[List[str]] = None) -> int:
        self._next_id += 1
        self.hooks.setdefault(scope, []).append(
            {"id": self._next_id, "url": url, "events": events or [], "secret": None}
        )
        return self._next_id

    def urls(self, scope: str) -> List[str]:
        return [hook["url"] for hook in self.hooks.get(scope, [])]

    def writes(self) -> List[List[str]]:
        return [call for call in self.calls if "-X" in call and call[call.index("-X") + 1] != "GET"]

    def methods(self) -> List[str]:
        return [call[call.index("-X") + 1] for call in self.writes()]

    # RemoteClient ---------------------------------------------------

    async def check_auth(self) -> bool:
        result = await self.call(["auth", "status"])
        return result.success

    async def call(self, args: List[str]) -> CommandResult:
        self.calls.append(list(args))
        if args[:2] == ["auth", "status"]:
            return CommandResult("Logged in" if self.authenticated else "not logged in", self.authenticated)
        if args and args[0] == "api":
            return self._api(args)
        return self.responses.get(tuple(args[:2]), CommandResult("unknown command", False))

    def _api(self, args: List[str]) -> CommandResult:
        path = args[1]
        if path == "user":
            return CommandResult(self.login, True)
        method = "GET"
        fields: List[tuple[str, str]] = []
        i = 2
        while i < len(args):
            if args[i] == "-X":
                method = args[i + 1]
                i += 2
            elif args[i] in ("-f", "-F"):
                key, _, value = args[i + 1].partition("=")
                fields.append((key, value))
                i += 2
            elif args[i] == "--jq":
                i += 2
            else:
                i += 1

        if method in self.failures:
            return CommandResult(self.failures[method], False)

        parts = path.split("/")
        index = parts.index("hooks")
        scope = "/".join(parts[: index + 1])
        rest = parts[index + 1:]
        hooks = self.hooks.setdefault(scope, [])

        if method == "GET" and not rest:
            return CommandResult("\n".join(f"{hook['id']}\t{hook['url']}" for hook in hooks), True)

        if method == "POST" and not rest:
            values = dict(fields)
            self._next_id += 1
            hooks.append({
                "id": self._next_id,
                "url": values.get("config[url]"),
                "events": [value for key, value in fields if key == "events[]"],
                "secret": values.get("config[secret]"),
            })
            return CommandResult(self.create_output or str(self._next_id), True)

        hook = next((h for h in hooks if str(h["id"]) == rest[0]), None) if rest else None
        if hook is None:
            return CommandResult("gh: Not Found (HTTP 404)", False)

        if method == "PATCH" and rest[1:] == ["config"]:
            hook["url"] = dict(fields)["url"]
            return CommandResult(hook["url"], True)

        if method == "DELETE":
            hooks.remove(hook)
            return CommandResult("", True)

        return CommandResult(f"unsupported: {method} {path}", False)


class MemoryStorage:
    """In-memory StorageAPI with switchable failures."""

    def __init__(self) -> None:
        self.tables: Dict[str, Dict[str, Any]] = {}
        self.schemas: Dict[str, StorageTableSchema] = {}
        self.fail_register = False
        self.fail_writes = False

    async def register(self, table: str, schema: StorageTableSchema) -> None:
        if self.fail_register:
            raise StorageError("database offline")
        self.schemas[table] = schema
        self.tables.setdefault(table, {})

    async def get(self, table: str, key: str) -> Optional[Any]:
        return self.tables[table].get(key)

    async def put(self, table: str, key: str, value: Any) -> None:
        if self.fail_writes:
            raise StorageError("disk full")
        self.tables[table][key] = value

    async def list(self, table: str) -> List[Any]:
        return list(self.tables[table].values())

    async def delete(self, table: str, key: str) -> None:
        if self.fail_writes:
            raise StorageError("disk full")
        self.tables[table].pop(key, None)


def make_settings(tmp_path, **overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "GITHUB_ORGS": ["acme"],
        "PUBLIC_HOSTNAME": HOSTNAME,
        "WEBHOOKS_BASE_PATH": "/hooks",
        "WEBHOOKS_TOKEN": TOKEN,
        "DATABASE_URL": "",
        "GITHUB_LEGACY_SUBSCRIPTIONS_FILE": str(tmp_path / "github-subscriptions.json"),
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def hostname_provider(settings) -> SettingsHostnameProvider:
    return SettingsHostnameProvider(settings)


@pytest.fixture
def config_provider(settings) -> SettingsWebhooksConfigProvider:
    return SettingsWebhooksConfigProvider(settings)


@pytest.fixture
async def store(storage, settings) -> SubscriptionStore:
    subscription_store = SubscriptionStore(storage=storage, legacy_path=settings.github_legacy_subscriptions_file)
    await subscription_store.load()
    return subscription_store


@pytest.fixture
def reconciler(github, hostname_provider, config_provider, store) -> WebhookReconciler:
    return WebhookReconciler(github, hostname_provider, config_provider, store)


@pytest.fixture
def plugin(settings, github, hostname_provider, config_provider, store) -> GitHubPlugin:
    return GitHubPlugin(settings, github, hostname_provider, config_provider, store)
