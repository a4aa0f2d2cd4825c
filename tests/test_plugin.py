from __future__ import annotations

import json
import logging

import pytest

from hooksync.github_cli import CommandResult
from hooksync.schemas.subscription import RepoSubscription
from hooksync.schemas.webhook import ErrorKind, SetupAction

from tests.conftest import HOSTNAME

URL = f"https://{HOSTNAME}/hooks/github"
OLD_HOST = "old-box.ts.net"
OLD_URL = f"https://{OLD_HOST}/hooks/github"


@pytest.fixture
def logs(caplog):
    caplog.set_level(logging.INFO, logger="hooksync")
    return caplog


def _messages(caplog, level=None):
    return [r.getMessage() for r in caplog.records if level is None or r.levelno == level]


async def test_init_warns_when_not_authenticated(plugin, github, logs):
    github.authenticated = False

    await plugin.init()

    assert "GitHub CLI not authenticated - run 'gh auth login'" in _messages(logs, logging.WARNING)
    assert "GitHub plugin initialized for orgs: acme" in _messages(logs)


async def test_infrastructure_ready_sets_up_orgs_and_repos(plugin, github, store):
    await store.put(RepoSubscription(repository="acme/widgets", webhook_id=1, events=["push"]))

    results = await plugin.on_infrastructure_ready()

    assert [r.action for r in results] == [SetupAction.CREATED, SetupAction.CREATED]
    assert github.urls("orgs/acme/hooks") == [URL]
    assert github.urls("repos/acme/widgets/hooks") == [URL]
    # The repo registration was recreated, so the record follows the new id
    assert store.get("acme/widgets").webhook_id == results[1].webhook_id


async def test_ready_twice_does_not_duplicate(plugin, github):
    await plugin.on_infrastructure_ready()
    await plugin.on_infrastructure_ready()

    assert github.methods() == ["POST"]


async def test_hostname_change_updates_orgs_and_subscriptions(plugin, github, store):
    org_id = github.add_hook("orgs/acme/hooks", OLD_URL)
    repo_id = github.add_hook("repos/acme/widgets/hooks", OLD_URL)
    await store.put(RepoSubscription(repository="acme/widgets", webhook_id=repo_id, events=["push"]))

    results = await plugin.on_hostname_changed(OLD_HOST, HOSTNAME)

    assert [r.webhook_id for r in results] == [org_id, repo_id]
    assert all(r.action == SetupAction.UPDATED for r in results)
    assert github.urls("orgs/acme/hooks") == [URL]
    assert github.urls("repos/acme/widgets/hooks") == [URL]
    assert await plugin.get_webhook_url() == URL

    # Redelivered signal is a no-op
    again = await plugin.on_hostname_changed(OLD_HOST, HOSTNAME)
    assert all(r.action == SetupAction.EXISTING for r in again)
    assert github.methods() == ["PATCH", "PATCH"]


async def test_hostname_change_records_changed_subscription_id(plugin, github, store):
    new_id = github.add_hook("repos/acme/widgets/hooks", OLD_URL)
    await store.put(RepoSubscription(repository="acme/widgets", webhook_id=1, events=["push"]))

    await plugin.on_hostname_changed(OLD_HOST, HOSTNAME)

    assert store.get("acme/widgets").webhook_id == new_id


async def test_hostname_change_reports_missing_registration(plugin, github, logs):
    results = await plugin.on_hostname_changed(OLD_HOST, HOSTNAME)

    assert results[0].error_kind == ErrorKind.NO_EXISTING_REGISTRATION
    assert any("Webhook update failed for acme" in m for m in _messages(logs, logging.ERROR))


async def test_status_command(plugin, logs):
    await plugin.run_command(["status"])

    messages = _messages(logs)
    assert "GitHub CLI: authenticated as hooksync-bot" in messages
    assert f"Webhook URL: {URL}" in messages
    assert "Configured orgs: acme" in messages


async def test_status_reports_username(plugin, github):
    status = await plugin.status()

    assert status.authenticated is True
    assert status.username == "hooksync-bot"


async def test_status_username_unknown_when_not_authenticated(plugin, github, logs):
    github.authenticated = False

    status = await plugin.status()
    await plugin.run_command(["status"])

    assert status.username == "unknown"
    assert "GitHub CLI: not authenticated" in _messages(logs)


async def test_status_username_unknown_when_lookup_fails(plugin, github):
    github.login = ""

    assert (await plugin.status()).username == "unknown"


async def test_setup_command_uses_argument(plugin, github, logs):
    await plugin.run_command(["webhook", "other-org"])

    assert github.urls("orgs/other-org/hooks") == [URL]
    assert "Setting up webhook for other-org..." in _messages(logs)


async def test_setup_command_reports_failure(plugin, logs):
    await plugin.run_command(["setup", "../evil"])

    assert any("Invalid org name" in m for m in _messages(logs, logging.ERROR))


async def test_pr_command_rejects_bad_refs(plugin, github, logs):
    await plugin.run_command(["pr", "42"])
    await plugin.run_command(["pr", "https://github.com/o/r/pull/42"])

    errors = _messages(logs, logging.ERROR)
    assert len([m for m in errors if "Invalid format" in m]) == 2
    assert github.calls == []


async def test_pr_command_shows_summary(plugin, github, logs):
    github.responses[("pr", "view")] = CommandResult(
        json.dumps({
            "number": 42,
            "title": "My PR",
            "state": "OPEN",
            "author": {"login": "dev"},
            "labels": [],
            "body": "Description",
            "url": "https://github.com/owner/repo/pull/42",
            "createdAt": "2024-01-01T00:00:00Z",
            "updatedAt": "2024-01-01T00:00:00Z",
            "headRefName": "feature",
            "baseRefName": "main",
            "additions": 10,
            "deletions": 5,
        }),
        True,
    )

    await plugin.run_command(["pr", "owner/repo#42"])

    last = _messages(logs, logging.INFO)[-1]
    assert "PR #42" in last
    assert "My PR" in last


async def test_issue_command_reports_missing_issue(plugin, logs):
    await plugin.run_command(["issue", "owner/repo#999"])

    assert _messages(logs, logging.ERROR)[-1] == "Could not fetch issue owner/repo#999"


async def test_subscribe_and_unsubscribe_commands(plugin, store, logs):
    await plugin.run_command(["subscribe", "acme/widgets", "--events", "push,issues", "--session", "ops"])

    sub = store.get("acme/widgets")
    assert sub.events == ["push", "issues"]
    assert sub.session == "ops"

    await plugin.run_command(["subscriptions"])
    assert any(m.startswith("acme/widgets (webhook") for m in _messages(logs))

    await plugin.run_command(["unsubscribe", "acme/widgets"])
    assert store.get("acme/widgets") is None


async def test_unknown_command_prints_usage(plugin, logs):
    await plugin.run_command([])

    assert _messages(logs)[0].startswith("Usage: github")
