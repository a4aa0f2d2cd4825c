"""GitHub integration management API routes"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from hooksync.github_app import MAX_ACTIVITY_LIMIT
from hooksync.plugin import GitHubPlugin
from hooksync.schemas.activity import ItemSummary
from hooksync.schemas.subscription import SubscribeRequest, SubscriptionResponse
from hooksync.schemas.webhook import (
    ErrorKind,
    HostnameChange,
    StatusResponse,
    WebhookSetupResult,
)

router = APIRouter(prefix="/plugins/github", tags=["github"])

ERROR_STATUS = {
    ErrorKind.INVALID_IDENTIFIER: 400,
    ErrorKind.NOT_AUTHENTICATED: 401,
    ErrorKind.NOT_SUBSCRIBED: 404,
    ErrorKind.NO_EXISTING_REGISTRATION: 404,
    ErrorKind.ALREADY_SUBSCRIBED: 409,
    ErrorKind.REMOTE_CALL_FAILED: 502,
    ErrorKind.UPDATE_FAILED: 502,
    ErrorKind.INVALID_RESPONSE_FORMAT: 502,
    ErrorKind.NO_URL_AVAILABLE: 503,
    ErrorKind.NO_TOKEN_CONFIGURED: 503,
}


def get_plugin(request: Request) -> GitHubPlugin:
    """Dependency returning the plugin built at startup"""
    plugin = getattr(request.app.state, "plugin", None)
    if plugin is None:
        raise HTTPException(status_code=503, detail="GitHub plugin not initialized")
    return plugin


def raise_for_failure(error_kind: Optional[ErrorKind], error: Optional[str]) -> None:
    raise HTTPException(status_code=ERROR_STATUS.get(error_kind, 500), detail=error or "Request failed")


@router.get("/status", response_model=StatusResponse)
async def get_status(plugin: GitHubPlugin = Depends(get_plugin)):
    """Authentication state, webhook URL, orgs and subscription count"""
    return await plugin.status()


@router.get("/repos", response_model=List[SubscriptionResponse])
async def list_repos(plugin: GitHubPlugin = Depends(get_plugin)):
    """Repositories watched via webhooks"""
    return [SubscriptionResponse.from_subscription(sub) for sub in plugin.list_subscriptions()]


@router.get("/activity", response_model=List[ItemSummary])
async def get_activity(
    repo: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=MAX_ACTIVITY_LIMIT),
    plugin: GitHubPlugin = Depends(get_plugin),
):
    """Recent PRs and issues across watched repos"""
    return await plugin.recent_activity(repo, limit)


@router.post("/orgs/{org}/webhook", response_model=WebhookSetupResult)
async def setup_org_webhook(org: str, plugin: GitHubPlugin = Depends(get_plugin)):
    result = await plugin.setup_org_webhook(org)
    if not result.success:
        raise_for_failure(result.error_kind, result.error)
    return result


@router.post("/repos/{owner}/{name}/subscription", response_model=SubscriptionResponse, status_code=201)
async def subscribe_repo(
    owner: str,
    name: str,
    body: Optional[SubscribeRequest] = None,
    plugin: GitHubPlugin = Depends(get_plugin),
):
    body = body or SubscribeRequest()
    result = await plugin.subscribe_repo(f"{owner}/{name}", body.events, body.session)
    if not result.success or result.subscription is None:
        raise_for_failure(result.error_kind, result.error)
    return SubscriptionResponse.from_subscription(result.subscription)


@router.delete("/repos/{owner}/{name}/subscription")
async def unsubscribe_repo(owner: str, name: str, plugin: GitHubPlugin = Depends(get_plugin)):
    result = await plugin.unsubscribe_repo(f"{owner}/{name}")
    if not result.success:
        raise_for_failure(result.error_kind, result.error)
    return {"status": "unsubscribed", "repo": f"{owner}/{name}"}


@router.post("/signals/ready", response_model=List[WebhookSetupResult])
async def infrastructure_ready(plugin: GitHubPlugin = Depends(get_plugin)):
    return await plugin.on_infrastructure_ready()


@router.post("/signals/hostname", response_model=List[WebhookSetupResult])
async def hostname_changed(change: HostnameChange, plugin: GitHubPlugin = Depends(get_plugin)):
    return await plugin.on_hostname_changed(change.old_hostname, change.new_hostname)
