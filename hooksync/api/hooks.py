"""Inbound GitHub webhook delivery"""

import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from hooksync.api.github import get_plugin
from hooksync.plugin import GitHubPlugin
from hooksync.schemas.webhook import WebhookEvent, WebhookRouteResult

logger = logging.getLogger("hooksync")

router = APIRouter(tags=["hooks"])


@router.post("/github", response_model=WebhookRouteResult)
async def github_webhook(
    request: Request,
    x_github_event: str = Header(None, alias="X-GitHub-Event"),
    x_github_delivery: str = Header(None, alias="X-GitHub-Delivery"),
    plugin: GitHubPlugin = Depends(get_plugin),
):
    raw_body = await request.body()
    try:
        payload: Dict[str, Any] = json.loads(raw_body.decode("utf-8")) if raw_body else {}
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.exception("Invalid JSON payload")
        raise HTTPException(status_code=400, detail="Invalid JSON")

    if not isinstance(payload, dict):
        payload = {}

    logger.info(f">>> Webhook received: event={x_github_event} delivery={x_github_delivery}")
    event = WebhookEvent(event_type=x_github_event, delivery_id=x_github_delivery, payload=payload)
    return plugin.handle_webhook(event)
