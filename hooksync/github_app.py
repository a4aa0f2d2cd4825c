import asyncio
import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from .core.security import validate_repo
from .github_cli import RemoteClient
from .schemas.activity import ItemSummary

logger = logging.getLogger("hooksync")

BODY_PREVIEW_LENGTH = 200
DEFAULT_ACTIVITY_LIMIT = 10
MAX_ACTIVITY_LIMIT = 50

ISSUE_FIELDS = "number,title,state,author,labels,body,url,createdAt,updatedAt"
PR_FIELDS = (
    f"{ISSUE_FIELDS},mergeable,reviewDecision,additions,deletions,headRefName,baseRefName"
)
LIST_FIELDS = "number,title,state,author,labels,url,createdAt,updatedAt"


def preview_body(body: Optional[str], limit: int = BODY_PREVIEW_LENGTH) -> str:
    """Collapse whitespace and cut to ``limit`` chars, ending in "..." when cut."""
    text = " ".join((body or "").split())
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def _author(data: Dict[str, Any]) -> str:
    author = data.get("author")
    if isinstance(author, dict) and author.get("login"):
        return author["login"]
    return "unknown"


def _labels(data: Dict[str, Any]) -> List[str]:
    return [label["name"] for label in data.get("labels") or [] if isinstance(label, dict) and "name" in label]


def _summary(kind: str, repo: str, data: Dict[str, Any]) -> ItemSummary:
    summary = ItemSummary(
        type=kind,
        repo=repo,
        number=data["number"],
        title=data.get("title") or "",
        state=data.get("state") or "",
        author=_author(data),
        labels=_labels(data),
        body_preview=preview_body(data.get("body")),
        url=data.get("url") or "",
        created_at=data.get("createdAt") or "",
        updated_at=data.get("updatedAt") or "",
    )
    if kind == "pr":
        summary.additions = data.get("additions")
        summary.deletions = data.get("deletions")
        summary.head_ref = data.get("headRefName")
        summary.base_ref = data.get("baseRefName")
        summary.mergeable = data.get("mergeable")
        summary.review_decision = data.get("reviewDecision")
    return summary


async def _view(client: RemoteClient, kind: str, repo: str, number: int) -> Optional[ItemSummary]:
    if not validate_repo(repo):
        return None
    command = "pr" if kind == "pr" else "issue"
    fields = PR_FIELDS if kind == "pr" else ISSUE_FIELDS
    result = await client.call([command, "view", str(number), "--repo", repo, "--json", fields])
    if not result.success:
        logger.debug(f"gh {command} view {repo}#{number} failed: {result.text}")
        return None
    try:
        data = json.loads(result.text)
        return _summary(kind, repo, data)
    except (ValueError, KeyError, TypeError):
        logger.warning(f"Unexpected gh {command} view output for {repo}#{number}")
        return None


async def view_pr(client: RemoteClient, repo: str, number: int) -> Optional[ItemSummary]:
    """
    Fetch a pull request summary.

    Returns:
        ItemSummary, or None when gh fails or returns something unparseable
    """
    return await _view(client, "pr", repo, number)


async def view_issue(client: RemoteClient, repo: str, number: int) -> Optional[ItemSummary]:
    return await _view(client, "issue", repo, number)


async def _list_items(client: RemoteClient, kind: str, repo: str, limit: int) -> List[ItemSummary]:
    command = "pr" if kind == "pr" else "issue"
    result = await client.call([
        command, "list", "--repo", repo, "--state", "all",
        "--limit", str(limit), "--json", LIST_FIELDS,
    ])
    if not result.success:
        logger.warning(f"gh {command} list failed for {repo}: {result.text}")
        return []
    try:
        rows = json.loads(result.text)
        return [_summary(kind, repo, row) for row in rows]
    except (ValueError, KeyError, TypeError):
        logger.warning(f"Unexpected gh {command} list output for {repo}")
        return []


async def recent_activity(
    client: RemoteClient,
    repos: Iterable[str],
    limit: Optional[int] = None,
) -> List[ItemSummary]:
    """
    Recent PRs and issues across ``repos``, most recently updated first.

    ``limit`` defaults to 10 and is capped at 50.
    """
    limit = max(1, min(limit or DEFAULT_ACTIVITY_LIMIT, MAX_ACTIVITY_LIMIT))
    targets = [repo for repo in repos if validate_repo(repo)]
    batches = await asyncio.gather(*[
        _list_items(client, kind, repo, limit)
        for repo in targets
        for kind in ("pr", "issue")
    ])
    items = [item for batch in batches for item in batch]
    items.sort(key=lambda item: item.updated_at, reverse=True)
    return items[:limit]
