"""
Client for the daemon's GitHub endpoints.

Mirrors the read-only tools exposed to browser agents: integration status,
watched repositories and recent activity.
"""

from typing import Any, Dict, List, Optional

import httpx


class DaemonAPIError(Exception):
    """Non-2xx response from the daemon API."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class DaemonClient:
    def __init__(
        self,
        api_base: str = "http://localhost:8000",
        token: Optional[str] = None,
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport

    async def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(f"{self.api_base}{path}", headers=headers, params=params)

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = None
            if isinstance(body, dict):
                message = body.get("detail") or body.get("error")
            if not isinstance(message, str):
                message = f"Request failed ({response.status_code})"
            raise DaemonAPIError(message, response.status_code)
        return response.json()

    async def get_github_status(self) -> Dict[str, Any]:
        """Authenticated state, connected orgs, webhook URL, subscription count."""
        return await self._request("/plugins/github/status")

    async def list_watched_repos(self) -> List[Dict[str, Any]]:
        """Repos monitored via webhooks, with event types and session routing."""
        return await self._request("/plugins/github/repos")

    async def get_recent_activity(self, repo: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Recent PRs and issues, optionally for one ``owner/repo``; limit max 50."""
        params: Dict[str, Any] = {}
        if repo:
            params["repo"] = repo
        if limit:
            params["limit"] = limit
        return await self._request("/plugins/github/activity", params=params or None)
