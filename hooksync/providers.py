"""Collaborators that supply the public hostname and delivery config."""

from dataclasses import dataclass
from typing import Optional, Protocol

from .config import Settings


@dataclass
class WebhooksConfig:
    base_path: str
    token: str


class HostnameProvider(Protocol):
    async def get_hostname(self) -> Optional[str]: ...


class WebhooksConfigProvider(Protocol):
    def get_config(self) -> Optional[WebhooksConfig]: ...


class SettingsHostnameProvider:
    """Hostname from PUBLIC_HOSTNAME, switchable at runtime on a change signal."""

    def __init__(self, settings: Settings):
        self.hostname = settings.public_hostname or None

    async def get_hostname(self) -> Optional[str]:
        return self.hostname

    def set_hostname(self, hostname: Optional[str]) -> None:
        self.hostname = hostname or None


class SettingsWebhooksConfigProvider:
    def __init__(self, settings: Settings):
        self.settings = settings

    def get_config(self) -> Optional[WebhooksConfig]:
        if not self.settings.webhooks_base_path:
            return None
        return WebhooksConfig(
            base_path=self.settings.webhooks_base_path.rstrip("/"),
            token=self.settings.webhooks_token,
        )
