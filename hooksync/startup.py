"""
Startup utilities for hooksync
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from hooksync.config import Settings, get_settings
from hooksync.core.database import close_db, create_engine, create_session_factory, init_db
from hooksync.core.storage import SqlStorage
from hooksync.github_cli import GhClient
from hooksync.plugin import GitHubPlugin
from hooksync.providers import SettingsHostnameProvider, SettingsWebhooksConfigProvider
from hooksync.store import SubscriptionStore

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    plugin: GitHubPlugin
    engine: Optional[AsyncEngine] = None


async def open_storage(settings: Settings) -> tuple[Optional[SqlStorage], Optional[AsyncEngine]]:
    """
    Connect the structured store.

    Returns (None, None) when DATABASE_URL is empty or the database cannot be
    initialized; the subscription store then runs memory-only.
    """
    if not settings.database_url:
        return None, None
    engine = create_engine(settings.database_url)
    try:
        await init_db(engine)
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Failed to initialize database: {e}")
        await close_db(engine)
        return None, None
    return SqlStorage(create_session_factory(engine), timeout=settings.storage_timeout), engine


async def startup_tasks(settings: Optional[Settings] = None) -> Runtime:
    """
    Build and initialize the plugin.
    """
    settings = settings or get_settings()
    logger.info("Running startup tasks...")

    storage, engine = await open_storage(settings)
    store = SubscriptionStore(
        storage=storage,
        legacy_path=settings.github_legacy_subscriptions_file or None,
        config_subscriptions=settings.github_subscriptions,
    )
    plugin = GitHubPlugin(
        settings=settings,
        client=GhClient(settings.gh_binary, timeout=settings.github_command_timeout),
        hostname_provider=SettingsHostnameProvider(settings),
        config_provider=SettingsWebhooksConfigProvider(settings),
        store=store,
    )
    await plugin.init()

    logger.info("Startup tasks completed")
    return Runtime(plugin=plugin, engine=engine)


async def shutdown_tasks(runtime: Runtime) -> None:
    """
    Run all shutdown tasks.
    """
    logger.info("Running shutdown tasks...")
    await runtime.plugin.shutdown()
    if runtime.engine is not None:
        await close_db(runtime.engine)
    logger.info("Shutdown tasks completed")


if __name__ == "__main__":
    async def _main() -> None:
        runtime = await startup_tasks()
        await shutdown_tasks(runtime)

    # Run startup tasks directly
    asyncio.run(_main())
