"""
Repository subscription store.

Holds the authoritative ``owner/repo -> RepoSubscription`` mapping in memory
and mirrors every mutation to the structured store. On startup it loads from
exactly one of three sources, in order:

1. a legacy JSON snapshot file, migrated into the structured store and then
   deleted;
2. the structured store's ``github_subscriptions`` table;
3. subscriptions embedded in configuration (first-run bootstrap).
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from .core.storage import SUBSCRIPTIONS_SCHEMA, SUBSCRIPTIONS_TABLE, StorageAPI, StorageError
from .schemas.subscription import RepoSubscription

logger = logging.getLogger("hooksync")


def _parse_mapping(raw: Any) -> Optional[Dict[str, RepoSubscription]]:
    """
    Parse a ``repo -> subscription`` mapping.

    The map key wins over any ``repo`` field in the value. Returns None if
    the shape is wrong or any entry is invalid.
    """
    if not isinstance(raw, dict):
        return None
    parsed: Dict[str, RepoSubscription] = {}
    for repo, value in raw.items():
        if not isinstance(value, dict):
            return None
        try:
            parsed[repo] = RepoSubscription.model_validate({**value, "repo": repo})
        except ValidationError:
            return None
    return parsed


class SubscriptionStore:
    def __init__(
        self,
        storage: Optional[StorageAPI] = None,
        legacy_path: Optional[Path | str] = None,
        config_subscriptions: Optional[Mapping[str, Any]] = None,
    ):
        self._storage = storage
        self._legacy_path = Path(legacy_path) if legacy_path else None
        self._config_subscriptions = dict(config_subscriptions or {})
        self._subscriptions: Dict[str, RepoSubscription] = {}
        self._loaded = False
        self._load_lock = asyncio.Lock()

    @property
    def persistent(self) -> bool:
        """False when running memory-only."""
        return self._storage is not None

    @property
    def loaded(self) -> bool:
        return self._loaded

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise RuntimeError("SubscriptionStore used before load()")

    async def load(self) -> None:
        """Run the startup load/migration once; later calls do nothing."""
        async with self._load_lock:
            if self._loaded:
                return
            await self._register_storage()

            if await self._load_legacy_file():
                source = "legacy file"
            elif await self._load_structured():
                source = "structured storage"
            else:
                await self._load_config()
                source = "config"

            self._loaded = True
            logger.info(f"Loaded {len(self._subscriptions)} subscription(s) from {source}")

    async def _register_storage(self) -> None:
        if self._storage is None:
            logger.warning("Structured storage unavailable - subscriptions will not persist across restarts")
            return
        try:
            await self._storage.register(SUBSCRIPTIONS_TABLE, SUBSCRIPTIONS_SCHEMA)
        except StorageError as e:
            logger.warning(f"Structured storage unavailable ({e}) - subscriptions will not persist across restarts")
            self._storage = None

    async def _load_legacy_file(self) -> bool:
        path = self._legacy_path
        if path is None or not path.is_file():
            return False
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.debug(f"Skipping unreadable legacy subscriptions file {path}")
            return False
        parsed = _parse_mapping(raw)
        if parsed is None:
            logger.debug(f"Skipping malformed legacy subscriptions file {path}")
            return False
        if not parsed:
            # Nothing to migrate; the next source stays authoritative.
            if self._storage is not None:
                try:
                    path.unlink()
                except OSError as e:
                    logger.warning(f"Could not delete empty legacy subscriptions file {path}: {e}")
            return False

        self._subscriptions = parsed
        if self._storage is None:
            # Nothing to migrate into; keep the file as the only durable copy.
            return True

        migrated = True
        for subscription in parsed.values():
            migrated = await self._persist(subscription) and migrated
        if not migrated:
            logger.warning(f"Legacy subscriptions from {path} not fully migrated; keeping the file")
            return True

        try:
            path.unlink()
        except OSError as e:
            logger.warning(f"Migrated legacy subscriptions but could not delete {path}: {e}")
        else:
            logger.info(f"Migrated {len(parsed)} subscription(s) from {path} to structured storage")
        return True

    async def _load_structured(self) -> bool:
        if self._storage is None:
            return False
        try:
            rows = await self._storage.list(SUBSCRIPTIONS_TABLE)
        except StorageError as e:
            logger.error(f"Failed to read subscriptions from storage: {e}")
            return False
        loaded: Dict[str, RepoSubscription] = {}
        for row in rows:
            try:
                subscription = RepoSubscription.model_validate(row)
            except ValidationError:
                logger.warning(f"Skipping malformed subscription row: {row!r}")
                continue
            loaded[subscription.repository] = subscription
        if not loaded:
            return False
        self._subscriptions = loaded
        return True

    async def _load_config(self) -> None:
        parsed = _parse_mapping(self._config_subscriptions)
        if parsed is None:
            if self._config_subscriptions:
                logger.warning("Ignoring malformed subscriptions in configuration")
            return
        self._subscriptions = parsed
        for subscription in parsed.values():
            await self._persist(subscription)

    async def _persist(self, subscription: RepoSubscription) -> bool:
        if self._storage is None:
            return False
        try:
            await self._storage.put(SUBSCRIPTIONS_TABLE, subscription.repository, subscription.to_record())
            return True
        except StorageError as e:
            logger.error(f"Failed to persist subscription for {subscription.repository}: {e}")
            return False

    def get(self, repository: str) -> Optional[RepoSubscription]:
        self._require_loaded()
        return self._subscriptions.get(repository)

    def list(self) -> List[RepoSubscription]:
        self._require_loaded()
        return list(self._subscriptions.values())

    async def put(self, subscription: RepoSubscription) -> None:
        """Upsert; a storage failure is logged and memory keeps the new value."""
        self._require_loaded()
        self._subscriptions[subscription.repository] = subscription
        await self._persist(subscription)

    async def remove(self, repository: str) -> None:
        self._require_loaded()
        self._subscriptions.pop(repository, None)
        if self._storage is None:
            return
        try:
            await self._storage.delete(SUBSCRIPTIONS_TABLE, repository)
        except StorageError as e:
            logger.error(f"Failed to delete subscription for {repository} from storage: {e}")
