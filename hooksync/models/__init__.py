"""Database models for hooksync"""

from hooksync.models.storage import StorageEntry, StorageTable

__all__ = ["StorageEntry", "StorageTable"]
