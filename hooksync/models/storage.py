"""Key-value storage models backing the plugin Storage API"""

from datetime import datetime, timezone
from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from hooksync.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StorageTable(Base):
    """A registered logical table (e.g. github_subscriptions)"""

    __tablename__ = "storage_tables"

    name = Column(String(255), primary_key=True)
    description = Column(Text)
    version = Column(Integer, default=1)

    registered_at = Column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<StorageTable(name={self.name}, version={self.version})>"


class StorageEntry(Base):
    """One value stored under (table, key)"""

    __tablename__ = "storage_entries"

    table_name = Column(String(255), primary_key=True)
    key = Column(String(255), primary_key=True)
    value = Column(JSON, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<StorageEntry(table={self.table_name}, key={self.key})>"
