"""
Persistent tier of the external data cache.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON
from ..database import Base


class CacheRecord(Base):
    """
    One cached payload. The primary key is the sanitized cache key,
    the original key is kept for prefix lookups.
    """
    __tablename__ = "external_data_cache"

    doc_id = Column(String(500), primary_key=True)
    key = Column(Text, nullable=False, index=True)
    data = Column(JSON, nullable=True)
    source = Column(String(100), default="external_data", nullable=False)
    hits = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
