"""
External data usage tracking - one row per enrichment request.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON
from ..database import Base


class ExternalDataUsageEvent(Base):
    __tablename__ = "external_data_usage_events"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    cv_id = Column(String(255), nullable=True)
    request_id = Column(String(100), nullable=True)

    sources = Column(JSON, default=list)
    success = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), nullable=True)  # success, partial, failed

    # Metrics
    fetch_duration_ms = Column(Integer, default=0)
    sources_queried = Column(Integer, default=0)
    sources_successful = Column(Integer, default=0)
    cache_hits = Column(Integer, default=0)
    errors = Column(JSON, default=list)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
