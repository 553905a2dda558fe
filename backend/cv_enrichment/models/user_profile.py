"""
User-provided pointers to their external profiles (GitHub, LinkedIn, website).
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime
from ..database import Base


class UserExternalProfile(Base):
    """Latest hints a user supplied with an enrichment request."""
    __tablename__ = "user_external_profiles"

    user_id = Column(String(255), primary_key=True)
    github = Column(String(255), nullable=True)
    linkedin = Column(String(500), nullable=True)
    website = Column(String(500), nullable=True)
    name = Column(String(255), nullable=True)

    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )
