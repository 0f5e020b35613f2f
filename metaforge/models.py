"""
================================================================================
MetaForge - Database Models
================================================================================
SQLAlchemy models for the scraper profile store.

  - ScraperProfileRecord: one user-defined aggregation profile. Slot
    configurations live in a JSON column keyed by slot name:

        {
          "info": {
            "providers": [{"provider_id": "vndb", "priority": 0, "enabled": true}],
            "merge_strategy": "merge"
          },
          ...
        }
================================================================================
"""

from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, Index
from sqlalchemy.orm import declarative_base, declared_attr

Base = declarative_base()


# =============================================================================
# MIXINS
# =============================================================================

class TimestampMixin:
    """Adds created_at and updated_at timestamps to models."""
    @declared_attr
    def created_at(cls):
        return Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)

    @declared_attr
    def updated_at(cls):
        return Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc), nullable=False)


# =============================================================================
# SCRAPER PROFILES
# =============================================================================

class ScraperProfileRecord(Base, TimestampMixin):
    """Persisted aggregation profile."""
    __tablename__ = 'scraper_profiles'

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    media_type = Column(String(32), nullable=False, default='game')
    default_locale = Column(String(16), nullable=True)
    search_provider_id = Column(String(128), nullable=False)
    slot_configs = Column(JSON, nullable=False, default=dict)
    order = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index('idx_scraper_profiles_media_type', 'media_type'),
        Index('idx_scraper_profiles_order', 'order'),
    )

    def __repr__(self):
        return f"<ScraperProfileRecord(id='{self.id}', media_type='{self.media_type}')>"
