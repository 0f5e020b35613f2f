"""
================================================================================
MetaForge - Scraper Profiles
================================================================================
User-defined aggregation configuration and the stores that hold it.

A profile names its search provider (the entry point for id resolution),
an optional default locale, and one SlotConfig per slot of its media
type. The engine only reads and corrects profiles; creating and editing
them is the settings UI's job.

Stores:
  - InMemoryProfileStore: thread-safe dict, copies on read and write
  - SQLProfileStore:      SQLAlchemy table `scraper_profiles`
================================================================================
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..database import get_db_session
from ..models import ScraperProfileRecord
from .exceptions import ProfileNotFoundError
from .models import MediaType
from .slots import SlotConfig

logger = logging.getLogger(__name__)


@dataclass
class ScraperProfile:
    """Aggregation profile for one media type."""
    id: str
    name: str
    media_type: MediaType
    search_provider_id: str
    slot_configs: Dict[str, SlotConfig] = field(default_factory=dict)
    default_locale: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self):
        self.media_type = MediaType(self.media_type)

    def slot_config_dicts(self) -> Dict[str, Any]:
        return {slot: config.to_dict() for slot, config in self.slot_configs.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'media_type': self.media_type.value,
            'search_provider_id': self.search_provider_id,
            'default_locale': self.default_locale,
            'description': self.description,
            'slot_configs': self.slot_config_dicts(),
        }

    @staticmethod
    def parse_slot_configs(raw: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Parse stored slot configs.

        Malformed entries are kept as raw values so validation can detect
        and replace them instead of silently losing the change.
        """
        parsed: Dict[str, Any] = {}
        for slot, value in (raw or {}).items():
            config = value if isinstance(value, SlotConfig) else SlotConfig.from_dict(value)
            parsed[slot] = config if config is not None else value
        return parsed

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScraperProfile':
        return cls(
            id=data['id'],
            name=data.get('name') or data['id'],
            media_type=MediaType(data.get('media_type', MediaType.GAME)),
            search_provider_id=data['search_provider_id'],
            slot_configs=cls.parse_slot_configs(data.get('slot_configs')),
            default_locale=data.get('default_locale'),
            description=data.get('description'),
        )


# =============================================================================
# STORE CONTRACT
# =============================================================================

class ProfileStore(ABC):
    """Persistence boundary for profiles (consumed, not owned, by the engine)."""

    @abstractmethod
    def load(self, profile_id: str) -> ScraperProfile:
        """Return the profile or raise ProfileNotFoundError."""

    @abstractmethod
    def save(self, profile: ScraperProfile) -> None:
        """Insert or replace a profile."""

    @abstractmethod
    def delete(self, profile_id: str) -> bool:
        """Delete a profile; True if it existed."""

    @abstractmethod
    def list_by_media_type(self, media_type: Union[MediaType, str]) -> List[ScraperProfile]:
        """All profiles of one media type."""


class InMemoryProfileStore(ProfileStore):
    """Thread-safe in-memory store. Callers never share objects with it."""

    def __init__(self, profiles: Optional[List[ScraperProfile]] = None):
        self._profiles: Dict[str, ScraperProfile] = {}
        self._lock = threading.Lock()
        for profile in profiles or []:
            self.save(profile)

    def load(self, profile_id: str) -> ScraperProfile:
        with self._lock:
            profile = self._profiles.get(profile_id)
            if profile is None:
                raise ProfileNotFoundError(profile_id)
            return copy.deepcopy(profile)

    def save(self, profile: ScraperProfile) -> None:
        with self._lock:
            self._profiles[profile.id] = copy.deepcopy(profile)

    def delete(self, profile_id: str) -> bool:
        with self._lock:
            return self._profiles.pop(profile_id, None) is not None

    def list_by_media_type(self, media_type: Union[MediaType, str]) -> List[ScraperProfile]:
        media_type = MediaType(media_type)
        with self._lock:
            return [copy.deepcopy(p) for p in self._profiles.values() if p.media_type == media_type]

    def __contains__(self, profile_id: str) -> bool:
        with self._lock:
            return profile_id in self._profiles


class SQLProfileStore(ProfileStore):
    """
    SQLAlchemy-backed store.

    Args:
        session_factory: sessionmaker to use (global factory if None)
    """

    def __init__(self, session_factory=None):
        self._session_factory = session_factory

    @staticmethod
    def _to_profile(record: ScraperProfileRecord) -> ScraperProfile:
        return ScraperProfile(
            id=record.id,
            name=record.name,
            media_type=MediaType(record.media_type),
            search_provider_id=record.search_provider_id,
            slot_configs=ScraperProfile.parse_slot_configs(record.slot_configs),
            default_locale=record.default_locale,
            description=record.description,
        )

    def load(self, profile_id: str) -> ScraperProfile:
        with get_db_session(self._session_factory) as session:
            record = session.get(ScraperProfileRecord, profile_id)
            if record is None:
                raise ProfileNotFoundError(profile_id)
            return self._to_profile(record)

    def save(self, profile: ScraperProfile) -> None:
        slot_configs = {
            slot: config.to_dict() if isinstance(config, SlotConfig) else config
            for slot, config in profile.slot_configs.items()
        }
        with get_db_session(self._session_factory) as session:
            record = session.get(ScraperProfileRecord, profile.id)
            if record is None:
                record = ScraperProfileRecord(id=profile.id)
                session.add(record)
            record.name = profile.name
            record.description = profile.description
            record.media_type = profile.media_type.value
            record.default_locale = profile.default_locale
            record.search_provider_id = profile.search_provider_id
            record.slot_configs = slot_configs
        logger.debug(f"Saved profile '{profile.id}'")

    def delete(self, profile_id: str) -> bool:
        with get_db_session(self._session_factory) as session:
            record = session.get(ScraperProfileRecord, profile_id)
            if record is None:
                return False
            session.delete(record)
        return True

    def list_by_media_type(self, media_type: Union[MediaType, str]) -> List[ScraperProfile]:
        media_type = MediaType(media_type)
        with get_db_session(self._session_factory) as session:
            records = (
                session.query(ScraperProfileRecord)
                .filter(ScraperProfileRecord.media_type == media_type.value)
                .order_by(ScraperProfileRecord.order, ScraperProfileRecord.id)
                .all()
            )
            return [self._to_profile(record) for record in records]
