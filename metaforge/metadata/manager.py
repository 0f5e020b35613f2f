"""
================================================================================
MetaForge - Metadata Manager
================================================================================
Service facade: one ScraperHandler per media kind, sharing a profile
store, settings and locale source.

Usage:
    manager = create_manager()
    manager.register_provider("game", MyGameProvider())

    record = await manager.handler("game").get_metadata(
        "default", Lookup(name="Some Title")
    )

    await manager.close()
================================================================================
"""

import asyncio
import inspect
import logging
from typing import Any, Dict, List, Optional, Union

from ..config import Settings, get_settings
from ..database import create_db_engine, get_database_url, get_session_factory, init_database
from ..log import setup_logging
from .handler import LocaleSource, ScraperHandler
from .models import MediaType, ProfileCleanupAction, ProviderInfo
from .profiles import ProfileStore, SQLProfileStore

logger = logging.getLogger(__name__)


class MetadataManager:
    """Holds the four media kind handlers."""

    def __init__(
        self,
        store: ProfileStore,
        settings: Optional[Settings] = None,
        locale_source: Optional[LocaleSource] = None
    ):
        self.settings = settings or get_settings()
        self.store = store
        locale_source = locale_source or (lambda: self.settings.default_locale)

        self.handlers: Dict[MediaType, ScraperHandler] = {
            media_type: ScraperHandler(
                media_type,
                store,
                locale_source=locale_source,
                provider_timeout=self.settings.provider_timeout,
            )
            for media_type in MediaType
        }

    def handler(self, media_type: Union[MediaType, str]) -> ScraperHandler:
        return self.handlers[MediaType(media_type)]

    def register_provider(self, media_type: Union[MediaType, str], provider: Any) -> None:
        self.handler(media_type).register_provider(provider)

    def unregister_provider(
        self,
        media_type: Union[MediaType, str],
        provider_id: str
    ) -> Dict[str, ProfileCleanupAction]:
        return self.handler(media_type).unregister_provider(provider_id)

    def get_providers(self, media_type: Union[MediaType, str]) -> List[ProviderInfo]:
        return self.handler(media_type).get_providers()

    async def close(self):
        """Close providers that hold resources (e.g. HTTP clients)."""
        closers = []
        for handler in self.handlers.values():
            for entry in handler.registry.snapshot().values():
                close = getattr(entry.provider, 'close', None)
                if close is not None and inspect.iscoroutinefunction(close):
                    closers.append(close())

        results = await asyncio.gather(*closers, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Error closing provider: {result}")


def create_manager(store: Optional[ProfileStore] = None, settings: Optional[Settings] = None) -> MetadataManager:
    """
    Build a manager with logging configured.

    Without a store, profiles live in the SQL database from DATABASE_URL
    (tables are created when missing).
    """
    settings = settings or get_settings()
    setup_logging(settings)

    if store is None:
        engine = create_db_engine(get_database_url(settings))
        init_database(engine)
        store = SQLProfileStore(get_session_factory(engine))

    logger.info(f"Metadata manager ready (locale={settings.default_locale})")
    return MetadataManager(store, settings)
