"""
================================================================================
MetaForge - Scraper Handler
================================================================================
Public operations for one media kind.

get_metadata runs in three phases:
  1. resolve the profile's search provider, pick up its original name
  2. resolve every other provider (concurrently) with that name
  3. fetch every slot (concurrently) and merge by priority

Profiles are validated lazily before each aggregation; a profile whose
search provider disappeared is deleted and the call fails with
ProfileDeletedError.
================================================================================
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Union

from ..config import get_settings
from ..log import debug_log_event
from .exceptions import (
    InvalidSlotError,
    ProfileDeletedError,
    ProfileMediaTypeError,
    ProviderCallFailed,
    SearchUnsupportedError,
)
from .fetcher import SlotFetcher
from .mergers import merge_metadata
from .models import Lookup, MediaType, ProfileCleanupAction, ProviderInfo, SearchResult
from .profiles import ProfileStore, ScraperProfile
from .registry import ProviderRegistry, RegisteredProvider
from .resolver import LookupResolver
from .slots import SEARCH_CAPABILITY, get_image_slots, normalize_slot_configs
from .validator import ProfileValidator

logger = logging.getLogger(__name__)

LocaleSource = Callable[[], str]


class ScraperHandler:
    """
    Aggregation entry point for one media kind.

    Args:
        media_type: Media kind served by this handler
        store: Profile store (shared between handlers)
        registry: Provider registry (a fresh one if None)
        locale_source: Zero-argument callable giving the fallback locale
        provider_timeout: Per provider call deadline in seconds (None = no deadline)
    """

    def __init__(
        self,
        media_type: Union[MediaType, str],
        store: ProfileStore,
        registry: Optional[ProviderRegistry] = None,
        locale_source: Optional[LocaleSource] = None,
        provider_timeout: Optional[float] = None
    ):
        self.media_type = MediaType(media_type)
        self.store = store
        self.registry = registry or ProviderRegistry(self.media_type)
        self.locale_source = locale_source or (lambda: get_settings().default_locale)
        self.provider_timeout = provider_timeout

        self.resolver = LookupResolver(self.registry, provider_timeout)
        self.fetcher = SlotFetcher(self.registry, provider_timeout)
        self.validator = ProfileValidator(self.registry, store, self.media_type)

    # =========================================================================
    # PROVIDERS
    # =========================================================================

    def register_provider(self, provider: Any) -> None:
        self.registry.register(provider)

    def unregister_provider(self, provider_id: str) -> Dict[str, ProfileCleanupAction]:
        """
        Remove a provider and re-validate every profile of this media kind.

        Returns:
            profile_id -> cleanup action (unchanged profiles included)

        Raises:
            ProviderNotRegisteredError: unknown provider
        """
        self.registry.unregister(provider_id)

        actions: Dict[str, ProfileCleanupAction] = {}
        for profile in self.store.list_by_media_type(self.media_type):
            actions[profile.id] = self.validator.validate_profile(profile)

        changed = {pid: a.value for pid, a in actions.items() if a != ProfileCleanupAction.UNCHANGED}
        if changed:
            logger.info(f"Profiles affected by removing '{provider_id}': {changed}")
        return actions

    def get_providers(self) -> List[ProviderInfo]:
        return self.registry.list_info()

    def get_provider_info(self, provider_id: str) -> ProviderInfo:
        return self.registry.require(provider_id).info()

    # =========================================================================
    # PROFILES
    # =========================================================================

    def load_profile(self, profile_id: str) -> ScraperProfile:
        """
        Load a profile of this handler's media kind.

        Raises:
            ProfileNotFoundError: unknown profile
            ProfileMediaTypeError: profile belongs to another media kind
        """
        profile = self.store.load(profile_id)
        if profile.media_type != self.media_type:
            raise ProfileMediaTypeError(profile_id, self.media_type.value, profile.media_type.value)
        return profile

    def ensure_profile_valid(self, profile_id: str) -> ProfileCleanupAction:
        return self.validator.validate_profile(self.load_profile(profile_id))

    def get_locale(self, profile: ScraperProfile) -> str:
        return profile.default_locale or self.locale_source()

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search(self, profile_id: str, query: str) -> List[SearchResult]:
        """
        Search with the profile's search provider only.

        Raises:
            ProviderNotRegisteredError: search provider is gone
            SearchUnsupportedError: search provider cannot search
        """
        profile = self.load_profile(profile_id)
        provider = self.registry.require(profile.search_provider_id)
        if not provider.supports_search:
            raise SearchUnsupportedError(provider.id)

        try:
            results = await provider.call(
                SEARCH_CAPABILITY, query, self.get_locale(profile), timeout=self.provider_timeout
            )
        except ProviderCallFailed as e:
            logger.warning(f"Search '{query}' failed: {e}")
            return []
        return list(results or [])

    # =========================================================================
    # AGGREGATION
    # =========================================================================

    async def get_metadata(
        self,
        profile_id: str,
        lookup: Lookup,
        skip_validation: bool = False
    ) -> Optional[Any]:
        """
        Aggregate one entity under a profile.

        Args:
            profile_id: Profile to aggregate with
            lookup: Name, known ids and optional locale
            skip_validation: Trust the stored profile as is

        Returns:
            Merged record, or None when no provider identified the entity

        Raises:
            ProfileNotFoundError, ProfileMediaTypeError: structural errors
            ProfileDeletedError: validation deleted the profile
        """
        started = time.time()
        profile = self.load_profile(profile_id)

        if not skip_validation:
            action = self.validator.validate_profile(profile)
            if action == ProfileCleanupAction.DELETED:
                raise ProfileDeletedError(profile_id)
            if action == ProfileCleanupAction.UPDATED:
                profile = self.load_profile(profile_id)

        profile.slot_configs = normalize_slot_configs(self.media_type, profile.slot_configs)
        locale = lookup.locale or self.get_locale(profile)

        provider_ids = []
        for config in profile.slot_configs.values():
            provider_ids.extend(entry.provider_id for entry in config.enabled_providers())

        resolved_ids = await self.resolver.resolve_profile(
            profile.search_provider_id,
            dict.fromkeys(provider_ids),
            lookup.name,
            lookup.known_ids,
            locale,
        )
        results = await self.fetcher.fetch(profile, resolved_ids, locale)
        record = merge_metadata(results, profile)

        elapsed = round(time.time() - started, 3)
        if record is None:
            logger.info(f"No {self.media_type.value} identified for '{lookup.name}' ({elapsed}s)")
        else:
            logger.info(f"Aggregated {self.media_type.value} '{record.name}' ({elapsed}s)")

        debug_log_event({
            'event': 'get_metadata',
            'media_type': self.media_type.value,
            'profile_id': profile_id,
            'query': lookup.name,
            'locale': locale,
            'resolved_ids': resolved_ids,
            'slot_results': [
                {'slot': r.slot, 'provider_id': r.provider_id, 'priority': r.priority}
                for r in results
            ],
            'found': record is not None,
            'elapsed': elapsed,
        })
        return record

    async def get_provider_images(self, provider_id: str, lookup: Lookup, image_slot: str) -> List[str]:
        """
        Images of one slot from a single provider, no merging.

        Returns [] when the provider lacks the slot, the id cannot be
        resolved or the call fails.

        Raises:
            InvalidSlotError: slot is not an image slot of this media kind
            ProviderNotRegisteredError: unknown provider
        """
        if image_slot not in get_image_slots(self.media_type):
            raise InvalidSlotError(
                f"'{image_slot}' is not an image slot for {self.media_type.value}"
            )

        provider: RegisteredProvider = self.registry.require(provider_id)
        if not provider.supports(image_slot):
            logger.warning(f"Provider '{provider_id}' does not support image slot '{image_slot}'")
            return []

        locale = lookup.locale or self.locale_source()
        resolved = await self.resolver.resolve(provider_id, lookup.name, lookup.known_ids, locale)
        if resolved is None:
            logger.warning(f"Could not resolve '{lookup.name}' via {provider_id}")
            return []

        try:
            images = await provider.call(image_slot, resolved.id, locale, timeout=self.provider_timeout)
        except ProviderCallFailed as e:
            logger.warning(f"Image fetch failed: {e}")
            return []
        return list(images or [])
