"""
================================================================================
MetaForge - Slot Fetcher
================================================================================
Fans out one provider call per (slot, enabled entry with a resolved id)
and joins them into a flat list of SlotResults.

A failing, timing-out or empty call contributes nothing; it never
cancels or fails its siblings. Completion order does not matter: the
merge engine orders by priority.
================================================================================
"""

import asyncio
import logging
from typing import Dict, List, Optional

from .exceptions import ProviderCallFailed
from .models import SlotResult
from .profiles import ScraperProfile
from .registry import ProviderRegistry, RegisteredProvider
from .slots import SlotConfig, SlotProviderEntry, get_slots_for_media_type

logger = logging.getLogger(__name__)


class SlotFetcher:
    """Concurrent slot fetching for one provider registry."""

    def __init__(self, registry: ProviderRegistry, provider_timeout: Optional[float] = None):
        self.registry = registry
        self.provider_timeout = provider_timeout

    async def _fetch_one(
        self,
        provider: RegisteredProvider,
        slot: str,
        entry: SlotProviderEntry,
        resolved_id: str,
        locale: Optional[str]
    ) -> Optional[SlotResult]:
        try:
            data = await provider.call(slot, resolved_id, entry.locale or locale, timeout=self.provider_timeout)
        except ProviderCallFailed as e:
            logger.warning(f"Slot '{slot}' failed: {e}")
            return None

        if not data:
            logger.debug(f"{provider.id} returned nothing for '{slot}'")
            return None

        return SlotResult(slot=slot, priority=entry.priority, data=data, provider_id=provider.id)

    async def fetch(
        self,
        profile: ScraperProfile,
        resolved_ids: Dict[str, str],
        locale: Optional[str]
    ) -> List[SlotResult]:
        """
        Fetch every configured slot.

        Args:
            profile: Validated profile
            resolved_ids: provider_id -> provider-internal id
            locale: Effective locale (an entry's own locale wins)

        Returns:
            SlotResults of the calls that produced data
        """
        providers = self.registry.snapshot()
        tasks = []

        for slot in get_slots_for_media_type(profile.media_type):
            config = profile.slot_configs.get(slot)
            if not isinstance(config, SlotConfig):
                continue

            for entry in config.enabled_providers():
                resolved_id = resolved_ids.get(entry.provider_id)
                if resolved_id is None:
                    continue

                provider = providers.get(entry.provider_id)
                if provider is None:
                    logger.warning(f"Skipping '{slot}': provider '{entry.provider_id}' not registered")
                    continue
                if not provider.supports(slot):
                    logger.warning(f"Skipping '{slot}': provider '{entry.provider_id}' lacks the capability")
                    continue

                tasks.append(self._fetch_one(provider, slot, entry, resolved_id, locale))

        if not tasks:
            return []

        results = await asyncio.gather(*tasks, return_exceptions=True)

        slot_results = []
        for result in results:
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.error(f"Slot task crashed: {result}")
                continue
            if result is not None:
                slot_results.append(result)

        logger.info(f"Fetched {len(slot_results)}/{len(tasks)} slot results for profile '{profile.id}'")
        return slot_results
