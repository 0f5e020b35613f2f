"""
Profile validation against the live provider registry.

A profile whose search provider is gone (or can no longer search) is
deleted. Otherwise its slot configs are reshaped to the media kind's
slots and entries referencing missing or incapable providers are dropped.
"""

import logging
from typing import Union

from .models import MediaType, ProfileCleanupAction
from .profiles import ProfileStore, ScraperProfile
from .registry import ProviderRegistry
from .slots import SlotConfig, has_slot_shape_changes, normalize_slot_configs

logger = logging.getLogger(__name__)


class ProfileValidator:

    def __init__(self, registry: ProviderRegistry, store: ProfileStore, media_type: Union[MediaType, str]):
        self.registry = registry
        self.store = store
        self.media_type = MediaType(media_type)

    def validate_profile(self, profile: ScraperProfile) -> ProfileCleanupAction:
        """Validate (and correct) one profile, saving or deleting it in the store."""
        providers = self.registry.snapshot()

        search_provider = providers.get(profile.search_provider_id)
        if search_provider is None or not search_provider.supports_search:
            self.store.delete(profile.id)
            logger.warning(
                f"Deleted profile '{profile.id}': search provider "
                f"'{profile.search_provider_id}' unavailable"
            )
            return ProfileCleanupAction.DELETED

        changed = has_slot_shape_changes(self.media_type, profile.slot_configs)
        slot_configs = normalize_slot_configs(self.media_type, profile.slot_configs)

        for slot, config in slot_configs.items():
            kept = [
                entry for entry in config.providers
                if entry.provider_id in providers and providers[entry.provider_id].supports(slot)
            ]
            if len(kept) != len(config.providers):
                dropped = [e.provider_id for e in config.providers if e not in kept]
                logger.info(f"Profile '{profile.id}' slot '{slot}': dropped {dropped}")
                slot_configs[slot] = SlotConfig(providers=kept, merge_strategy=config.merge_strategy)
                changed = True

        if not changed:
            return ProfileCleanupAction.UNCHANGED

        profile.slot_configs = slot_configs
        self.store.save(profile)
        logger.info(f"Updated profile '{profile.id}'")
        return ProfileCleanupAction.UPDATED
