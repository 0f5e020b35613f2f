"""
Shared fixtures: scriptable fake providers and an in-memory profile store.
"""
import asyncio
from typing import Dict, Iterable, Optional

import pytest

from metaforge.metadata.handler import ScraperHandler
from metaforge.metadata.models import MediaType, MergeStrategy
from metaforge.metadata.profiles import InMemoryProfileStore, ScraperProfile
from metaforge.metadata.slots import (
    CAPABILITY_METHODS,
    SlotConfig,
    SlotProviderEntry,
    get_slots_for_media_type,
)


class FakeProvider:
    """
    Provider whose methods exist only for the declared capabilities.

    Args:
        provider_id: Provider id
        capabilities: Declared capabilities
        search_results: List returned for every query, or {query: list}
        data: slot -> payload
        delays: capability -> seconds to sleep before answering
        failures: capabilities that raise
    """

    def __init__(
        self,
        provider_id: str,
        capabilities: Iterable[str],
        search_results=None,
        data: Optional[Dict] = None,
        delays: Optional[Dict[str, float]] = None,
        failures: Iterable[str] = (),
    ):
        self.id = provider_id
        self.name = provider_id.upper()
        self.capabilities = tuple(capabilities)
        self.search_results = search_results or []
        self.data = data or {}
        self.delays = delays or {}
        self.failures = set(failures)
        self.calls = []
        for capability in self.capabilities:
            setattr(self, CAPABILITY_METHODS[capability], self._make_method(capability))

    def _make_method(self, capability):
        async def method(arg, locale=None):
            self.calls.append((capability, arg, locale))
            delay = self.delays.get(capability)
            if delay:
                await asyncio.sleep(delay)
            if capability in self.failures:
                raise RuntimeError(f"{self.id}.{capability} exploded")
            if capability == 'search':
                if isinstance(self.search_results, dict):
                    return list(self.search_results.get(arg, []))
                return list(self.search_results)
            return self.data.get(capability)
        return method

    def calls_for(self, capability):
        return [call for call in self.calls if call[0] == capability]


def make_profile(
    profile_id: str,
    search_provider_id: str,
    slots: Optional[Dict[str, list]] = None,
    strategies: Optional[Dict[str, MergeStrategy]] = None,
    media_type: MediaType = MediaType.GAME,
    default_locale: Optional[str] = None,
) -> ScraperProfile:
    """
    Build a profile; `slots` maps slot -> provider ids in priority order.

    Slots not mentioned get an empty config.
    """
    slots = slots or {}
    strategies = strategies or {}
    configs = {}
    for slot in get_slots_for_media_type(media_type):
        configs[slot] = SlotConfig(
            providers=[
                SlotProviderEntry(provider_id=pid, priority=index)
                for index, pid in enumerate(slots.get(slot, []))
            ],
            merge_strategy=strategies.get(slot, MergeStrategy.MERGE),
        )
    return ScraperProfile(
        id=profile_id,
        name=profile_id,
        media_type=media_type,
        search_provider_id=search_provider_id,
        slot_configs=configs,
        default_locale=default_locale,
    )


@pytest.fixture
def store():
    return InMemoryProfileStore()


@pytest.fixture
def game_handler(store):
    return ScraperHandler(MediaType.GAME, store, locale_source=lambda: 'en')


@pytest.fixture
def character_handler(store):
    return ScraperHandler(MediaType.CHARACTER, store, locale_source=lambda: 'en')
