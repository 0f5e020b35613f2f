import pytest

from conftest import FakeProvider, make_profile

from metaforge.metadata.fetcher import SlotFetcher
from metaforge.metadata.models import GameInfo, MediaType, Tag
from metaforge.metadata.registry import ProviderRegistry
from metaforge.metadata.slots import SlotProviderEntry


def make_fetcher(*providers, timeout=None):
    registry = ProviderRegistry(MediaType.GAME)
    for provider in providers:
        registry.register(provider)
    return SlotFetcher(registry, timeout), registry


@pytest.mark.asyncio
async def test_failures_and_empty_payloads_are_isolated():
    a = FakeProvider("a", ["info", "tags"], data={"info": GameInfo(name="A"), "tags": []})
    b = FakeProvider("b", ["info", "tags"], data={"tags": [Tag("drama")]}, failures=["info"])
    fetcher, _ = make_fetcher(a, b)
    profile = make_profile("p", "a", slots={"info": ["a", "b"], "tags": ["a", "b"]})

    results = await fetcher.fetch(profile, {"a": "a-1", "b": "b-1"}, "en")

    assert sorted((r.slot, r.provider_id, r.priority) for r in results) == [
        ("info", "a", 0), ("tags", "b", 1),
    ]


@pytest.mark.asyncio
async def test_only_enabled_entries_with_resolved_ids_are_called():
    a = FakeProvider("a", ["info"], data={"info": GameInfo(name="A")})
    b = FakeProvider("b", ["info"], data={"info": GameInfo(name="B")})
    c = FakeProvider("c", ["info"], data={"info": GameInfo(name="C")})
    fetcher, _ = make_fetcher(a, b, c)
    profile = make_profile("p", "a", slots={"info": ["a", "b", "c"]})
    profile.slot_configs["info"].providers[1].enabled = False

    results = await fetcher.fetch(profile, {"a": "a-1", "b": "b-1"}, "en")

    assert [r.provider_id for r in results] == ["a"]
    assert b.calls == [] and c.calls == []
    assert a.calls == [("info", "a-1", "en")]


@pytest.mark.asyncio
async def test_unregistered_or_incapable_providers_are_skipped():
    a = FakeProvider("a", ["info"], data={"info": GameInfo(name="A")})
    fetcher, _ = make_fetcher(a)
    profile = make_profile("p", "a", slots={"info": ["ghost"], "covers": ["a"]})

    assert await fetcher.fetch(profile, {"a": "a-1", "ghost": "g-1"}, "en") == []


@pytest.mark.asyncio
async def test_entry_locale_overrides_call_locale():
    a = FakeProvider("a", ["info"], data={"info": GameInfo(name="A")})
    fetcher, _ = make_fetcher(a)
    profile = make_profile("p", "a")
    profile.slot_configs["info"].providers = [SlotProviderEntry("a", 0, True, "ja")]

    await fetcher.fetch(profile, {"a": "a-1"}, "en")

    assert a.calls == [("info", "a-1", "ja")]


@pytest.mark.asyncio
async def test_slow_call_past_deadline_contributes_nothing():
    slow = FakeProvider("slow", ["info"], data={"info": GameInfo(name="S")}, delays={"info": 0.5})
    fast = FakeProvider("fast", ["info"], data={"info": GameInfo(name="F")})
    fetcher, _ = make_fetcher(slow, fast, timeout=0.05)
    profile = make_profile("p", "slow", slots={"info": ["slow", "fast"]})

    results = await fetcher.fetch(profile, {"slow": "s", "fast": "f"}, "en")

    assert [r.provider_id for r in results] == ["fast"]
