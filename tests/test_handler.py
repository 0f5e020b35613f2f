import pytest

from conftest import FakeProvider, make_profile

from metaforge.metadata.exceptions import (
    InvalidSlotError,
    ProfileDeletedError,
    ProfileMediaTypeError,
    ProfileNotFoundError,
    ProviderNotRegisteredError,
    SearchUnsupportedError,
)
from metaforge.metadata.models import (
    CharacterInfo,
    ExternalId,
    GameInfo,
    GamePerson,
    Lookup,
    MediaType,
    MergeStrategy,
    ProfileCleanupAction,
    SearchResult,
    Tag,
)


def vndb(**kwargs):
    kwargs.setdefault("search_results", [SearchResult(id="v1", name="Fate", original_name="フェイト")])
    return FakeProvider("vndb", ["search", "info", "tags", "covers"], **kwargs)


def bangumi(**kwargs):
    kwargs.setdefault("search_results", {"フェイト": [SearchResult(id="b1", name="フェイト")]})
    return FakeProvider("bangumi", ["search", "info", "tags"], **kwargs)


@pytest.mark.asyncio
async def test_get_metadata_end_to_end(game_handler, store):
    v = vndb(data={
        "info": GameInfo(name="Fate/stay night", external_ids=[ExternalId("vndb", "v1")]),
        "tags": [Tag("visual novel")],
        "covers": ["https://v/cover.jpg"],
    })
    b = bangumi(data={
        "info": GameInfo(name="Fate", original_name="フェイト", description="Holy grail war"),
        "tags": [Tag("visual novel"), Tag("action")],
    })
    game_handler.register_provider(v)
    game_handler.register_provider(b)
    store.save(make_profile("default", "vndb", slots={
        "info": ["vndb", "bangumi"], "tags": ["bangumi", "vndb"], "covers": ["vndb"],
    }))

    record = await game_handler.get_metadata("default", Lookup(name="fate"))

    assert record.name == "Fate/stay night"
    assert record.original_name == "フェイト"
    assert record.description == "Holy grail war"
    assert [t.name for t in record.tags] == ["visual novel", "action"]
    assert record.covers == ["https://v/cover.jpg"]
    assert b.calls_for("search") == [("search", "フェイト", "en")]
    assert b.calls_for("info") == [("info", "b1", "en")]


@pytest.mark.asyncio
async def test_output_independent_of_completion_order(game_handler, store):
    # priority 0 answers last
    v = vndb(data={"info": GameInfo(name="Slow but first")}, delays={"info": 0.05})
    b = bangumi(data={"info": GameInfo(name="Fast but second")})
    game_handler.register_provider(v)
    game_handler.register_provider(b)
    store.save(make_profile("default", "vndb", slots={"info": ["vndb", "bangumi"]},
                            strategies={"info": MergeStrategy.FIRST}))

    record = await game_handler.get_metadata("default", Lookup(name="fate"))

    assert record.name == "Slow but first"


@pytest.mark.asyncio
async def test_group_merge_independent_of_completion_order(game_handler, store):
    # priority 0 answers last
    v = FakeProvider(
        "vndb", ["search", "persons"],
        search_results=[SearchResult(id="v1", name="Fate")],
        data={"persons": [
            GamePerson(name="Kinoko Nasu", type="scenario", external_ids=[ExternalId("vndb", "s1")]),
            GamePerson(name="Takashi Takeuchi", type="art"),
        ]},
        delays={"persons": 0.05},
    )
    b = FakeProvider(
        "bangumi", ["search", "persons"],
        search_results=[SearchResult(id="b1", name="Fate")],
        data={"persons": [
            GamePerson(name="Hikaru Koyama", type="music"),
            GamePerson(name="Kinoko Nasu", original_name="奈須きのこ", type="scenario",
                       external_ids=[ExternalId("bangumi", "p5")]),
        ]},
    )
    game_handler.register_provider(v)
    game_handler.register_provider(b)
    store.save(make_profile("default", "vndb", slots={"persons": ["vndb", "bangumi"]}))

    record = await game_handler.get_metadata("default", Lookup(name="fate"))

    assert [(p.name, p.type) for p in record.persons] == [
        ("Kinoko Nasu", "scenario"),
        ("Takashi Takeuchi", "art"),
        ("Hikaru Koyama", "music"),
    ]
    nasu = record.persons[0]
    assert nasu.original_name == "奈須きのこ"
    assert [(e.source, e.id) for e in nasu.external_ids] == [("vndb", "s1"), ("bangumi", "p5")]


@pytest.mark.asyncio
async def test_failing_provider_never_fails_aggregation(game_handler, store):
    game_handler.register_provider(vndb(data={"info": GameInfo(name="Fate")}, failures=["tags"]))
    game_handler.register_provider(bangumi(failures=["search"]))
    store.save(make_profile("default", "vndb", slots={
        "info": ["bangumi", "vndb"], "tags": ["vndb"],
    }))

    record = await game_handler.get_metadata("default", Lookup(name="fate"))

    assert record.name == "Fate"
    assert record.tags == []


@pytest.mark.asyncio
async def test_nothing_identified_returns_none(game_handler, store):
    game_handler.register_provider(vndb(search_results=[]))
    store.save(make_profile("default", "vndb", slots={"info": ["vndb"]}))

    assert await game_handler.get_metadata("default", Lookup(name="nothing")) is None


@pytest.mark.asyncio
async def test_lookup_and_profile_locales(game_handler, store):
    v = vndb(data={"info": GameInfo(name="Fate")})
    game_handler.register_provider(v)
    store.save(make_profile("default", "vndb", slots={"info": ["vndb"]}, default_locale="zh"))

    await game_handler.get_metadata("default", Lookup(name="fate"))
    await game_handler.get_metadata("default", Lookup(name="fate", locale="ja"))

    assert [call[2] for call in v.calls_for("info")] == ["zh", "ja"]


@pytest.mark.asyncio
async def test_get_metadata_deletes_profile_without_search_provider(game_handler, store):
    game_handler.register_provider(bangumi())
    store.save(make_profile("default", "vndb", slots={"info": ["bangumi"]}))

    with pytest.raises(ProfileDeletedError):
        await game_handler.get_metadata("default", Lookup(name="fate"))
    assert "default" not in store


@pytest.mark.asyncio
async def test_skip_validation_leaves_profile_alone(game_handler, store):
    game_handler.register_provider(bangumi(data={"info": GameInfo(name="Fate")}))
    store.save(make_profile("default", "vndb", slots={"info": ["ghost", "bangumi"]}))

    record = await game_handler.get_metadata("default", Lookup(name="フェイト"), skip_validation=True)

    assert record.name == "Fate"
    assert len(store.load("default").slot_configs["info"].providers) == 2


@pytest.mark.asyncio
async def test_unknown_merge_strategy_is_repaired_before_fetch(game_handler, store):
    v = vndb(data={"info": GameInfo(name="Fate"), "tags": [Tag("action")]})
    game_handler.register_provider(v)
    profile = make_profile("default", "vndb", slots={"info": ["vndb"], "tags": ["vndb"]})
    profile.slot_configs["tags"].merge_strategy = "union"
    store.save(profile)

    record = await game_handler.get_metadata("default", Lookup(name="fate", known_ids=[ExternalId("vndb", "v1")]))

    assert record.name == "Fate"
    assert record.tags == []
    assert v.calls_for("tags") == []
    repaired = store.load("default").slot_configs["tags"]
    assert (repaired.providers, repaired.merge_strategy) == ([], MergeStrategy.FIRST)


@pytest.mark.asyncio
async def test_unknown_merge_strategy_with_skip_validation(game_handler, store):
    game_handler.register_provider(vndb(data={"info": GameInfo(name="Fate"), "tags": [Tag("action")]}))
    profile = make_profile("default", "vndb", slots={"info": ["vndb"], "tags": ["vndb"]})
    profile.slot_configs["tags"].merge_strategy = "union"
    store.save(profile)

    record = await game_handler.get_metadata("default", Lookup(name="fate"), skip_validation=True)

    assert record.name == "Fate"
    assert record.tags == []
    assert store.load("default").slot_configs["tags"].merge_strategy == "union"

@pytest.mark.asyncio
async def test_profile_of_other_media_type_rejected(game_handler, store):
    store.save(make_profile("chars", "vndb", media_type=MediaType.CHARACTER))

    with pytest.raises(ProfileMediaTypeError):
        await game_handler.get_metadata("chars", Lookup(name="x"))
    with pytest.raises(ProfileNotFoundError):
        await game_handler.get_metadata("missing", Lookup(name="x"))


@pytest.mark.asyncio
async def test_character_handler(character_handler, store):
    provider = FakeProvider(
        "chars", ["search", "info", "photos"],
        search_results=[SearchResult(id="c1", name="Saber")],
        data={"info": CharacterInfo(name="Saber", height=154), "photos": ["https://saber"]},
    )
    character_handler.register_provider(provider)
    store.save(make_profile("c", "chars", media_type=MediaType.CHARACTER,
                            slots={"info": ["chars"], "photos": ["chars"]}))

    record = await character_handler.get_metadata("c", Lookup(name="saber"))

    assert (record.name, record.height, record.photos) == ("Saber", 154, ["https://saber"])


# =============================================================================
# SEARCH
# =============================================================================

@pytest.mark.asyncio
async def test_search_uses_profile_search_provider_only(game_handler, store):
    v = vndb()
    b = bangumi()
    game_handler.register_provider(v)
    game_handler.register_provider(b)
    store.save(make_profile("default", "vndb", default_locale="ja"))

    results = await game_handler.search("default", "fate")

    assert [r.id for r in results] == ["v1"]
    assert v.calls_for("search") == [("search", "fate", "ja")]
    assert b.calls == []


@pytest.mark.asyncio
async def test_search_errors(game_handler, store):
    game_handler.register_provider(FakeProvider("nosearch", ["info"]))
    store.save(make_profile("gone", "vndb"))
    store.save(make_profile("blind", "nosearch"))

    with pytest.raises(ProviderNotRegisteredError):
        await game_handler.search("gone", "fate")
    with pytest.raises(SearchUnsupportedError):
        await game_handler.search("blind", "fate")


@pytest.mark.asyncio
async def test_search_failure_returns_empty(game_handler, store):
    game_handler.register_provider(vndb(failures=["search"]))
    store.save(make_profile("default", "vndb"))

    assert await game_handler.search("default", "fate") == []


# =============================================================================
# PROVIDER IMAGES
# =============================================================================

@pytest.mark.asyncio
async def test_get_provider_images(game_handler):
    v = vndb(data={"covers": ["https://c1", "https://c2"]})
    game_handler.register_provider(v)

    covers = await game_handler.get_provider_images("vndb", Lookup(name="fate"), "covers")
    known = await game_handler.get_provider_images(
        "vndb", Lookup(name="fate", known_ids=[ExternalId("vndb", "v99")]), "covers"
    )

    assert covers == ["https://c1", "https://c2"]
    assert known == covers
    assert [call[1] for call in v.calls_for("covers")] == ["v1", "v99"]


@pytest.mark.asyncio
async def test_get_provider_images_empty_cases(game_handler):
    game_handler.register_provider(vndb(search_results=[]))
    game_handler.register_provider(bangumi())
    game_handler.register_provider(
        FakeProvider("broken", ["search", "icons"], search_results=[SearchResult(id="1", name="x")],
                     failures=["icons"])
    )

    assert await game_handler.get_provider_images("vndb", Lookup(name="x"), "covers") == []
    assert await game_handler.get_provider_images("bangumi", Lookup(name="x"), "covers") == []
    assert await game_handler.get_provider_images("broken", Lookup(name="x"), "icons") == []


@pytest.mark.asyncio
async def test_get_provider_images_errors(game_handler):
    with pytest.raises(ProviderNotRegisteredError):
        await game_handler.get_provider_images("ghost", Lookup(name="x"), "covers")
    with pytest.raises(InvalidSlotError):
        await game_handler.get_provider_images("ghost", Lookup(name="x"), "photos")


# =============================================================================
# PROVIDERS & CLEANUP
# =============================================================================

def test_provider_info(game_handler):
    game_handler.register_provider(vndb())

    info = game_handler.get_provider_info("vndb")

    assert (info.id, info.name) == ("vndb", "VNDB")
    assert info.capabilities == ["search", "info", "tags", "covers"]
    assert [p.id for p in game_handler.get_providers()] == ["vndb"]
    with pytest.raises(ProviderNotRegisteredError):
        game_handler.get_provider_info("ghost")


def test_unregister_unknown_provider(game_handler):
    with pytest.raises(ProviderNotRegisteredError):
        game_handler.unregister_provider("ghost")


def test_unregister_cleans_up_only_dependent_profiles(game_handler, store):
    game_handler.register_provider(vndb())
    game_handler.register_provider(bangumi())
    store.save(make_profile("by-vndb", "vndb", slots={"info": ["vndb", "bangumi"]}))
    store.save(make_profile("by-bangumi", "bangumi", slots={"info": ["vndb", "bangumi"]}))
    store.save(make_profile("bangumi-only", "bangumi", slots={"info": ["bangumi"]}))
    store.save(make_profile("character", "vndb", media_type=MediaType.CHARACTER))

    actions = game_handler.unregister_provider("vndb")

    assert actions == {
        "by-vndb": ProfileCleanupAction.DELETED,
        "by-bangumi": ProfileCleanupAction.UPDATED,
        "bangumi-only": ProfileCleanupAction.UNCHANGED,
    }
    assert "by-vndb" not in store
    assert "character" in store
    providers = store.load("by-bangumi").slot_configs["info"].providers
    assert [e.provider_id for e in providers] == ["bangumi"]


def test_ensure_profile_valid(game_handler, store):
    game_handler.register_provider(vndb())
    store.save(make_profile("clean", "vndb", slots={"info": ["vndb"]}))
    store.save(make_profile("stale", "vndb", slots={"info": ["ghost", "vndb"]}))
    store.save(make_profile("orphan", "ghost"))
    store.save(make_profile("character", "vndb", media_type=MediaType.CHARACTER))

    assert game_handler.ensure_profile_valid("clean") == ProfileCleanupAction.UNCHANGED
    assert game_handler.ensure_profile_valid("stale") == ProfileCleanupAction.UPDATED
    assert [e.provider_id for e in store.load("stale").slot_configs["info"].providers] == ["vndb"]
    assert game_handler.ensure_profile_valid("orphan") == ProfileCleanupAction.DELETED
    assert "orphan" not in store
    with pytest.raises(ProfileMediaTypeError):
        game_handler.ensure_profile_valid("character")
    with pytest.raises(ProfileNotFoundError):
        game_handler.ensure_profile_valid("missing")
