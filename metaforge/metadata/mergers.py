"""
================================================================================
MetaForge - Media Kind Mergers
================================================================================
Turn the flat list of SlotResults of one aggregation into a single
record, slot by slot, in the slot order of the media kind.

Every merger returns None when no provider produced a usable name:
the entity could not be identified, which is not an error.
================================================================================
"""

import logging
from dataclasses import fields
from typing import Any, Callable, Dict, List, Optional

from .merge import (
    apply_entity_strategy,
    apply_image_strategy,
    apply_strategy,
    build_entity_merge_keys,
    build_entity_merge_keys_with_type,
    filter_by_slot,
    merge_character_fields,
    merge_character_persons,
    merge_company_fields,
    merge_info_fields,
    merge_person_fields,
    merge_relation,
    merge_slot_results,
    sort_by_priority,
)
from .models import (
    CharacterInfo,
    CharacterMetadata,
    CompanyInfo,
    CompanyMetadata,
    GameInfo,
    GameMetadata,
    MediaType,
    MergeStrategy,
    PersonInfo,
    PersonMetadata,
    SlotResult,
)
from .profiles import ScraperProfile
from .slots import SlotConfig

logger = logging.getLogger(__name__)


def slot_strategy(profile: ScraperProfile, slot: str) -> MergeStrategy:
    config = profile.slot_configs.get(slot)
    if not isinstance(config, SlotConfig):
        return MergeStrategy.FIRST
    try:
        return MergeStrategy(config.merge_strategy)
    except ValueError:
        logger.warning(
            f"Profile '{profile.id}' slot '{slot}': unknown merge strategy "
            f"{config.merge_strategy!r}, using 'first'"
        )
        return MergeStrategy.FIRST


# =============================================================================
# SHARED SLOT MERGERS
# =============================================================================

def merge_info(results: List[SlotResult], strategy: MergeStrategy) -> Optional[Any]:
    """
    Merge "info" records.

    first:         the first record (by priority) carrying a name, verbatim
    append, merge: fill-in-the-blanks over all records, ids and sites unioned
    """
    records = [r.data for r in sort_by_priority(filter_by_slot(results, 'info')) if r.data is not None]

    if strategy == MergeStrategy.FIRST:
        return next((record for record in records if record.name), None)

    merged = None
    for record in records:
        merged = record if merged is None else merge_info_fields(merged, record)
    return merged


def merge_tags_slot(results: List[SlotResult], strategy: MergeStrategy) -> List[Any]:
    return merge_slot_results(
        results, 'tags', strategy,
        lambda existing, incoming, s: apply_strategy(existing, incoming, s, lambda t: t.name)
    )


def merge_image_slot(results: List[SlotResult], slot: str, strategy: MergeStrategy) -> List[str]:
    return merge_slot_results(results, slot, strategy, apply_image_strategy)


def merge_entity_slot(
    results: List[SlotResult],
    slot: str,
    strategy: MergeStrategy,
    key_builder: Callable[[Any], List[str]],
    merge_fn: Callable[[Any, Any], Any]
) -> List[Any]:
    return merge_slot_results(
        results, slot, strategy,
        lambda existing, incoming, s: apply_entity_strategy(existing, incoming, s, key_builder, merge_fn)
    )


def merge_images(results: List[SlotResult], strategy: MergeStrategy) -> List[str]:
    """
    Merge image results of several providers (picker dialogs).

    Unlike a profile slot, the results may span any image slot.
    """
    strategy = MergeStrategy(strategy)
    images: List[str] = []
    for result in sort_by_priority(results):
        if not result.data:
            continue
        if strategy == MergeStrategy.FIRST:
            return list(result.data)
        images.extend(result.data)
    return list(dict.fromkeys(images))


def finalize(info: Optional[Any], info_cls: type, metadata_cls: type, **slots: Any) -> Optional[Any]:
    """
    Build the output record from merged info and array slots.

    Returns None when no provider supplied a name.
    """
    if info is None or not info.name:
        return None

    values = {f.name: getattr(info, f.name, None) for f in fields(info_cls)}
    if values.get('description') is None:
        values['description'] = ""
    values['related_sites'] = list(values.get('related_sites') or [])
    values['external_ids'] = list(values.get('external_ids') or [])
    values.update(slots)
    return metadata_cls(**values)


# =============================================================================
# PER MEDIA KIND
# =============================================================================

def merge_game_metadata(results: List[SlotResult], profile: ScraperProfile) -> Optional[GameMetadata]:
    """
    Merge game slot results.

    Persons and companies are grouped per relationship type; characters
    are not, and their nested persons follow the profile's persons strategy.
    """
    person_strategy = slot_strategy(profile, 'persons')
    info = merge_info(results, slot_strategy(profile, 'info'))

    characters = merge_entity_slot(
        results, 'characters', slot_strategy(profile, 'characters'),
        build_entity_merge_keys,
        merge_relation(lambda existing, incoming: merge_character_fields(existing, incoming, person_strategy)),
    )
    persons = merge_entity_slot(
        results, 'persons', person_strategy,
        build_entity_merge_keys_with_type, merge_relation(merge_person_fields),
    )
    companies = merge_entity_slot(
        results, 'companies', slot_strategy(profile, 'companies'),
        build_entity_merge_keys_with_type, merge_relation(merge_company_fields),
    )

    return finalize(
        info, GameInfo, GameMetadata,
        tags=merge_tags_slot(results, slot_strategy(profile, 'tags')),
        characters=characters,
        persons=persons,
        companies=companies,
        covers=merge_image_slot(results, 'covers', slot_strategy(profile, 'covers')),
        backdrops=merge_image_slot(results, 'backdrops', slot_strategy(profile, 'backdrops')),
        logos=merge_image_slot(results, 'logos', slot_strategy(profile, 'logos')),
        icons=merge_image_slot(results, 'icons', slot_strategy(profile, 'icons')),
    )


def merge_person_metadata(results: List[SlotResult], profile: ScraperProfile) -> Optional[PersonMetadata]:
    info = merge_info(results, slot_strategy(profile, 'info'))
    return finalize(
        info, PersonInfo, PersonMetadata,
        tags=merge_tags_slot(results, slot_strategy(profile, 'tags')),
        photos=merge_image_slot(results, 'photos', slot_strategy(profile, 'photos')),
    )


def merge_company_metadata(results: List[SlotResult], profile: ScraperProfile) -> Optional[CompanyMetadata]:
    info = merge_info(results, slot_strategy(profile, 'info'))
    return finalize(
        info, CompanyInfo, CompanyMetadata,
        tags=merge_tags_slot(results, slot_strategy(profile, 'tags')),
        logos=merge_image_slot(results, 'logos', slot_strategy(profile, 'logos')),
    )


def merge_character_metadata(results: List[SlotResult], profile: ScraperProfile) -> Optional[CharacterMetadata]:
    info = merge_info(results, slot_strategy(profile, 'info'))
    persons = merge_slot_results(
        results, 'persons', slot_strategy(profile, 'persons'), merge_character_persons
    )
    return finalize(
        info, CharacterInfo, CharacterMetadata,
        tags=merge_tags_slot(results, slot_strategy(profile, 'tags')),
        persons=persons,
        photos=merge_image_slot(results, 'photos', slot_strategy(profile, 'photos')),
    )


MERGERS: Dict[MediaType, Callable[[List[SlotResult], ScraperProfile], Optional[Any]]] = {
    MediaType.GAME: merge_game_metadata,
    MediaType.PERSON: merge_person_metadata,
    MediaType.COMPANY: merge_company_metadata,
    MediaType.CHARACTER: merge_character_metadata,
}


def merge_metadata(results: List[SlotResult], profile: ScraperProfile) -> Optional[Any]:
    """Dispatch to the merger of the profile's media kind."""
    return MERGERS[profile.media_type](results, profile)
