"""
================================================================================
MetaForge - Merge Algorithms
================================================================================
Generic building blocks used by the per-media-kind mergers.

Identity keys:
    ext:<source>:<id>    one per external id
    on:<name> onc:<name> original name (normalized / whitespace-free)
    nm:<name> nmc:<name> display name  (normalized / whitespace-free)

Typed relations (a person credited as "voice actor" vs "scenario") append
`|tp:<type>` to every key so the same person in two roles stays two
entries.

Group-merge is a union-find over key sets: an entity sharing any key
with a group joins it, and an entity bridging several groups folds them
into the earliest one. Output order is group insertion order.
================================================================================
"""

import logging
import re
import unicodedata
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set

from .models import (
    CharacterPerson,
    ExternalId,
    MergeStrategy,
    RelatedSite,
    SlotResult,
    Tag,
)

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r'\s+')

KeyBuilder = Callable[[Any], List[str]]
EntityMerger = Callable[[Any, Any], Any]


# =============================================================================
# IDENTITY KEYS
# =============================================================================

def normalize_merge_text(value: Optional[str]) -> str:
    """NFKC, trimmed, lower-cased, whitespace runs collapsed to one space."""
    if not value:
        return ""
    return _WHITESPACE.sub(' ', unicodedata.normalize('NFKC', value).strip().lower())


def compact_merge_text(normalized: str) -> str:
    return _WHITESPACE.sub('', normalized)


def build_entity_merge_keys(entity: Any) -> List[str]:
    """
    Identity keys of an entity.

    Works on any record with `name`, `original_name` and `external_ids`.
    Entities without any usable identifier get no keys and never match.
    """
    keys: List[str] = []

    for external_id in getattr(entity, 'external_ids', None) or []:
        source = normalize_merge_text(external_id.source)
        value = normalize_merge_text(external_id.id)
        if source and value:
            keys.append(f"ext:{source}:{value}")

    original_name = normalize_merge_text(getattr(entity, 'original_name', None))
    if original_name:
        keys.append(f"on:{original_name}")
        keys.append(f"onc:{compact_merge_text(original_name)}")

    name = normalize_merge_text(getattr(entity, 'name', None))
    if name:
        keys.append(f"nm:{name}")
        keys.append(f"nmc:{compact_merge_text(name)}")

    return list(dict.fromkeys(keys))


def build_entity_merge_keys_with_type(entity: Any) -> List[str]:
    """Identity keys scoped to the entity's relationship type."""
    entity_type = normalize_merge_text(getattr(entity, 'type', None))
    return [f"{key}|tp:{entity_type}" for key in build_entity_merge_keys(entity)]


# =============================================================================
# GROUP MERGE
# =============================================================================

@dataclass
class EntityGroup:
    """Entities found to be the same real-world thing."""
    id: int
    order: int
    item: Any
    keys: Set[str] = field(default_factory=set)
    active: bool = True


def _register_keys(group: EntityGroup, key_index: Dict[str, int]) -> None:
    for key in group.keys:
        key_index[key] = group.id


def _matched_group_ids(keys: Iterable[str], key_index: Dict[str, int], groups: List[EntityGroup]) -> List[int]:
    matched = {key_index[key] for key in keys if key in key_index}
    return sorted((gid for gid in matched if groups[gid].active), key=lambda gid: groups[gid].order)


def _group_entities(
    existing: Sequence[Any],
    incoming: Sequence[Any],
    key_builder: KeyBuilder,
    merge_fn: Optional[EntityMerger]
) -> List[Any]:
    groups: List[EntityGroup] = []
    key_index: Dict[str, int] = {}

    for item in [*existing, *incoming]:
        keys = key_builder(item)
        matched = _matched_group_ids(keys, key_index, groups)

        if not matched:
            group = EntityGroup(id=len(groups), order=len(groups), item=item, keys=set(keys))
            groups.append(group)
            _register_keys(group, key_index)
            continue

        base = groups[matched[0]]

        # Entity bridges several groups: fold them into the earliest
        for group_id in matched[1:]:
            other = groups[group_id]
            if merge_fn is not None:
                base.item = merge_fn(base.item, other.item)
            base.keys |= other.keys
            other.active = False

        if merge_fn is not None:
            base.item = merge_fn(base.item, item)

        base.keys.update(keys)
        base.keys.update(key_builder(base.item))
        _register_keys(base, key_index)

    return [group.item for group in groups if group.active]


def merge_entities_by_keys(
    existing: Sequence[Any],
    incoming: Sequence[Any],
    key_builder: KeyBuilder,
    merge_fn: EntityMerger
) -> List[Any]:
    """
    Merge two entity lists, fusing entities that share any identity key.

    Args:
        existing: Accumulated entities (higher priority)
        incoming: Entities from the next provider
        key_builder: Entity -> identity keys
        merge_fn: (existing, incoming) -> fused entity

    Returns:
        One entity per identity group, in first-appearance order
    """
    return _group_entities(existing, incoming, key_builder, merge_fn)


def append_entities_by_keys(
    existing: Sequence[Any],
    incoming: Sequence[Any],
    key_builder: KeyBuilder
) -> List[Any]:
    """Like merge_entities_by_keys, but the first entity of a group is kept as is."""
    return _group_entities(existing, incoming, key_builder, None)


# =============================================================================
# FIELD FUSION
# =============================================================================

def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def merge_scalar_fields(existing: Any, incoming: Any, exclude: Iterable[str] = ()) -> Any:
    """
    Fill-in-the-blanks: copy of `existing` where every None/"" field is
    taken from `incoming`. Fields named in `exclude` are left alone.
    """
    excluded = set(exclude)
    updates = {}
    for f in fields(existing):
        if f.name in excluded or not _is_blank(getattr(existing, f.name)):
            continue
        value = getattr(incoming, f.name, None)
        if not _is_blank(value):
            updates[f.name] = value
    return replace(existing, **updates)


def _dedupe(items: Iterable[Any], key_fn: Callable[[Any], Any]) -> List[Any]:
    seen = set()
    result = []
    for item in items:
        key = key_fn(item)
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


def merge_external_ids(existing: Optional[List[ExternalId]], incoming: Optional[List[ExternalId]]) -> List[ExternalId]:
    return _dedupe([*(existing or []), *(incoming or [])], lambda e: e.key())


def merge_related_sites(existing: Optional[List[RelatedSite]], incoming: Optional[List[RelatedSite]]) -> List[RelatedSite]:
    return _dedupe([*(existing or []), *(incoming or [])], lambda s: s.url)


def merge_tags(existing: Optional[List[Tag]], incoming: Optional[List[Tag]]) -> List[Tag]:
    return _dedupe([*(existing or []), *(incoming or [])], lambda t: t.name)


def merge_image_urls(existing: Optional[List[str]], incoming: Optional[List[str]]) -> List[str]:
    return list(dict.fromkeys([*(existing or []), *(incoming or [])]))


# =============================================================================
# STRATEGIES
# =============================================================================

def apply_strategy(
    existing: Optional[List[Any]],
    incoming: List[Any],
    strategy: MergeStrategy,
    key_fn: Callable[[Any], Any]
) -> List[Any]:
    """Flat arrays (tags, ids, sites): first wins, or deduplicated union."""
    existing = existing or []
    if strategy == MergeStrategy.FIRST:
        return list(existing or incoming)
    return _dedupe([*existing, *incoming], key_fn)


def apply_image_strategy(existing: Optional[List[str]], incoming: List[str], strategy: MergeStrategy) -> List[str]:
    existing = existing or []
    if strategy == MergeStrategy.FIRST:
        return list(existing or incoming)
    return merge_image_urls(existing, incoming)


def apply_entity_strategy(
    existing: Optional[List[Any]],
    incoming: List[Any],
    strategy: MergeStrategy,
    key_builder: KeyBuilder,
    merge_fn: EntityMerger
) -> List[Any]:
    """Entity arrays (characters, persons, companies)."""
    existing = existing or []
    if strategy == MergeStrategy.FIRST:
        return list(existing or incoming)
    if strategy == MergeStrategy.APPEND:
        return append_entities_by_keys(existing, incoming, key_builder)
    return merge_entities_by_keys(existing, incoming, key_builder, merge_fn)


def sort_by_priority(results: Iterable[SlotResult]) -> List[SlotResult]:
    """Ascending priority; stable for equal priorities."""
    return sorted(results, key=lambda r: r.priority)


def filter_by_slot(results: Iterable[SlotResult], slot: str) -> List[SlotResult]:
    return [r for r in results if r.slot == slot]


def merge_slot_results(
    results: Iterable[SlotResult],
    slot: str,
    strategy: MergeStrategy,
    combine: Callable[[List[Any], List[Any], MergeStrategy], List[Any]]
) -> List[Any]:
    """
    Fold one array slot's results in priority order.

    Empty payloads are skipped; under "first" the fold stops at the first
    non-empty list.
    """
    merged: List[Any] = []
    for result in sort_by_priority(filter_by_slot(results, slot)):
        if not result.data:
            continue
        merged = combine(merged, list(result.data), strategy)
        if strategy == MergeStrategy.FIRST and merged:
            break
    return merged


# =============================================================================
# ENTITY FUSERS
# =============================================================================

_IDENTITY_LIST_FIELDS = ('external_ids', 'related_sites')
_RELATION_FIELDS = ('type', 'note')


def merge_info_fields(existing: Any, incoming: Any) -> Any:
    """Scalars fill-in-the-blanks, external ids and related sites unioned."""
    merged = merge_scalar_fields(existing, incoming, _IDENTITY_LIST_FIELDS)
    return replace(
        merged,
        external_ids=merge_external_ids(existing.external_ids, incoming.external_ids),
        related_sites=merge_related_sites(existing.related_sites, incoming.related_sites),
    )


def merge_person_fields(existing: Any, incoming: Any) -> Any:
    merged = merge_scalar_fields(
        existing, incoming, _IDENTITY_LIST_FIELDS + ('tags', 'photos') + _RELATION_FIELDS
    )
    return replace(
        merged,
        external_ids=merge_external_ids(existing.external_ids, incoming.external_ids),
        related_sites=merge_related_sites(existing.related_sites, incoming.related_sites),
        tags=merge_tags(existing.tags, incoming.tags),
        photos=merge_image_urls(existing.photos, incoming.photos),
    )


def merge_company_fields(existing: Any, incoming: Any) -> Any:
    merged = merge_scalar_fields(
        existing, incoming, _IDENTITY_LIST_FIELDS + ('tags', 'logos') + _RELATION_FIELDS
    )
    return replace(
        merged,
        external_ids=merge_external_ids(existing.external_ids, incoming.external_ids),
        related_sites=merge_related_sites(existing.related_sites, incoming.related_sites),
        tags=merge_tags(existing.tags, incoming.tags),
        logos=merge_image_urls(existing.logos, incoming.logos),
    )


def merge_relation(fuse: EntityMerger) -> EntityMerger:
    """Wrap a fuser for typed relations: type from `existing`, first non-empty note."""
    def merged(existing: Any, incoming: Any) -> Any:
        return replace(fuse(existing, incoming), type=existing.type, note=existing.note or incoming.note)
    return merged


merge_character_person = merge_relation(merge_person_fields)


def merge_character_persons(
    existing: Optional[List[CharacterPerson]],
    incoming: Optional[List[CharacterPerson]],
    strategy: MergeStrategy
) -> List[CharacterPerson]:
    """Persons linked to a character, merged with the profile's persons strategy."""
    if not existing and not incoming:
        return []
    return apply_entity_strategy(
        existing, list(incoming or []), strategy,
        build_entity_merge_keys_with_type, merge_character_person
    )


def merge_character_fields(existing: Any, incoming: Any, person_strategy: MergeStrategy) -> Any:
    merged = merge_scalar_fields(
        existing, incoming,
        _IDENTITY_LIST_FIELDS + ('tags', 'persons', 'photos') + _RELATION_FIELDS
    )
    return replace(
        merged,
        external_ids=merge_external_ids(existing.external_ids, incoming.external_ids),
        related_sites=merge_related_sites(existing.related_sites, incoming.related_sites),
        tags=merge_tags(existing.tags, incoming.tags),
        persons=merge_character_persons(existing.persons, incoming.persons, person_strategy),
        photos=merge_image_urls(existing.photos, incoming.photos),
    )
