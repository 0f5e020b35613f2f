"""
================================================================================
MetaForge - Slots & Slot Configs
================================================================================
Slots are the unit of configuration: a profile picks providers, their
priority and a merge strategy for every slot of its media type.

    game       info, tags, characters, persons, companies,
               covers, backdrops, logos, icons
    person     info, tags, photos
    company    info, tags, logos
    character  info, tags, persons, photos

Each slot (and "search") maps to exactly one provider method.
================================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union, Iterable

from .models import MediaType, MergeStrategy


GAME_SLOTS: Tuple[str, ...] = (
    'info', 'tags', 'characters', 'persons', 'companies',
    'covers', 'backdrops', 'logos', 'icons',
)
PERSON_SLOTS: Tuple[str, ...] = ('info', 'tags', 'photos')
COMPANY_SLOTS: Tuple[str, ...] = ('info', 'tags', 'logos')
CHARACTER_SLOTS: Tuple[str, ...] = ('info', 'tags', 'persons', 'photos')

SLOTS_BY_MEDIA_TYPE: Dict[MediaType, Tuple[str, ...]] = {
    MediaType.GAME: GAME_SLOTS,
    MediaType.PERSON: PERSON_SLOTS,
    MediaType.COMPANY: COMPANY_SLOTS,
    MediaType.CHARACTER: CHARACTER_SLOTS,
}

GAME_IMAGE_SLOTS: Tuple[str, ...] = ('covers', 'backdrops', 'logos', 'icons')
IMAGE_SLOTS: Tuple[str, ...] = GAME_IMAGE_SLOTS + ('photos',)

SEARCH_CAPABILITY = 'search'

# Capability -> provider method name
CAPABILITY_METHODS: Dict[str, str] = {
    'search': 'search',
    'info': 'get_info',
    'tags': 'get_tags',
    'characters': 'get_characters',
    'persons': 'get_persons',
    'companies': 'get_companies',
    'covers': 'get_covers',
    'backdrops': 'get_backdrops',
    'logos': 'get_logos',
    'icons': 'get_icons',
    'photos': 'get_photos',
}


def get_slots_for_media_type(media_type: Union[MediaType, str]) -> Tuple[str, ...]:
    """Valid slots for a media type, in merge order."""
    return SLOTS_BY_MEDIA_TYPE[MediaType(media_type)]


def get_allowed_capabilities(media_type: Union[MediaType, str]) -> frozenset:
    """Capabilities a provider of this media type may declare."""
    return frozenset((SEARCH_CAPABILITY,) + get_slots_for_media_type(media_type))


def get_image_slots(media_type: Union[MediaType, str]) -> Tuple[str, ...]:
    return tuple(s for s in get_slots_for_media_type(media_type) if s in IMAGE_SLOTS)


def is_image_slot(slot: str) -> bool:
    return slot in IMAGE_SLOTS


def is_array_slot(slot: str) -> bool:
    """Every slot except "info" carries a list."""
    return slot != 'info'


# =============================================================================
# SLOT CONFIG MODELS
# =============================================================================

@dataclass
class SlotProviderEntry:
    """One provider inside a slot. Lower priority number wins."""
    provider_id: str
    priority: int = 0
    enabled: bool = True
    locale: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'provider_id': self.provider_id,
            'priority': self.priority,
            'enabled': self.enabled,
            'locale': self.locale,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SlotProviderEntry':
        return cls(
            provider_id=data.get('provider_id') or data['providerId'],
            priority=int(data.get('priority', 0)),
            enabled=bool(data.get('enabled', True)),
            locale=data.get('locale'),
        )


@dataclass
class SlotConfig:
    """Providers and merge strategy for one slot."""
    providers: List[SlotProviderEntry] = field(default_factory=list)
    merge_strategy: MergeStrategy = MergeStrategy.FIRST

    def enabled_providers(self) -> List[SlotProviderEntry]:
        return [entry for entry in self.providers if entry.enabled]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'providers': [entry.to_dict() for entry in self.providers],
            'merge_strategy': MergeStrategy(self.merge_strategy).value,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional['SlotConfig']:
        """Parse a stored config; None when the payload is malformed."""
        if not isinstance(data, dict) or not isinstance(data.get('providers'), list):
            return None
        raw_strategy = data.get('merge_strategy', data.get('mergeStrategy'))
        try:
            strategy = MergeStrategy(raw_strategy)
        except ValueError:
            return None
        try:
            providers = [SlotProviderEntry.from_dict(p) for p in data['providers']]
        except (KeyError, TypeError, ValueError):
            return None
        return cls(providers=providers, merge_strategy=strategy)


# =============================================================================
# SLOT CONFIG FACTORIES
# =============================================================================

def create_empty_slot_config() -> SlotConfig:
    """Slot config with no providers."""
    return SlotConfig(providers=[], merge_strategy=MergeStrategy.FIRST)


def create_slot_config(
    provider_ids: Iterable[str],
    merge_strategy: Union[MergeStrategy, str] = MergeStrategy.MERGE,
    locale: Optional[str] = None
) -> SlotConfig:
    """
    Slot config from an ordered list of providers.

    Priority follows list position (first provider = priority 0).
    """
    return SlotConfig(
        providers=[
            SlotProviderEntry(provider_id=pid, priority=index, enabled=True, locale=locale)
            for index, pid in enumerate(provider_ids)
        ],
        merge_strategy=MergeStrategy(merge_strategy),
    )


def create_slot_configs(
    media_type: Union[MediaType, str],
    provider_id: str,
    capabilities: Iterable[str],
    locale: Optional[str] = None
) -> Dict[str, SlotConfig]:
    """
    Slot configs for a single-provider profile.

    The provider is placed in every slot it supports (strategy "first");
    other slots get an empty config.
    """
    supported = set(capabilities)
    return {
        slot: (
            create_slot_config([provider_id], MergeStrategy.FIRST, locale)
            if slot in supported else create_empty_slot_config()
        )
        for slot in get_slots_for_media_type(media_type)
    }


def is_valid_slot_config(config: Any) -> bool:
    """True for a SlotConfig whose merge strategy is a known MergeStrategy."""
    if not isinstance(config, SlotConfig):
        return False
    try:
        MergeStrategy(config.merge_strategy)
    except ValueError:
        return False
    return True


def normalize_slot_configs(
    media_type: Union[MediaType, str],
    slot_configs: Optional[Dict[str, Any]]
) -> Dict[str, SlotConfig]:
    """
    Normalize a profile's slot configs:
      - keep only the slots valid for the media type
      - add every missing (or malformed) slot with an empty config
    """
    slot_configs = slot_configs or {}
    normalized: Dict[str, SlotConfig] = {}
    for slot in get_slots_for_media_type(media_type):
        config = slot_configs.get(slot)
        normalized[slot] = config if is_valid_slot_config(config) else create_empty_slot_config()
    return normalized


def has_slot_shape_changes(media_type: Union[MediaType, str], slot_configs: Optional[Dict[str, Any]]) -> bool:
    """True when `slot_configs` has unknown, missing or malformed slots."""
    slot_configs = slot_configs or {}
    valid = get_slots_for_media_type(media_type)
    if any(slot not in valid for slot in slot_configs):
        return True
    return any(not is_valid_slot_config(slot_configs.get(slot)) for slot in valid)
