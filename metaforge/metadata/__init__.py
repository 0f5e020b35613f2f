from .exceptions import (
    InvalidSlotError,
    ProfileDeletedError,
    ProfileInvalidError,
    ProfileMediaTypeError,
    ProfileNotFoundError,
    ProviderCallFailed,
    ProviderNotRegisteredError,
    ProviderRegistrationError,
    ScraperError,
    SearchUnsupportedError,
)
from .handler import ScraperHandler
from .manager import MetadataManager, create_manager
from .models import (
    CharacterInfo,
    CharacterMetadata,
    CharacterPerson,
    CompanyInfo,
    CompanyMetadata,
    ExternalId,
    GameCharacter,
    GameCompany,
    GameInfo,
    GameMetadata,
    GamePerson,
    Lookup,
    MediaType,
    MergeStrategy,
    PartialDate,
    PersonInfo,
    PersonMetadata,
    ProfileCleanupAction,
    ProviderInfo,
    RelatedSite,
    SearchResult,
    SlotResult,
    Tag,
)
from .profiles import InMemoryProfileStore, ProfileStore, ScraperProfile, SQLProfileStore
from .providers import BaseScraperProvider, HttpProviderMixin
from .slots import SlotConfig, SlotProviderEntry, create_slot_config, create_slot_configs

__all__ = [
    'InvalidSlotError', 'ProfileDeletedError', 'ProfileInvalidError', 'ProfileMediaTypeError',
    'ProfileNotFoundError', 'ProviderCallFailed', 'ProviderNotRegisteredError',
    'ProviderRegistrationError', 'ScraperError', 'SearchUnsupportedError',
    'ScraperHandler', 'MetadataManager', 'create_manager',
    'CharacterInfo', 'CharacterMetadata', 'CharacterPerson', 'CompanyInfo', 'CompanyMetadata',
    'ExternalId', 'GameCharacter', 'GameCompany', 'GameInfo', 'GameMetadata', 'GamePerson',
    'Lookup', 'MediaType', 'MergeStrategy', 'PartialDate', 'PersonInfo', 'PersonMetadata',
    'ProfileCleanupAction', 'ProviderInfo', 'RelatedSite', 'SearchResult', 'SlotResult', 'Tag',
    'InMemoryProfileStore', 'ProfileStore', 'ScraperProfile', 'SQLProfileStore',
    'BaseScraperProvider', 'HttpProviderMixin',
    'SlotConfig', 'SlotProviderEntry', 'create_slot_config', 'create_slot_configs',
]
