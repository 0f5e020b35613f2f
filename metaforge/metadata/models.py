"""
================================================================================
MetaForge - Metadata Models
================================================================================
Unified metadata models shared by providers, the merge engine and callers.

Entity records exist in two flavours:
  - *Info records (GameInfo, PersonInfo, ...): what a provider returns for
    the "info" slot.
  - *Metadata records (GameMetadata, ...): the merged output, info plus
    every array slot (tags, related entities, image URLs).

Typed relations (GamePerson, GameCompany, GameCharacter, CharacterPerson)
extend the metadata records with the relationship type ("developer",
"voice actor", ...), a spoiler flag and a free-form note.
================================================================================
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, List, Any, Dict
from enum import Enum


# =============================================================================
# ENUMS
# =============================================================================

class MediaType(str, Enum):
    """Entity kinds a profile can aggregate."""
    GAME = "game"
    PERSON = "person"
    COMPANY = "company"
    CHARACTER = "character"


class MergeStrategy(str, Enum):
    """How multiple providers' data for one slot are combined."""
    FIRST = "first"
    APPEND = "append"
    MERGE = "merge"


class ProfileCleanupAction(str, Enum):
    """Outcome of profile validation."""
    DELETED = "deleted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


# =============================================================================
# SHARED VALUE TYPES
# =============================================================================

@dataclass(frozen=True, eq=False)
class ExternalId:
    """Identifier of an entity inside one provider's namespace."""
    source: str  # "vndb", "bangumi", "igdb"
    id: str

    def key(self) -> str:
        return f"{self.source.lower()}:{self.id}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExternalId):
            return NotImplemented
        return (self.source.lower(), self.id) == (other.source.lower(), other.id)

    def __hash__(self) -> int:
        return hash((self.source.lower(), self.id))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExternalId':
        return cls(source=str(data['source']), id=str(data['id']))


@dataclass
class Tag:
    """Tag or genre attached to an entity."""
    name: str
    is_spoiler: Optional[bool] = None
    note: Optional[str] = None
    is_nsfw: Optional[bool] = None


@dataclass
class RelatedSite:
    """Link to an official site, store page, wiki, etc."""
    label: str
    url: str


@dataclass
class PartialDate:
    """Date where any component may be unknown."""
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None


class _Record:
    """JSON helpers shared by every record dataclass."""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


# =============================================================================
# PERSON
# =============================================================================

@dataclass
class PersonInfo(_Record):
    name: str
    original_name: Optional[str] = None
    birth_date: Optional[PartialDate] = None
    death_date: Optional[PartialDate] = None
    gender: Optional[str] = None
    description: Optional[str] = None
    related_sites: List[RelatedSite] = field(default_factory=list)
    external_ids: List[ExternalId] = field(default_factory=list)


@dataclass
class PersonMetadata(PersonInfo):
    tags: List[Tag] = field(default_factory=list)
    photos: List[str] = field(default_factory=list)


# =============================================================================
# COMPANY
# =============================================================================

@dataclass
class CompanyInfo(_Record):
    name: str
    original_name: Optional[str] = None
    founded_date: Optional[PartialDate] = None
    description: Optional[str] = None
    related_sites: List[RelatedSite] = field(default_factory=list)
    external_ids: List[ExternalId] = field(default_factory=list)


@dataclass
class CompanyMetadata(CompanyInfo):
    tags: List[Tag] = field(default_factory=list)
    logos: List[str] = field(default_factory=list)


# =============================================================================
# CHARACTER
# =============================================================================

@dataclass
class CharacterInfo(_Record):
    name: str
    original_name: Optional[str] = None
    birth_date: Optional[PartialDate] = None
    gender: Optional[str] = None
    age: Optional[int] = None
    blood_type: Optional[str] = None
    height: Optional[int] = None  # cm
    weight: Optional[int] = None  # kg
    bust: Optional[int] = None
    waist: Optional[int] = None
    hips: Optional[int] = None
    cup: Optional[str] = None
    description: Optional[str] = None
    related_sites: List[RelatedSite] = field(default_factory=list)
    external_ids: List[ExternalId] = field(default_factory=list)


@dataclass
class CharacterPerson(PersonMetadata):
    """Person linked to a character (voice actor, illustrator, ...)."""
    type: str = ""
    is_spoiler: Optional[bool] = None
    note: Optional[str] = None


@dataclass
class CharacterMetadata(CharacterInfo):
    tags: List[Tag] = field(default_factory=list)
    persons: List[CharacterPerson] = field(default_factory=list)
    photos: List[str] = field(default_factory=list)


# =============================================================================
# GAME
# =============================================================================

@dataclass
class GameInfo(_Record):
    name: str
    original_name: Optional[str] = None
    release_date: Optional[PartialDate] = None
    description: Optional[str] = None
    related_sites: List[RelatedSite] = field(default_factory=list)
    external_ids: List[ExternalId] = field(default_factory=list)


@dataclass
class GamePerson(PersonMetadata):
    """Person linked to a game (staff, voice actor, ...)."""
    type: str = ""
    is_spoiler: Optional[bool] = None
    note: Optional[str] = None


@dataclass
class GameCompany(CompanyMetadata):
    """Company linked to a game (developer, publisher, ...)."""
    type: str = ""
    is_spoiler: Optional[bool] = None
    note: Optional[str] = None


@dataclass
class GameCharacter(CharacterMetadata):
    """Character appearing in a game (main, side, ...)."""
    type: str = ""
    is_spoiler: Optional[bool] = None
    note: Optional[str] = None


@dataclass
class GameMetadata(GameInfo):
    """Complete game record produced by the merge engine."""
    tags: List[Tag] = field(default_factory=list)
    persons: List[GamePerson] = field(default_factory=list)
    characters: List[GameCharacter] = field(default_factory=list)
    companies: List[GameCompany] = field(default_factory=list)
    covers: List[str] = field(default_factory=list)
    backdrops: List[str] = field(default_factory=list)
    logos: List[str] = field(default_factory=list)
    icons: List[str] = field(default_factory=list)


# =============================================================================
# SEARCH / LOOKUP / RESULTS
# =============================================================================

@dataclass
class SearchResult(_Record):
    """A single provider search hit."""
    id: str
    name: str
    original_name: Optional[str] = None
    release_date: Optional[PartialDate] = None
    external_ids: List[ExternalId] = field(default_factory=list)


@dataclass
class Lookup:
    """
    Caller input identifying the entity to aggregate.

    `name` is the universal cross-provider identifier; `known_ids` let a
    provider skip searching entirely.
    """
    name: str
    known_ids: List[ExternalId] = field(default_factory=list)
    locale: Optional[str] = None


@dataclass
class ResolvedId:
    """Provider-internal id plus the provider's original-language name."""
    id: str
    original_name: Optional[str] = None


@dataclass
class SlotResult:
    """Typed output of one provider for one slot."""
    slot: str
    priority: int
    data: Any
    provider_id: str = ""


@dataclass
class ProviderInfo(_Record):
    """Public description of a registered provider."""
    id: str
    name: str
    capabilities: List[str] = field(default_factory=list)
