"""
================================================================================
MetaForge - Lookup Resolver
================================================================================
Turns a Lookup (name + optionally known external ids) into
provider-internal ids.

Resolution for one provider:
  1. known_ids has an entry for the provider -> use it, no search call
  2. provider declares "search" -> first search result (+ original_name)
  3. otherwise / search failed / no results -> None (never fatal)

Resolution for a profile:
  1. resolve the profile's search provider with the caller's name
  2. if it reports an original_name, that becomes the effective name
  3. resolve every other provider concurrently with the effective name

The original-language name materially improves matching when the
caller's query is in another language or script than a provider expects.
================================================================================
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from .exceptions import ProviderCallFailed, SearchUnsupportedError
from .models import ExternalId, ResolvedId
from .registry import ProviderRegistry
from .slots import SEARCH_CAPABILITY

logger = logging.getLogger(__name__)


def find_known_id(provider_id: str, known_ids: Optional[Iterable[ExternalId]]) -> Optional[str]:
    """Known id for `provider_id` (source compared case-insensitively)."""
    wanted = provider_id.lower()
    for external_id in known_ids or ():
        if external_id.source.lower() == wanted and external_id.id:
            return external_id.id
    return None


class LookupResolver:
    """Resolves provider-internal ids against one provider registry."""

    def __init__(self, registry: ProviderRegistry, provider_timeout: Optional[float] = None):
        self.registry = registry
        self.provider_timeout = provider_timeout

    async def resolve(
        self,
        provider_id: str,
        name: str,
        known_ids: Optional[List[ExternalId]],
        locale: Optional[str]
    ) -> Optional[ResolvedId]:
        """
        Resolve the id of `name` inside one provider.

        Returns:
            ResolvedId or None when the provider contributes nothing
        """
        known = find_known_id(provider_id, known_ids)
        if known:
            logger.debug(f"Using known id {known} for {provider_id}")
            return ResolvedId(id=known)

        entry = self.registry.get(provider_id)
        if entry is None:
            logger.warning(f"Provider '{provider_id}' not available")
            return None

        if not entry.supports_search:
            logger.warning(str(SearchUnsupportedError(provider_id)))
            return None

        try:
            results = await entry.call(SEARCH_CAPABILITY, name, locale, timeout=self.provider_timeout)
        except ProviderCallFailed as e:
            logger.warning(f"Search failed for '{name}' via {provider_id}: {e}")
            return None

        first = results[0] if results else None
        if first is None or not first.id:
            logger.warning(f"No results for '{name}' via {provider_id}")
            return None

        logger.info(f"Resolved '{name}' to {first.id} via {provider_id}")
        return ResolvedId(id=str(first.id), original_name=first.original_name or None)

    async def resolve_many(
        self,
        provider_ids: Iterable[str],
        name: str,
        known_ids: Optional[List[ExternalId]],
        locale: Optional[str]
    ) -> Dict[str, str]:
        """Resolve several providers concurrently with the same name."""
        provider_ids = list(dict.fromkeys(provider_ids))
        if not provider_ids:
            return {}

        results = await asyncio.gather(
            *(self.resolve(pid, name, known_ids, locale) for pid in provider_ids)
        )
        return {
            pid: result.id
            for pid, result in zip(provider_ids, results)
            if result is not None
        }

    async def resolve_profile(
        self,
        search_provider_id: str,
        provider_ids: Iterable[str],
        name: str,
        known_ids: Optional[List[ExternalId]],
        locale: Optional[str]
    ) -> Dict[str, str]:
        """
        Resolve every provider a profile needs.

        Args:
            search_provider_id: Profile search provider (resolved first)
            provider_ids: Every provider referenced by an enabled slot entry
            name: Caller's query name
            known_ids: Caller's known external ids
            locale: Effective locale

        Returns:
            provider_id -> provider-internal id, for providers that resolved
        """
        resolved: Dict[str, str] = {}

        search_result = await self.resolve(search_provider_id, name, known_ids, locale)
        effective_name = name
        if search_result is not None:
            resolved[search_provider_id] = search_result.id
            if search_result.original_name:
                effective_name = search_result.original_name
                logger.info(f"Using original name '{effective_name}' for cross-provider search")

        others = [pid for pid in provider_ids if pid != search_provider_id]
        resolved.update(await self.resolve_many(others, effective_name, known_ids, locale))
        return resolved
