"""
================================================================================
MetaForge - Provider Registry
================================================================================
Registry of providers for one media type.

Registration validates the provider once:
  - non-empty id and name
  - every declared capability is a slot of the media type or "search"
  - no duplicate capabilities
  - declared capabilities == implemented methods (both directions)
  - id not already registered

Reads are served from snapshots taken under a lock, so a provider being
(un)registered never disturbs an aggregation already in flight.
================================================================================
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Union

from .exceptions import ProviderCallFailed, ProviderNotRegisteredError, ProviderRegistrationError
from .models import MediaType, ProviderInfo
from .providers.base import implemented_capabilities
from .slots import CAPABILITY_METHODS, SEARCH_CAPABILITY, get_allowed_capabilities

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisteredProvider:
    """A provider plus the capability set validated at registration."""
    provider: Any
    capabilities: FrozenSet[str]

    @property
    def id(self) -> str:
        return self.provider.id

    @property
    def name(self) -> str:
        return self.provider.name

    @property
    def supports_search(self) -> bool:
        return SEARCH_CAPABILITY in self.capabilities

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities

    def method_for(self, capability: str):
        """Bound provider method serving `capability`."""
        return getattr(self.provider, CAPABILITY_METHODS[capability])

    async def call(self, capability: str, *args, timeout: Optional[float] = None) -> Any:
        """
        Invoke the provider method for `capability`.

        Any exception, and exceeding `timeout` when one is given, surfaces
        as ProviderCallFailed.
        """
        method = self.method_for(capability)
        try:
            if timeout is None:
                return await method(*args)
            return await asyncio.wait_for(method(*args), timeout)
        except asyncio.TimeoutError as e:
            raise ProviderCallFailed(self.id, capability, e) from e
        except Exception as e:
            raise ProviderCallFailed(self.id, capability, e) from e

    def info(self) -> ProviderInfo:
        declared = [c for c in self.provider.capabilities]
        return ProviderInfo(id=self.id, name=self.name, capabilities=declared)


class ProviderRegistry:
    """Thread-safe provider registry for one media type."""

    def __init__(self, media_type: Union[MediaType, str]):
        self.media_type = MediaType(media_type)
        self._allowed = get_allowed_capabilities(self.media_type)
        self._providers: Dict[str, RegisteredProvider] = {}
        self._lock = threading.RLock()

    # =========================================================================
    # MUTATION
    # =========================================================================

    def register(self, provider: Any) -> RegisteredProvider:
        """
        Validate and register a provider.

        Raises:
            ProviderRegistrationError: invalid provider or duplicate id
        """
        capabilities = self._validate(provider)
        entry = RegisteredProvider(provider=provider, capabilities=capabilities)

        with self._lock:
            if provider.id in self._providers:
                raise ProviderRegistrationError(f"Provider '{provider.id}' is already registered")
            self._providers[provider.id] = entry

        logger.info(f"Registered {self.media_type.value} provider: {provider.id}")
        return entry

    def unregister(self, provider_id: str) -> RegisteredProvider:
        """
        Remove a provider.

        Raises:
            ProviderNotRegisteredError: unknown id
        """
        with self._lock:
            entry = self._providers.pop(provider_id, None)
        if entry is None:
            raise ProviderNotRegisteredError(provider_id)
        logger.info(f"Unregistered {self.media_type.value} provider: {provider_id}")
        return entry

    # =========================================================================
    # READS
    # =========================================================================

    def snapshot(self) -> Dict[str, RegisteredProvider]:
        """Copy of the current registry contents."""
        with self._lock:
            return dict(self._providers)

    def get(self, provider_id: str) -> Optional[RegisteredProvider]:
        with self._lock:
            return self._providers.get(provider_id)

    def require(self, provider_id: str) -> RegisteredProvider:
        entry = self.get(provider_id)
        if entry is None:
            raise ProviderNotRegisteredError(provider_id)
        return entry

    def __contains__(self, provider_id: str) -> bool:
        with self._lock:
            return provider_id in self._providers

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)

    def list_info(self) -> List[ProviderInfo]:
        return [entry.info() for entry in self.snapshot().values()]

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def _validate(self, provider: Any) -> FrozenSet[str]:
        provider_id = getattr(provider, 'id', None)
        if not isinstance(provider_id, str) or not provider_id.strip():
            raise ProviderRegistrationError("Provider id is required")

        name = getattr(provider, 'name', None)
        if not isinstance(name, str) or not name.strip():
            raise ProviderRegistrationError(f"Provider name is required ({provider_id})")

        raw_capabilities = getattr(provider, 'capabilities', None)
        if isinstance(raw_capabilities, str) or not isinstance(raw_capabilities, (list, tuple, set, frozenset)):
            raise ProviderRegistrationError(f"Provider '{provider_id}' capabilities must be a sequence")

        declared = set()
        for capability in raw_capabilities:
            if capability not in self._allowed:
                raise ProviderRegistrationError(
                    f"Provider '{provider_id}' declares invalid capability: {capability}"
                )
            if capability in declared:
                raise ProviderRegistrationError(
                    f"Provider '{provider_id}' declares duplicate capability: {capability}"
                )
            declared.add(capability)

        implemented = implemented_capabilities(provider) & self._allowed
        unimplemented = sorted(declared - implemented)
        if unimplemented:
            capability = unimplemented[0]
            raise ProviderRegistrationError(
                f"Provider '{provider_id}' declares '{capability}' but does not implement "
                f"'{CAPABILITY_METHODS[capability]}'"
            )
        undeclared = sorted(implemented - declared)
        if undeclared:
            capability = undeclared[0]
            raise ProviderRegistrationError(
                f"Provider '{provider_id}' implements '{CAPABILITY_METHODS[capability]}' "
                f"but does not declare '{capability}'"
            )

        return frozenset(declared)
