from .base import (
    BaseScraperProvider,
    HttpProviderMixin,
    RateLimiter,
    implemented_capabilities,
)

__all__ = [
    'BaseScraperProvider',
    'HttpProviderMixin',
    'RateLimiter',
    'implemented_capabilities',
]
