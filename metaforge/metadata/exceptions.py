"""
Scraper error hierarchy.

Only structural problems (unknown provider, missing/invalid profile)
reach callers. Provider call failures are wrapped in ProviderCallFailed,
logged and absorbed at the task that raised them.
"""

from typing import Optional


class ScraperError(Exception):
    """Base class for aggregation errors."""


class ProviderNotRegisteredError(ScraperError):
    """Raised when a caller references an unknown provider id."""
    def __init__(self, provider_id: str):
        self.provider_id = provider_id
        super().__init__(f"Provider not registered: '{provider_id}'")


class ProviderRegistrationError(ScraperError):
    """Raised when a provider fails validation at registration."""


class SearchUnsupportedError(ScraperError):
    """Raised when search is requested from a provider without search."""
    def __init__(self, provider_id: str):
        self.provider_id = provider_id
        super().__init__(f"Provider '{provider_id}' does not support search")


class ProviderCallFailed(ScraperError):
    """A single provider call (search or slot fetch) raised or timed out."""
    def __init__(self, provider_id: str, operation: str, cause: Optional[BaseException] = None):
        self.provider_id = provider_id
        self.operation = operation
        self.cause = cause
        detail = f": {cause!r}" if cause is not None else ""
        super().__init__(f"{provider_id}.{operation} failed{detail}")


class InvalidSlotError(ScraperError):
    """Raised when a slot is not valid for the handler's media type."""


class ProfileNotFoundError(ScraperError):
    def __init__(self, profile_id: str):
        self.profile_id = profile_id
        super().__init__(f"Profile not found: '{profile_id}'")


class ProfileMediaTypeError(ScraperError):
    def __init__(self, profile_id: str, expected: str, actual: str):
        self.profile_id = profile_id
        self.expected = expected
        self.actual = actual
        super().__init__(f"Profile '{profile_id}' is a {actual} profile, not a {expected} profile")


class ProfileInvalidError(ScraperError):
    """Profile can no longer function with the current provider set."""


class ProfileDeletedError(ProfileInvalidError):
    """Validation deleted the profile the call was made with."""
    def __init__(self, profile_id: str):
        self.profile_id = profile_id
        super().__init__(f"Profile '{profile_id}' was invalid and has been deleted")
