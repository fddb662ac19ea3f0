from __future__ import annotations
from typing import Iterable, List, Optional


class ConfigurationError(ValueError):
    """
    Missing or invalid setting for the active provider. Fatal: the fix is
    to change the configuration, not to retry.
    """

    def __init__(self, message: str, errors: Optional[Iterable[str]] = None):
        self.errors: List[str] = list(errors) if errors else [message]
        super().__init__(message)

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ConfigurationError":
        if len(errors) == 1:
            return cls(errors[0], errors)
        return cls("Invalid configuration:\n  " + "\n  ".join(errors), errors)


class UnsupportedProviderError(ConfigurationError):
    """AI:Provider names a backend nobody registered."""

    def __init__(self, provider: str, supported: Iterable[str]):
        self.provider = provider
        self.supported = list(supported)
        super().__init__(
            f"Unknown provider: {provider}. Supported providers: {', '.join(self.supported)}."
        )


class ProviderError(Exception):
    """A provider answered with a payload we cannot interpret."""


class OperationCancelledError(Exception):
    """Raised between stream fragments once the caller cancels."""
