"""Error taxonomy shared by the cache, rate limiter and provider clients."""
from __future__ import annotations

from typing import Optional


class GatewayError(RuntimeError):
    """Base class for provider gateway errors."""


class ConfigurationError(GatewayError):
    """Raised for missing API keys or unknown provider names."""


class ProviderUnavailable(GatewayError):
    """Raised when a provider call fails or returns an unusable payload."""

    def __init__(
        self, message: str, *, status: Optional[int] = None, retryable: bool = False
    ) -> None:
        super().__init__(message)
        self.status = status
        self.retryable = retryable


class QuotaExceeded(ProviderUnavailable):
    """Raised when the local rate limiter denies a provider call."""

    def __init__(self, provider: str, reset_in: int) -> None:
        super().__init__(f"Rate limit exceeded for {provider}. Reset in {reset_in} seconds")
        self.provider = provider
        self.reset_in = reset_in
