from __future__ import annotations

from dataclasses import dataclass


class ProviderError(RuntimeError):
    """Anything that went wrong talking to ESPN or the rating model."""


class ProviderRequestError(ProviderError):
    """The call itself failed: timeout, connection, non-2xx or unreadable body. Retryable."""


class ProviderRateLimited(ProviderRequestError):
    """HTTP 429. The retry policy waits for the next minute before trying again."""


class ProviderResponseError(ProviderError):
    """The body arrived but lacks what we need (no events list, no completion choices)."""


class ProviderCapabilityError(ProviderError):
    """Sport or operation the provider cannot serve."""


@dataclass(eq=False)
class ProviderMappingError(ProviderError):
    """A single event or competitor could not be mapped into domain values."""

    message: str
    context: dict[str, object] | None = None

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} ({self.context})"
        return self.message
