"""Exception hierarchy shared by providers, the credit ledger and the orchestrator."""
from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .models import ContactRecord


class ProviderError(RuntimeError):
    """Base class for failures raised inside a provider adapter."""

    status = "error"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class NotConfigured(ProviderError):
    """The provider cannot run: credential absent or no usable input. The stage is skipped."""

    status = "not_configured"


class ProviderUnavailable(ProviderError):
    """Network failure, timeout, rejected credential or a 5xx response."""

    status = "unavailable"


class RateLimited(ProviderError):
    """The provider answered 429; the caller should retry after a cool-down."""

    status = "rate_limited"

    def __init__(self, provider: str, retry_after: Optional[float] = None) -> None:
        hint = f"{retry_after:g} seconds" if retry_after else "a short cool-down"
        super().__init__(provider, f"rate limit reached, retry after {hint}")
        self.retry_after = retry_after


class MalformedQuery(ProviderError):
    """The provider rejected the query shape (400-class response)."""

    status = "malformed_query"


class InsufficientCredits(ProviderError):
    """A reveal would cost more credits than the last known balance allows."""

    status = "insufficient_credits"

    def __init__(self, provider: str, required: Optional[int], remaining: Optional[int]) -> None:
        if required is None:
            message = "provider reports the credit balance is exhausted"
        elif remaining is None:
            message = f"reveal needs {required} credit(s) and the balance is unknown"
        else:
            message = f"reveal needs {required} credit(s) but only {remaining} remain"
        super().__init__(provider, message)
        self.required = required
        self.remaining = remaining


class RevealFailed(ProviderError):
    """The paid reveal failed; masked contacts are kept with degraded confidence."""

    status = "reveal_failed"

    def __init__(
        self,
        provider: str,
        message: str,
        fallback_contacts: Sequence["ContactRecord"] = (),
    ) -> None:
        super().__init__(provider, message)
        self.fallback_contacts: List["ContactRecord"] = list(fallback_contacts)


class EnrichmentError(RuntimeError):
    """Raised when the orchestrator itself cannot complete a request."""


class EntityNotFound(EnrichmentError):
    """The entity store has no record for the requested entity."""


class EnrichmentCancelled(EnrichmentError):
    """The caller cancelled the request before it finished."""


class DuplicateContact(EnrichmentError):
    """A manual contact matches one already on the roster."""


__all__ = [
    "ProviderError",
    "NotConfigured",
    "ProviderUnavailable",
    "RateLimited",
    "MalformedQuery",
    "InsufficientCredits",
    "RevealFailed",
    "EnrichmentError",
    "EntityNotFound",
    "EnrichmentCancelled",
    "DuplicateContact",
]
