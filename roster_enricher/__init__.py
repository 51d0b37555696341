"""Top-level package for the contact acquisition and reconciliation pipeline."""

from . import models  # noqa: F401
from .credits import CreditLedger  # noqa: F401
from .errors import (  # noqa: F401
    DuplicateContact,
    EnrichmentCancelled,
    EnrichmentError,
    EntityNotFound,
    InsufficientCredits,
    MalformedQuery,
    NotConfigured,
    ProviderError,
    ProviderUnavailable,
    RateLimited,
    RevealFailed,
)
from .merge import EmailOrNameMatcher, merge_contacts  # noqa: F401
from .models import (  # noqa: F401
    ContactRecord,
    ContactSource,
    DataPoint,
    EnrichmentReport,
    PaidCandidate,
    PaidSearchResult,
    RevealRequest,
    SearchCriteria,
)
from .orchestrator import EnrichmentOrchestrator, ProviderDescriptor  # noqa: F401
from .scoring import RelevanceScorer  # noqa: F401
from .store import EntityStore, InMemoryEntityStore  # noqa: F401

__all__ = [
    "ContactRecord",
    "ContactSource",
    "DataPoint",
    "SearchCriteria",
    "PaidCandidate",
    "PaidSearchResult",
    "RevealRequest",
    "EnrichmentReport",
    "RelevanceScorer",
    "EmailOrNameMatcher",
    "merge_contacts",
    "CreditLedger",
    "EnrichmentOrchestrator",
    "ProviderDescriptor",
    "EntityStore",
    "InMemoryEntityStore",
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
    "ingestion",
    "providers",
    "orchestrator",
]
