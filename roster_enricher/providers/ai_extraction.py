"""Pass-through of contacts produced by the upstream AI content analysis."""
from __future__ import annotations

from typing import List

from ..models import ContactRecord, ContactSource, SearchCriteria, coerce_contacts
from .base import ProviderAdapter


class AIExtractionProvider(ProviderAdapter):
    """Returns ``criteria.extracted_contacts`` unchanged; makes no network call."""

    name = "ai_extraction"
    source = ContactSource.AI_EXTRACTION
    cost_rank = 0

    def search(self, criteria: SearchCriteria, limit: int) -> List[ContactRecord]:
        return coerce_contacts(criteria.extracted_contacts, default_source=self.source)


__all__ = ["AIExtractionProvider"]
