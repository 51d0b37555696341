"""Free domain-based email lookup (Hunter.io domain search API)."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx

from ..domains import company_domain, extract_domain, parent_domain
from ..errors import NotConfigured, ProviderError, RateLimited
from ..models import ContactRecord, ContactSource, SearchCriteria
from ..scoring import DEFAULT_SCORER, RelevanceScorer
from .base import HttpProvider, HttpProviderConfig

LOGGER = logging.getLogger(__name__)

# A domain search result without one of these in its position is too noisy to rank.
RELEVANT_TITLE_KEYWORDS = (
    "sales",
    "business development",
    "commercial",
    "account manager",
    "key account",
    "director",
    "manager",
    "ceo",
    "founder",
    "vp",
    "head of",
)


@dataclass
class DomainSearchConfig(HttpProviderConfig):
    """Extends :class:`HttpProviderConfig` with domain search options."""

    base_url: str = "https://api.hunter.io/v2"
    api_key_env: Optional[str] = "HUNTER_API_KEY"
    timeout_seconds: float = 20.0
    request_limit: int = 10
    try_parent_domain: bool = True
    try_parent_company: bool = True


def is_relevant_title(position: Optional[str], keywords: Sequence[str] = RELEVANT_TITLE_KEYWORDS) -> bool:
    lowered = (position or "").lower()
    return any(keyword in lowered for keyword in keywords)


def _linkedin(value: Any) -> Optional[str]:
    if not value:
        return None
    text = str(value).strip()
    if "linkedin.com" in text.lower():
        return text
    if "/" not in text and " " not in text:
        return f"https://www.linkedin.com/in/{text}"
    return None


class DomainSearchProvider(HttpProvider):
    """Looks up addresses published for a company domain.

    Falls back to a guessed international parent domain and then to the
    parent company's domain when the brand domain has no results.
    """

    name = "domain_search"
    source = ContactSource.DOMAIN_SEARCH
    cost_rank = 10
    config_class = DomainSearchConfig

    def __init__(
        self,
        config: Optional[Union[DomainSearchConfig, Dict[str, Any]]] = None,
        *,
        client: Optional[httpx.Client] = None,
        scorer: RelevanceScorer = DEFAULT_SCORER,
    ) -> None:
        super().__init__(config, client=client)
        self._scorer = scorer

    def search(self, criteria: SearchCriteria, limit: int) -> List[ContactRecord]:
        api_key = self._require_api_key()
        domain = criteria.domain or extract_domain(criteria.website)
        if not domain:
            raise NotConfigured(self.name, "entity has no website or domain to search")

        entries = self._domain_search(domain, api_key)

        if not entries and self.config.try_parent_domain:
            fallback = parent_domain(domain)
            if fallback and fallback != domain:
                LOGGER.info("No results for %s, trying parent domain %s", domain, fallback)
                entries = self._fallback_search(fallback, api_key)

        if not entries and criteria.parent_company and self.config.try_parent_company:
            fallback = company_domain(criteria.parent_company)
            if fallback and fallback != domain:
                LOGGER.info("No results for %s, trying parent company domain %s", domain, fallback)
                entries = self._fallback_search(fallback, api_key)

        contacts = [self._to_contact(entry) for entry in entries if is_relevant_title(entry.get("position"))]
        dropped = len(entries) - len(contacts)
        if dropped:
            LOGGER.debug("Dropped %s result(s) without a commercial title for %s", dropped, domain)

        ranked = self._scorer.rank(contacts, criteria.focus_region)
        LOGGER.info("Domain search found %s relevant contact(s) for %s", len(ranked[:limit]), domain)
        return ranked[:limit]

    # ------------------------------------------------------------------
    # Helpers
    def _domain_search(self, domain: str, api_key: str) -> List[Dict[str, Any]]:
        response = self._request(
            "GET",
            f"{self.config.base_url.rstrip('/')}/domain-search",
            params={"domain": domain, "api_key": api_key, "limit": self.config.request_limit},
        )
        payload = self._json(response) or {}
        data = payload.get("data") or {}
        emails = data.get("emails") or []
        return [entry for entry in emails if isinstance(entry, dict)]

    def _fallback_search(self, domain: str, api_key: str) -> List[Dict[str, Any]]:
        try:
            return self._domain_search(domain, api_key)
        except RateLimited:
            raise
        except ProviderError as exc:
            LOGGER.info("Fallback domain search on %s failed: %s", domain, exc.message)
            return []

    def _to_contact(self, entry: Dict[str, Any]) -> ContactRecord:
        name = " ".join(filter(None, [entry.get("first_name"), entry.get("last_name")])).strip() or None
        # Hunter scores are percentages.
        try:
            confidence = float(entry.get("confidence") or 0) / 100.0
        except (TypeError, ValueError):
            confidence = 0.0
        return ContactRecord(
            name=name,
            title=entry.get("position"),
            email=entry.get("value"),
            phone=entry.get("phone_number"),
            linkedin_url=_linkedin(entry.get("linkedin")),
            location=None,
            source=self.source,
            confidence=confidence,
        )


__all__ = ["DomainSearchConfig", "DomainSearchProvider", "RELEVANT_TITLE_KEYWORDS", "is_relevant_title"]
