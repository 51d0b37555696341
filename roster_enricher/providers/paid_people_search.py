"""Paid, credit-metered people search (Lusha prospecting API).

The protocol has two phases:

1. ``search_candidates`` is free and returns masked candidates: opaque ids,
   names, titles and has-email/has-phone hints, never the values themselves.
   An empty location-filtered search is retried once without the location
   filter; a rejected structured query is retried once in a minimal shape.
2. ``reveal`` is paid: every (contact x data point) pair costs one credit. The
   :class:`~roster_enricher.credits.CreditLedger` re-reads the balance and
   refuses unaffordable reveals before any network call. A failed reveal
   still returns the selected candidates as masked, low-confidence records.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import httpx

from ..credits import CreditLedger
from ..domains import extract_domain
from ..errors import EnrichmentCancelled, MalformedQuery, NotConfigured, ProviderError, RevealFailed
from ..models import (
    ContactRecord,
    ContactSource,
    DataPoint,
    PaidCandidate,
    PaidSearchResult,
    RevealRequest,
    SearchCriteria,
)
from ..regions import FocusRegion, get_focus_region
from ..scoring import DEFAULT_SCORER, RelevanceScorer
from .base import HttpProvider, HttpProviderConfig

LOGGER = logging.getLogger(__name__)

SALES_DEPARTMENTS = ("sales", "business_development", "marketing", "management", "executive")
# Provider seniority codes: 3 manager, 4 director, 5 VP, 6 C-level, 7 owner.
MANAGER_AND_ABOVE = ("3", "4", "5", "6", "7")

REVEALED_WITH_EMAIL_CONFIDENCE = 0.9
REVEALED_WITHOUT_EMAIL_CONFIDENCE = 0.7
DEGRADED_CONFIDENCE = 0.3


@dataclass
class PaidPeopleSearchConfig(HttpProviderConfig):
    """Extends :class:`HttpProviderConfig` with search filters and reveal policy."""

    base_url: str = "https://api.lusha.com"
    api_key_env: Optional[str] = "LUSHA_API_KEY"
    timeout_seconds: float = 30.0
    page_size: int = 25
    departments: Sequence[str] = SALES_DEPARTMENTS
    seniority: Sequence[str] = MANAGER_AND_ABOVE
    require_email_hint: bool = True
    reveal_limit: int = 2
    auto_data_points: Sequence[str] = (DataPoint.EMAIL.value,)


def _pick(items: Any, key: str, preferred: Sequence[str]) -> Optional[str]:
    if not isinstance(items, list):
        return None
    entries = [item for item in items if isinstance(item, dict) and item.get(key)]
    for entry in entries:
        if entry.get("type") in preferred:
            return str(entry[key])
    return str(entries[0][key]) if entries else None


class PaidPeopleSearchProvider(HttpProvider):
    """Two-phase search-then-reveal provider; the only stage that costs credits."""

    name = "paid_people_search"
    source = ContactSource.PAID_PEOPLE_SEARCH
    cost_rank = 100
    paid = True
    config_class = PaidPeopleSearchConfig

    def __init__(
        self,
        config: Optional[Union[PaidPeopleSearchConfig, Dict[str, Any]]] = None,
        *,
        client: Optional[httpx.Client] = None,
        scorer: RelevanceScorer = DEFAULT_SCORER,
        ledger: Optional[CreditLedger] = None,
    ) -> None:
        super().__init__(config, client=client)
        self._scorer = scorer
        self.ledger = ledger or CreditLedger(self.query_credits, provider=self.name)

    # ------------------------------------------------------------------
    # Automated flow
    def search(self, criteria: SearchCriteria, limit: int) -> List[ContactRecord]:
        """Search, reveal the best few candidates, and return the revealed contacts."""

        result = self.search_candidates(criteria)
        data_points = [DataPoint(point) for point in self.config.auto_data_points]
        wants_email = DataPoint.EMAIL in data_points
        eligible = [
            candidate
            for candidate in result.candidates
            if (candidate.has_email if wants_email else candidate.has_phone)
        ]
        reveal_count = min(self.config.reveal_limit, limit) if limit else self.config.reveal_limit
        chosen = eligible[:reveal_count]
        if not chosen:
            LOGGER.info("No paid candidate worth revealing for %s", criteria.domain or criteria.company_name)
            return []

        if criteria.cancel_event is not None and criteria.cancel_event.is_set():
            raise EnrichmentCancelled("Enrichment cancelled before the paid reveal")

        request = RevealRequest(contact_ids=[c.contact_id for c in chosen], data_points=data_points)
        return self.reveal(request, chosen)

    # ------------------------------------------------------------------
    # Phase 1: free search
    def search_candidates(
        self,
        criteria: SearchCriteria,
        *,
        focus_region: Union[FocusRegion, str, None] = None,
    ) -> PaidSearchResult:
        api_key = self._require_api_key()
        domain = criteria.domain or extract_domain(criteria.website)
        company_name = criteria.company_name
        if not domain and not company_name:
            raise NotConfigured(self.name, "entity has neither a domain nor a company name")

        region = get_focus_region(focus_region or criteria.focus_region)
        countries = tuple(region.search_countries)
        location_dropped = False
        simplified = False

        try:
            payload = self._post_search(self._structured_query(domain, company_name, countries), api_key)
            if not self._items(payload) and countries:
                LOGGER.info(
                    "No candidates with location filter %s; retrying without it",
                    ",".join(countries),
                )
                location_dropped = True
                payload = self._post_search(self._structured_query(domain, company_name, ()), api_key)
        except MalformedQuery as exc:
            LOGGER.warning("Structured search rejected (%s); retrying with a simplified query", exc.message)
            simplified = True
            payload = self._post_search(self._simplified_query(domain, company_name), api_key)

        candidates = [self._to_candidate(item) for item in self._items(payload)]
        candidates = [candidate for candidate in candidates if candidate.contact_id]
        ranked = self._scorer.rank_candidates(candidates, region)
        LOGGER.info("Paid search returned %s candidate(s) for %s", len(ranked), domain or company_name)

        self.ledger.refresh()
        total = payload.get("totalResults") if isinstance(payload, dict) else None
        return PaidSearchResult(
            candidates=ranked,
            total_results=int(total) if total else len(ranked),
            credits_remaining=self.ledger.remaining,
            location_filter_dropped=location_dropped,
            simplified=simplified,
        )

    def _structured_query(
        self,
        domain: Optional[str],
        company_name: Optional[str],
        countries: Sequence[str],
    ) -> Dict[str, Any]:
        company_filter: Dict[str, Any] = {}
        if company_name:
            company_filter["names"] = [company_name]
        if domain:
            company_filter["domains"] = [domain]

        contact_filter: Dict[str, Any] = {
            "departments": list(self.config.departments),
            "seniority": list(self.config.seniority),
        }
        if self.config.require_email_hint:
            contact_filter["existing_data_points"] = [DataPoint.EMAIL.value]
        if countries:
            contact_filter["locations"] = [{"country": country} for country in countries]

        return {
            "pages": {"page": 0, "size": self.config.page_size},
            "filters": {
                "companies": {"include": company_filter},
                "contacts": {"include": contact_filter},
            },
        }

    def _simplified_query(self, domain: Optional[str], company_name: Optional[str]) -> Dict[str, Any]:
        company_filter: Dict[str, Any] = {}
        if domain:
            company_filter["domains"] = [domain]
        elif company_name:
            company_filter["names"] = [company_name]
        return {
            "pages": {"page": 0, "size": self.config.page_size},
            "filters": {"companies": {"include": company_filter}},
        }

    def _post_search(self, body: Dict[str, Any], api_key: str) -> Dict[str, Any]:
        response = self._request(
            "POST",
            f"{self._base()}/prospecting/contact/search",
            json=body,
            headers={"api_key": api_key},
        )
        payload = self._json(response)
        return payload if isinstance(payload, dict) else {}

    @staticmethod
    def _items(payload: Mapping[str, Any]) -> List[Dict[str, Any]]:
        items = payload.get("data") or []
        return [item for item in items if isinstance(item, dict)]

    @staticmethod
    def _to_candidate(item: Mapping[str, Any]) -> PaidCandidate:
        existing = item.get("existingDataPoints") or []
        return PaidCandidate(
            contact_id=str(item.get("contactId") or item.get("id") or ""),
            first_name=item.get("firstName"),
            last_name=item.get("lastName"),
            full_name=item.get("fullName") or item.get("name"),
            job_title=item.get("jobTitle") or item.get("title"),
            company=item.get("company") if isinstance(item.get("company"), str) else None,
            country=item.get("country"),
            city=item.get("city"),
            linkedin_url=item.get("linkedinUrl"),
            has_email=DataPoint.EMAIL.value in existing,
            has_phone=DataPoint.PHONE.value in existing,
        )

    # ------------------------------------------------------------------
    # Phase 2: paid reveal
    def reveal(self, request: RevealRequest, candidates: Sequence[PaidCandidate] = ()) -> List[ContactRecord]:
        """Reveal the requested data points; raises before any call when unaffordable."""

        api_key = self._require_api_key()
        by_id = {candidate.contact_id: candidate for candidate in candidates}
        chosen = [by_id.get(contact_id) or PaidCandidate(contact_id=contact_id) for contact_id in request.contact_ids]

        with self.ledger.reserve(request.estimated_cost):
            LOGGER.info(
                "Revealing %s contact(s) x %s data point(s) (%s credit(s))",
                len(request.contact_ids),
                len(request.data_points),
                request.estimated_cost,
            )
            try:
                response = self._request(
                    "POST",
                    f"{self._base()}/prospecting/contact/enrich",
                    json={
                        "contactIds": request.contact_ids,
                        "dataPoints": [point.value for point in request.data_points],
                    },
                    headers={"api_key": api_key},
                )
                payload = self._json(response)
            except ProviderError as exc:
                fallback = [c.to_contact(DEGRADED_CONFIDENCE) for c in chosen if c.name or c.linkedin_url]
                raise RevealFailed(self.name, exc.message, fallback) from exc

        items = self._items(payload if isinstance(payload, dict) else {})
        revealed: Dict[str, Dict[str, Any]] = {}
        for index, item in enumerate(items):
            contact_id = str(item.get("contactId") or item.get("id") or "")
            if not contact_id and index < len(request.contact_ids):
                contact_id = request.contact_ids[index]
            revealed[contact_id] = item

        contacts: List[ContactRecord] = []
        for candidate in chosen:
            item = revealed.get(candidate.contact_id)
            if item is None:
                LOGGER.warning("Reveal returned nothing for %s; keeping masked fields", candidate.contact_id)
                contact = candidate.to_contact(DEGRADED_CONFIDENCE)
            else:
                contact = self._to_contact(item, candidate)
            if contact.name or contact.email:
                contacts.append(contact)
        return contacts

    def _to_contact(self, item: Mapping[str, Any], candidate: PaidCandidate) -> ContactRecord:
        email = _pick(item.get("emails") or item.get("emailAddresses"), "email", ("work",))
        phone = _pick(item.get("phones") or item.get("phoneNumbers"), "number", ("work", "direct"))
        name = item.get("fullName") or " ".join(
            filter(None, [item.get("firstName"), item.get("lastName")])
        ).strip()
        city = item.get("city") or candidate.city
        country = item.get("country") or candidate.country
        location = f"{city}, {country}" if city and country else country or city
        return ContactRecord(
            name=name or candidate.name,
            title=item.get("jobTitle") or candidate.job_title,
            email=email,
            phone=phone,
            linkedin_url=item.get("linkedinUrl") or candidate.linkedin_url,
            location=location,
            source=self.source,
            confidence=REVEALED_WITH_EMAIL_CONFIDENCE if email else REVEALED_WITHOUT_EMAIL_CONFIDENCE,
        )

    # ------------------------------------------------------------------
    # Credits
    def query_credits(self) -> Optional[int]:
        """Remaining balance reported by the provider, or ``None`` if unavailable."""

        api_key = self.config.resolve_api_key()
        if not api_key:
            return None
        try:
            response = self._request("GET", f"{self._base()}/credits", headers={"api_key": api_key})
            payload = self._json(response)
        except ProviderError as exc:
            LOGGER.warning("Could not read credit balance: %s", exc.message)
            return None
        remaining = payload.get("remaining") if isinstance(payload, dict) else None
        try:
            return int(remaining) if remaining is not None else None
        except (TypeError, ValueError):
            return None

    def _base(self) -> str:
        return self.config.base_url.rstrip("/")


__all__ = [
    "PaidPeopleSearchConfig",
    "PaidPeopleSearchProvider",
    "SALES_DEPARTMENTS",
    "MANAGER_AND_ABOVE",
    "DEGRADED_CONFIDENCE",
]
