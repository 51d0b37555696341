"""Company employee listing from LinkedIn, run through an Apify actor.

The actor is started synchronously and its dataset items are returned in the
same response, so one POST covers the whole run. Each run is billed by Apify
per use, which is why this stage sits after the free ones and before the
credit-metered paid search.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

from ..errors import NotConfigured
from ..models import ContactRecord, ContactSource, SearchCriteria
from ..scoring import DEFAULT_SCORER, RelevanceScorer
from .base import HttpProvider, HttpProviderConfig
from .domain_search import is_relevant_title

LOGGER = logging.getLogger(__name__)

LINKEDIN_COMPANY_PREFIX = "https://www.linkedin.com/company/"
EMPLOYEE_CONFIDENCE = 0.6


@dataclass
class LinkedInEmployeesConfig(HttpProviderConfig):
    """Extends :class:`HttpProviderConfig` with the actor and run options."""

    base_url: str = "https://api.apify.com/v2"
    api_key_env: Optional[str] = "APIFY_API_TOKEN"
    timeout_seconds: float = 180.0
    actor_id: str = "caprolok~linkedin-employees-scraper"
    max_employees: int = 50
    include_email: bool = True


def company_page_url(company_name: Optional[str]) -> Optional[str]:
    """Guess a LinkedIn company page from a name: ``"WOW Tech"`` -> ``.../company/wow-tech``."""

    if not company_name:
        return None
    text = company_name.strip()
    if "linkedin.com/company/" in text.lower():
        return text
    slug = re.sub(r"[^a-z0-9\s-]", "", text.lower())
    slug = re.sub(r"[\s-]+", "-", slug).strip("-")
    return f"{LINKEDIN_COMPANY_PREFIX}{slug}" if slug else None


def _first(item: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = item.get(key)
        if value:
            return str(value).strip() or None
    return None


class LinkedInEmployeesProvider(HttpProvider):
    """Lists a company's employees and keeps those with a commercial title."""

    name = "linkedin_employees"
    source = ContactSource.LINKEDIN_EMPLOYEES
    cost_rank = 50
    config_class = LinkedInEmployeesConfig

    def __init__(
        self,
        config: Optional[Union[LinkedInEmployeesConfig, Dict[str, Any]]] = None,
        *,
        client: Optional[httpx.Client] = None,
        scorer: RelevanceScorer = DEFAULT_SCORER,
    ) -> None:
        super().__init__(config, client=client)
        self._scorer = scorer

    def search(self, criteria: SearchCriteria, limit: int) -> List[ContactRecord]:
        token = self._require_api_key()
        company_url = criteria.linkedin_url or company_page_url(criteria.company_name)
        if not company_url:
            raise NotConfigured(self.name, "entity has no LinkedIn company page or company name")

        LOGGER.info("Listing LinkedIn employees of %s", company_url)
        response = self._request(
            "POST",
            f"{self.config.base_url.rstrip('/')}/acts/{self.config.actor_id}/run-sync-get-dataset-items",
            params={"token": token},
            json={
                "companyUrls": [company_url],
                "maxEmployees": self.config.max_employees,
                "includeEmail": self.config.include_email,
            },
        )
        items = self._json(response)
        if not isinstance(items, list):
            items = []

        contacts = [
            contact
            for contact in (self._to_contact(item) for item in items if isinstance(item, dict))
            if contact.name and is_relevant_title(contact.title)
        ]
        LOGGER.debug("Kept %s of %s employee(s) for %s", len(contacts), len(items), company_url)
        ranked = self._scorer.rank(contacts, criteria.focus_region)
        return ranked[:limit] if limit else ranked

    def _to_contact(self, item: Dict[str, Any]) -> ContactRecord:
        name = _first(item, "fullName", "name")
        if not name:
            name = " ".join(filter(None, [_first(item, "firstName"), _first(item, "lastName")])) or None
        return ContactRecord(
            name=name,
            title=_first(item, "title", "headline", "jobTitle"),
            email=_first(item, "email"),
            linkedin_url=_first(item, "profileUrl", "linkedinUrl", "url"),
            location=_first(item, "location", "geoLocation"),
            source=self.source,
            confidence=EMPLOYEE_CONFIDENCE,
        )


__all__ = ["LinkedInEmployeesConfig", "LinkedInEmployeesProvider", "company_page_url"]
