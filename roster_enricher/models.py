"""Unified data models for providers, the merger, the orchestrator and the CLI."""

from __future__ import annotations

import enum
import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .regions import RegionLike

LOGGER = logging.getLogger(__name__)

LINKEDIN_HOST = "linkedin.com"

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[a-z]{2,}$")


# --- Enumerations ---

class ContactSource(str, enum.Enum):
    """Provenance of a contact record."""

    AI_EXTRACTION = "ai_extraction"
    DOMAIN_SEARCH = "domain_search"
    PAGE_SCRAPE = "page_scrape"
    LINKEDIN_EMPLOYEES = "linkedin_employees"
    PAID_PEOPLE_SEARCH = "paid_people_search"
    MANUAL = "manual"

    @classmethod
    def parse(cls, value: Union["ContactSource", str, None]) -> "ContactSource":
        if isinstance(value, cls):
            return value
        text = (value or "").strip().lower()
        text = _LEGACY_SOURCES.get(text, text)
        try:
            return cls(text)
        except ValueError as exc:
            raise ValueError(f"Unknown contact source '{value}'") from exc


_LEGACY_SOURCES = {
    "claude_extraction": ContactSource.AI_EXTRACTION.value,
    "hunter_io": ContactSource.DOMAIN_SEARCH.value,
    "apify": ContactSource.LINKEDIN_EMPLOYEES.value,
    "lusha": ContactSource.PAID_PEOPLE_SEARCH.value,
}


class DataPoint(str, enum.Enum):
    """Paid data points; each revealed data point costs one credit per contact."""

    EMAIL = "work_email"
    PHONE = "work_phone"


# --- Normalisation helpers ---

def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalise_email(value: Any) -> Optional[str]:
    """Return the lower-cased email, or ``None`` when it is missing or malformed."""

    text = _clean(value)
    if text is None:
        return None
    text = text.lower()
    if text.startswith("mailto:"):
        text = text[len("mailto:"):]
    if not _EMAIL_RE.match(text):
        LOGGER.debug("Discarding malformed email %r", value)
        return None
    return text


def normalise_linkedin_url(value: Any) -> Optional[str]:
    text = _clean(value)
    if text is None:
        return None
    if LINKEDIN_HOST not in text.lower():
        LOGGER.debug("Discarding non-LinkedIn profile URL %r", value)
        return None
    return text


def _clamp_confidence(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number:  # NaN
        return 0.0
    return min(max(number, 0.0), 1.0)


# --- Core record ---

@dataclass(frozen=True)
class ContactRecord:
    """One candidate decision-maker contact.

    Records are immutable: providers create them, the merger ranks them and the
    entity store persists them. A degraded copy is built with
    :func:`dataclasses.replace`, which keeps :attr:`source` intact.
    """

    name: Optional[str] = None
    title: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    location: Optional[str] = None
    source: ContactSource = ContactSource.MANUAL
    confidence: float = 0.5

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _clean(self.name))
        object.__setattr__(self, "title", _clean(self.title))
        object.__setattr__(self, "email", normalise_email(self.email))
        object.__setattr__(self, "phone", _clean(self.phone))
        object.__setattr__(self, "linkedin_url", normalise_linkedin_url(self.linkedin_url))
        object.__setattr__(self, "location", _clean(self.location))
        object.__setattr__(self, "source", ContactSource.parse(self.source))
        object.__setattr__(self, "confidence", _clamp_confidence(self.confidence))

    @property
    def is_actionable(self) -> bool:
        """True when the contact can be reached or was entered by a human."""

        if self.email or self.linkedin_url:
            return True
        return self.source is ContactSource.MANUAL and bool(self.name)

    def display_name(self) -> str:
        return self.name or self.email or self.title or "(Unnamed Contact)"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "email": self.email,
            "phone": self.phone,
            "linkedin_url": self.linkedin_url,
            "location": self.location,
            "source": self.source.value,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        *,
        default_source: ContactSource = ContactSource.MANUAL,
    ) -> "ContactRecord":
        """Build a record from the snake_case shape used by the entity store."""

        source = data.get("source") or default_source
        confidence = data.get("confidence")
        return cls(
            name=data.get("name"),
            title=data.get("title"),
            email=data.get("email"),
            phone=data.get("phone"),
            linkedin_url=data.get("linkedin_url") or data.get("linkedinUrl"),
            location=data.get("location"),
            source=source,
            confidence=0.5 if confidence is None else confidence,
        )


def coerce_contacts(
    items: Iterable[Union[ContactRecord, Mapping[str, Any]]],
    *,
    default_source: ContactSource = ContactSource.MANUAL,
) -> List[ContactRecord]:
    """Accept a mix of records and plain dicts and return records."""

    contacts: List[ContactRecord] = []
    for item in items or []:
        if isinstance(item, ContactRecord):
            contacts.append(item)
        else:
            contacts.append(ContactRecord.from_dict(item, default_source=default_source))
    return contacts


# --- Provider query / result models ---

@dataclass(slots=True)
class SearchCriteria:
    """Identifying attributes of the entity whose contacts are being searched."""

    domain: Optional[str] = None
    company_name: Optional[str] = None
    linkedin_url: Optional[str] = None
    website: Optional[str] = None
    parent_company: Optional[str] = None
    focus_region: RegionLike = None
    extracted_contacts: Sequence[Union[ContactRecord, Mapping[str, Any]]] = field(default_factory=list)
    cancel_event: Optional[threading.Event] = None


@dataclass
class ProviderResult:
    """Never-throwing outcome of one provider stage."""

    provider: str
    contacts: List[ContactRecord] = field(default_factory=list)
    error: Optional[Exception] = None
    elapsed_seconds: float = 0.0

    @property
    def status(self) -> str:
        if self.error is None:
            return "ok"
        return getattr(self.error, "status", "error")

    @property
    def ok(self) -> bool:
        return self.error is None


# --- Paid search models ---

@dataclass(slots=True)
class PaidCandidate:
    """Masked paid-search result: identity hints only, no email or phone values."""

    contact_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    job_title: Optional[str] = None
    company: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    linkedin_url: Optional[str] = None
    has_email: bool = False
    has_phone: bool = False

    @property
    def name(self) -> Optional[str]:
        if self.full_name:
            return self.full_name
        return " ".join(filter(None, [self.first_name, self.last_name])).strip() or None

    @property
    def location(self) -> Optional[str]:
        if self.city and self.country:
            return f"{self.city}, {self.country}"
        return self.country or self.city or None

    def to_contact(self, confidence: float) -> ContactRecord:
        return ContactRecord(
            name=self.name,
            title=self.job_title,
            linkedin_url=self.linkedin_url,
            location=self.location,
            source=ContactSource.PAID_PEOPLE_SEARCH,
            confidence=confidence,
        )


@dataclass(slots=True)
class RevealRequest:
    """Candidates and data points the caller chose to pay for."""

    contact_ids: List[str]
    data_points: List[DataPoint]

    def __post_init__(self) -> None:
        self.contact_ids = list(dict.fromkeys(str(cid) for cid in self.contact_ids))
        self.data_points = list(dict.fromkeys(DataPoint(point) for point in self.data_points))
        if not self.contact_ids:
            raise ValueError("A reveal request needs at least one contact id.")
        if not self.data_points:
            raise ValueError("A reveal request needs at least one data point.")

    @property
    def estimated_cost(self) -> int:
        return len(self.contact_ids) * len(self.data_points)


@dataclass
class PaidSearchResult:
    """Ranked candidates from the free search phase of the paid provider."""

    candidates: List[PaidCandidate] = field(default_factory=list)
    total_results: int = 0
    credits_remaining: Optional[int] = None
    location_filter_dropped: bool = False
    simplified: bool = False

    def select(
        self,
        contact_ids: Iterable[str],
        data_points: Iterable[Union[DataPoint, str]],
    ) -> RevealRequest:
        known = {candidate.contact_id for candidate in self.candidates}
        chosen = [str(cid) for cid in contact_ids]
        unknown = [cid for cid in chosen if cid not in known]
        if unknown:
            raise ValueError(f"Unknown candidate id(s): {', '.join(unknown)}")
        return RevealRequest(contact_ids=chosen, data_points=[DataPoint(p) for p in data_points])

    def candidates_for(self, contact_ids: Iterable[str]) -> List[PaidCandidate]:
        wanted = set(contact_ids)
        return [candidate for candidate in self.candidates if candidate.contact_id in wanted]


# --- Orchestrator envelopes ---

@dataclass(slots=True)
class ProviderStats:
    provider: str
    found: int
    status: str
    message: str = ""


@dataclass
class EnrichmentStats:
    before: int
    per_provider: List[ProviderStats] = field(default_factory=list)
    after: int = 0
    new_added: int = 0


@dataclass(slots=True)
class CreditUsage:
    used: int = 0
    remaining: Optional[int] = None


@dataclass
class EnrichmentReport:
    """Soft-success envelope returned by every enrichment call."""

    contacts: List[ContactRecord]
    stats: EnrichmentStats
    credits: Optional[CreditUsage] = None
    success: bool = True
    message: str = ""

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            "contacts": [contact.to_dict() for contact in self.contacts],
            "stats": {
                "before": self.stats.before,
                "per_provider": [
                    {"provider": s.provider, "found": s.found, "status": s.status, "message": s.message}
                    for s in self.stats.per_provider
                ],
                "after": self.stats.after,
                "new_added": self.stats.new_added,
            },
        }
        if self.credits is not None:
            payload["credits"] = {"used": self.credits.used, "remaining": self.credits.remaining}
        return payload


@dataclass
class EntityContacts:
    """What the entity store returns for one product or brand."""

    contacts: List[ContactRecord] = field(default_factory=list)
    company_website: Optional[str] = None
    company_name: Optional[str] = None
    parent_company: Optional[str] = None
    company_linkedin_url: Optional[str] = None


__all__ = [
    "ContactSource",
    "DataPoint",
    "ContactRecord",
    "coerce_contacts",
    "normalise_email",
    "normalise_linkedin_url",
    "SearchCriteria",
    "ProviderResult",
    "PaidCandidate",
    "RevealRequest",
    "PaidSearchResult",
    "ProviderStats",
    "EnrichmentStats",
    "CreditUsage",
    "EnrichmentReport",
    "EntityContacts",
]
