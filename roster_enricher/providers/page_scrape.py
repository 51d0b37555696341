"""Scrape a company's own contact pages for generic business addresses.

Pages are fetched through a reader proxy (``https://r.jina.ai/`` by default)
that returns page text, then scanned with regular expressions:

* role-qualified emails (``export@``, ``sales@``, ``info@`` ...), titled by role,
* international phone numbers with a plausible digit count,
* a known job title followed by a capitalised two-word name.

Scanning stops at the first page that yields at least one contact.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, NamedTuple, Optional, Sequence, Tuple, Union

import httpx

from ..domains import language_subdomain_root, root_url
from ..errors import NotConfigured, ProviderError
from ..models import ContactRecord, ContactSource, SearchCriteria
from ..regions import RegionLike, get_focus_region
from .base import HttpProvider, HttpProviderConfig

LOGGER = logging.getLogger(__name__)

DEFAULT_PATHS: Tuple[str, ...] = (
    "/contact",
    "/kontakt",
    "/contact-us",
    "/about",
    "/about-us",
    "/b2b",
    "/business",
    "/wholesale",
    "/partner",
    "/ueber-uns",
    "/impressum",
)

CONTACT_SIGNALS = ("contact", "email", "e-mail", "phone", "sales", "business", "b2b")

EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}")
PHONE_PATTERN = re.compile(r"\+\d{1,3}[\s.-]?\d{1,4}[\s.-]?\d{2,4}[\s.-]?\d{2,4}[\s.-]?\d{0,4}")
TITLED_NAME_PATTERN = re.compile(
    r"(?i:(Business Development Manager|Business Development|Export Manager|Key Account Manager|Key Account"
    r"|Account Manager|Sales Manager|Director of Sales|VP Sales|Commercial Director|Geschäftsführer"
    r"|Leiter Vertrieb))[\s:]+([A-ZÄÖÜ][a-zäöüß]+ [A-ZÄÖÜ][a-zäöüß]+)"
)

MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15


class RoleEmailRule(NamedTuple):
    tokens: FrozenSet[str]
    title: str
    location: Optional[str]
    confidence: float


# Priority order: the first rule whose token appears in the local part wins.
ROLE_EMAIL_RULES: Tuple[RoleEmailRule, ...] = (
    RoleEmailRule(frozenset({"switzerland", "swiss", "schweiz", "suisse"}), "Switzerland Contact", "Switzerland", 0.95),
    RoleEmailRule(frozenset({"europe", "eu"}), "Europe Contact", "Europe", 0.90),
    RoleEmailRule(frozenset({"dach"}), "DACH Region Contact", "DACH", 0.90),
    RoleEmailRule(frozenset({"export", "international"}), "Export & International Contact", None, 0.75),
    RoleEmailRule(frozenset({"order", "orders"}), "Order & Sales Contact", None, 0.75),
    RoleEmailRule(frozenset({"sales", "vertrieb"}), "Sales Contact", None, 0.75),
    RoleEmailRule(frozenset({"business", "b2b"}), "Business Development Contact", None, 0.75),
    RoleEmailRule(frozenset({"wholesale", "partner", "partners", "contact"}), "B2B Contact", None, 0.75),
    RoleEmailRule(frozenset({"info"}), "General Contact", None, 0.65),
)

NAMED_CONTACT_CONFIDENCE = 0.8


@dataclass
class PageScrapeConfig(HttpProviderConfig):
    """Extends :class:`HttpProviderConfig` with page probing options."""

    api_key_env: Optional[str] = "JINA_API_KEY"
    reader_prefix: str = "https://r.jina.ai/"
    timeout_seconds: float = 10.0
    paths: Sequence[str] = DEFAULT_PATHS
    include_regional_paths: bool = True
    max_regional_pages: int = 3
    max_pages: int = 14
    max_contacts: int = 5


def has_contact_signals(content: str) -> bool:
    if "@" in content:
        return True
    lowered = content.lower()
    return any(signal in lowered for signal in CONTACT_SIGNALS)


def classify_role_email(email: str) -> Optional[Tuple[int, RoleEmailRule]]:
    local = email.split("@", 1)[0].lower()
    tokens = set(re.split(r"[._+-]", local))
    for index, rule in enumerate(ROLE_EMAIL_RULES):
        if tokens & rule.tokens:
            return index, rule
    return None


def extract_phones(content: str) -> List[str]:
    phones: List[str] = []
    for match in PHONE_PATTERN.finditer(content):
        candidate = match.group(0).strip(" .-")
        digits = re.sub(r"\D", "", candidate)
        if MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS and candidate not in phones:
            phones.append(candidate)
    return phones


def extract_contacts(content: str, source: ContactSource = ContactSource.PAGE_SCRAPE) -> List[ContactRecord]:
    """Pull role-qualified emails and titled names out of page text."""

    phones = extract_phones(content)
    phone = phones[0] if phones else None

    role_emails: List[Tuple[int, int, str, RoleEmailRule]] = []
    seen = set()
    for position, match in enumerate(EMAIL_PATTERN.finditer(content)):
        email = match.group(0).lower()
        if email in seen:
            continue
        classified = classify_role_email(email)
        if classified is None:
            continue
        seen.add(email)
        priority, rule = classified
        role_emails.append((priority, position, email, rule))
    role_emails.sort(key=lambda item: (item[0], item[1]))

    contacts = [
        ContactRecord(
            name=None,
            title=rule.title,
            email=email,
            phone=phone,
            location=rule.location,
            source=source,
            confidence=rule.confidence,
        )
        for _, _, email, rule in role_emails
    ]

    for match in TITLED_NAME_PATTERN.finditer(content):
        contacts.append(
            ContactRecord(
                name=match.group(2),
                title=match.group(1),
                source=source,
                confidence=NAMED_CONTACT_CONFIDENCE,
            )
        )
    return contacts


def _dedupe_by_email(contacts: Sequence[ContactRecord]) -> List[ContactRecord]:
    unique: List[ContactRecord] = []
    emails = set()
    for contact in contacts:
        if contact.email:
            if contact.email in emails:
                continue
            emails.add(contact.email)
        unique.append(contact)
    return unique


class PageScrapeProvider(HttpProvider):
    """Tries conventional contact page paths until one yields contacts."""

    name = "page_scrape"
    source = ContactSource.PAGE_SCRAPE
    cost_rank = 20
    config_class = PageScrapeConfig
    requires_credential = False

    def __init__(
        self,
        config: Optional[Union[PageScrapeConfig, Dict[str, Any]]] = None,
        *,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(config, client=client)

    def search(self, criteria: SearchCriteria, limit: int) -> List[ContactRecord]:
        website = criteria.website or (f"https://{criteria.domain}" if criteria.domain else None)
        base = root_url(website)
        if not base:
            raise NotConfigured(self.name, "entity has no website to scrape")

        bases = [base]
        alternate = language_subdomain_root(website)
        if alternate and alternate != base:
            LOGGER.debug("Will also try main domain %s", alternate)
            bases.append(alternate)

        cap = min(limit, self.config.max_contacts) if limit else self.config.max_contacts
        paths = self.candidate_paths(criteria.focus_region)
        for root in bases:
            for pages_checked, path in enumerate(paths):
                if pages_checked >= self.config.max_pages:
                    LOGGER.debug("Stopping after %s page(s) on %s", pages_checked, root)
                    break
                url = f"{root}{path}"
                content = self._fetch_page(url)
                if content is None or not has_contact_signals(content):
                    continue
                contacts = _dedupe_by_email(extract_contacts(content, self.source))
                if contacts:
                    LOGGER.info("Extracted %s contact(s) from %s", len(contacts), url)
                    return contacts[:cap]
        return []

    def candidate_paths(self, focus_region: RegionLike = None) -> List[str]:
        """Regional paths (at most ``max_regional_pages``) followed by the generic list."""

        paths: List[str] = []
        if self.config.include_regional_paths:
            paths.extend(get_focus_region(focus_region).scrape_paths[: self.config.max_regional_pages])
        paths.extend(self.config.paths)
        return list(dict.fromkeys(paths))

    def _fetch_page(self, url: str) -> Optional[str]:
        target = f"{self.config.reader_prefix}{url}" if self.config.reader_prefix else url
        headers = {"Accept": "text/plain"}
        api_key = self.config.resolve_api_key()
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        LOGGER.debug("Trying %s", url)
        try:
            response = self._request("GET", target, headers=headers)
        except ProviderError as exc:
            LOGGER.debug("Skipping %s: %s", url, exc.message)
            return None
        return response.text


__all__ = [
    "PageScrapeConfig",
    "PageScrapeProvider",
    "DEFAULT_PATHS",
    "ROLE_EMAIL_RULES",
    "extract_contacts",
    "extract_phones",
    "classify_role_email",
    "has_contact_signals",
]
