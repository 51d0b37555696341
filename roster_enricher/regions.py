"""Focus regions: the geographic priorities used to bias scoring and searches."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple, Union

# ISO code -> lower-case names used in free-text locations and titles.
COUNTRY_NAMES: Dict[str, Tuple[str, ...]] = {
    "CH": ("switzerland", "swiss", "schweiz", "suisse", "svizzera"),
    "DE": ("germany", "deutschland", "german"),
    "AT": ("austria", "österreich", "osterreich", "austrian"),
    "FR": ("france", "french"),
    "BE": ("belgium", "belgique", "belgië"),
    "LU": ("luxembourg",),
    "NL": ("netherlands", "nederland", "holland", "dutch"),
    "IT": ("italy", "italia", "italian"),
    "ES": ("spain", "espana", "españa", "spanish"),
    "UK": ("united kingdom", "great britain", "england", "britain"),
    "PL": ("poland", "polska"),
    "SE": ("sweden", "sverige"),
    "DK": ("denmark", "danmark"),
    "NO": ("norway", "norge"),
    "FI": ("finland", "suomi"),
}

EU_COUNTRIES: Tuple[str, ...] = (
    "CH", "DE", "AT", "FR", "NL", "BE", "IT", "ES", "UK", "PL", "SE", "DK", "NO", "FI",
)

_EUROPE_WORDS = ("europe", "european", "emea")


@dataclass(frozen=True)
class FocusRegion:
    """A primary country, its economic bloc and the broader market around it."""

    code: str
    primary: Optional[str] = None
    secondary: Tuple[str, ...] = ()
    broad: Tuple[str, ...] = ()
    search_countries: Tuple[str, ...] = ()
    scrape_paths: Tuple[str, ...] = field(default=())

    def primary_names(self) -> Tuple[str, ...]:
        if not self.primary:
            return ()
        return COUNTRY_NAMES.get(self.primary, ())

    def location_tier(self, location: Optional[str]) -> Optional[str]:
        """Return ``"primary"``, ``"secondary"``, ``"broad"`` or ``None`` for a location."""

        if not location:
            return None
        if self.primary and _mentions_country(location, self.primary):
            return "primary"
        if any(_mentions_country(location, code) for code in self.secondary):
            return "secondary"
        if self.broad:
            if any(_mentions_country(location, code) for code in self.broad):
                return "broad"
            if any(_contains_word(location, word) for word in _EUROPE_WORDS):
                return "broad"
        return None


def _contains_word(text: str, word: str) -> bool:
    return re.search(rf"(?<!\w){re.escape(word)}(?!\w)", text, re.IGNORECASE) is not None


def _mentions_country(location: str, code: str) -> bool:
    segments = [segment.strip().lower() for segment in location.split(",")]
    if code.lower() in segments:
        return True
    return any(_contains_word(location, name) for name in COUNTRY_NAMES.get(code, ()))


_SWISS_PATHS = (
    "/contact-switzerland",
    "/kontakt-schweiz",
    "/schweiz",
    "/suisse",
    "/de-ch",
    "/fr-ch",
)
_EUROPE_PATHS = ("/contact-europe", "/europe", "/dach", "/distributors", "/vertrieb")

FOCUS_REGIONS: Dict[str, FocusRegion] = {
    "CH": FocusRegion(
        code="CH",
        primary="CH",
        secondary=("DE", "AT"),
        broad=EU_COUNTRIES,
        search_countries=("CH",),
        scrape_paths=_SWISS_PATHS,
    ),
    "DACH": FocusRegion(
        code="DACH",
        primary="CH",
        secondary=("DE", "AT"),
        broad=EU_COUNTRIES,
        search_countries=("CH", "DE", "AT"),
        scrape_paths=_SWISS_PATHS + ("/dach",),
    ),
    "DE": FocusRegion(
        code="DE",
        primary="DE",
        secondary=("AT", "CH"),
        broad=EU_COUNTRIES,
        search_countries=("DE",),
        scrape_paths=("/de-de", "/vertrieb", "/standorte"),
    ),
    "AT": FocusRegion(
        code="AT",
        primary="AT",
        secondary=("DE", "CH"),
        broad=EU_COUNTRIES,
        search_countries=("AT",),
        scrape_paths=("/de-at", "/vertrieb"),
    ),
    "FR": FocusRegion(
        code="FR",
        primary="FR",
        secondary=("BE", "LU", "CH"),
        broad=EU_COUNTRIES,
        search_countries=("FR",),
        scrape_paths=("/fr-fr", "/distributeurs"),
    ),
    "EU": FocusRegion(
        code="EU",
        broad=EU_COUNTRIES,
        search_countries=EU_COUNTRIES,
        scrape_paths=_EUROPE_PATHS,
    ),
    "ALL": FocusRegion(code="ALL"),
}

DEFAULT_FOCUS_REGION = "DACH"

RegionLike = Union[FocusRegion, str, None]


def get_focus_region(value: RegionLike = None) -> FocusRegion:
    """Resolve a region code (case-insensitive); ``None`` means the default region."""

    if isinstance(value, FocusRegion):
        return value
    code = (value or DEFAULT_FOCUS_REGION).strip().upper()
    try:
        return FOCUS_REGIONS[code]
    except KeyError as exc:
        raise ValueError(
            f"Unknown focus region '{value}'. Known regions: {', '.join(sorted(FOCUS_REGIONS))}"
        ) from exc


def known_region_codes() -> Iterable[str]:
    return sorted(FOCUS_REGIONS)


__all__ = [
    "COUNTRY_NAMES",
    "EU_COUNTRIES",
    "FocusRegion",
    "FOCUS_REGIONS",
    "RegionLike",
    "DEFAULT_FOCUS_REGION",
    "get_focus_region",
    "known_region_codes",
]
