"""Helpers for turning company websites into domains and root URLs."""
from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlparse

_COUNTRY_INDICATORS = (
    "france", "deutschland", "schweiz", "suisse", "svizzera",
    "italia", "espana", "nederland", "belgique", "osterreich",
    "polska", "uk", "usa", "canada",
)
_COUNTRY_TLDS = (".fr", ".de", ".ch", ".it", ".es", ".nl", ".be", ".at", ".pl", ".uk", ".co.uk")
_LANGUAGE_SUBDOMAIN = re.compile(r"^([a-z]{2}-[a-z]{2})\.", re.IGNORECASE)


def _parse(url: str):
    text = url.strip()
    if "://" not in text:
        text = f"https://{text}"
    return urlparse(text)


def extract_domain(url: Optional[str]) -> Optional[str]:
    """``https://www.example.com/path`` -> ``example.com``."""

    if not url or not url.strip():
        return None
    hostname = (_parse(url).hostname or "").lower()
    if hostname.startswith("www."):
        hostname = hostname[len("www."):]
    return hostname or None


def root_url(url: Optional[str]) -> Optional[str]:
    """``https://www.example.com/shop?x=1`` -> ``https://www.example.com``."""

    if not url or not url.strip():
        return None
    parsed = _parse(url)
    if not parsed.hostname:
        return None
    scheme = parsed.scheme or "https"
    return f"{scheme}://{parsed.hostname.lower()}"


def language_subdomain_root(url: Optional[str]) -> Optional[str]:
    """Strip a language/region subdomain: ``https://fr-ch.example.com`` -> ``https://example.com``."""

    if not url:
        return None
    parsed = _parse(url)
    hostname = parsed.hostname or ""
    if not _LANGUAGE_SUBDOMAIN.match(hostname):
        return None
    return f"{parsed.scheme or 'https'}://{_LANGUAGE_SUBDOMAIN.sub('', hostname).lower()}"


def parent_domain(domain: str) -> Optional[str]:
    """Guess the international ``.com`` domain behind a local one.

    ``segwayfrance.com`` -> ``segway.com``; ``example.de`` -> ``example.com``.
    """

    lowered = domain.lower()
    parts = lowered.split(".")
    if len(parts) < 2:
        return None
    if len(parts) >= 3 and f".{'.'.join(parts[-2:])}" in _COUNTRY_TLDS:
        extension = f".{'.'.join(parts[-2:])}"
        name = ".".join(parts[:-2])
    else:
        extension = f".{parts[-1]}"
        name = ".".join(parts[:-1])

    for indicator in _COUNTRY_INDICATORS:
        if indicator in name:
            cleaned = name.replace(indicator, "").strip(".-")
            if cleaned:
                return f"{cleaned}.com"

    if extension in _COUNTRY_TLDS:
        return f"{name}.com"
    return None


def company_domain(company_name: Optional[str]) -> Optional[str]:
    """``"WOW Tech Group"`` -> ``wowtechgroup.com``."""

    if not company_name:
        return None
    slug = re.sub(r"[^a-z0-9]", "", company_name.lower())
    return f"{slug}.com" if slug else None


__all__ = [
    "extract_domain",
    "root_url",
    "language_subdomain_root",
    "parent_domain",
    "company_domain",
]
