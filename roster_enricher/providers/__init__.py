"""Contact providers, cheapest first."""

from .ai_extraction import AIExtractionProvider  # noqa: F401
from .base import HttpProvider, HttpProviderConfig, ProviderAdapter, ProviderConfig  # noqa: F401
from .domain_search import DomainSearchConfig, DomainSearchProvider  # noqa: F401
from .linkedin_employees import LinkedInEmployeesConfig, LinkedInEmployeesProvider  # noqa: F401
from .page_scrape import PageScrapeConfig, PageScrapeProvider  # noqa: F401
from .paid_people_search import PaidPeopleSearchConfig, PaidPeopleSearchProvider  # noqa: F401

__all__ = [
    "ProviderAdapter",
    "ProviderConfig",
    "HttpProvider",
    "HttpProviderConfig",
    "AIExtractionProvider",
    "DomainSearchConfig",
    "DomainSearchProvider",
    "LinkedInEmployeesConfig",
    "LinkedInEmployeesProvider",
    "PageScrapeConfig",
    "PageScrapeProvider",
    "PaidPeopleSearchConfig",
    "PaidPeopleSearchProvider",
]
