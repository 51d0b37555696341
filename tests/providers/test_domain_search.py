import httpx

from roster_enricher.models import ContactSource, SearchCriteria
from roster_enricher.providers import DomainSearchConfig, DomainSearchProvider
from roster_enricher.providers.domain_search import is_relevant_title
from roster_enricher.regions import FocusRegion

BRAND_COM_EMAILS = [
    {
        "value": "Eva.Export@Brand.com",
        "first_name": "Eva",
        "last_name": "Export",
        "position": "Export Manager",
        "confidence": 92,
        "linkedin": "eva-export",
    },
    {"value": "helpdesk@brand.com", "first_name": "Ivan", "last_name": "It", "position": "IT Support", "confidence": 99},
    {"value": "carl@brand.com", "first_name": "Carl", "last_name": "Chef", "position": "CEO", "confidence": 80},
]


def _provider(handler, **config) -> DomainSearchProvider:
    config.setdefault("api_key", "test-key")
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return DomainSearchProvider(DomainSearchConfig(**config), client=client)


def test_falls_back_to_parent_domain_and_filters_titles() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        domain = request.url.params["domain"]
        seen.append(domain)
        assert request.url.path == "/v2/domain-search"
        assert request.url.params["api_key"] == "test-key"
        emails = BRAND_COM_EMAILS if domain == "brand.com" else []
        return httpx.Response(200, json={"data": {"emails": emails}})

    provider = _provider(handler)
    result = provider.fetch(SearchCriteria(website="https://www.brand.ch", focus_region="DACH"), 5)

    assert result.ok
    assert seen == ["brand.ch", "brand.com"]
    assert [c.name for c in result.contacts] == ["Eva Export", "Carl Chef"]
    eva = result.contacts[0]
    assert eva.email == "eva.export@brand.com"
    assert eva.confidence == 0.92
    assert eva.linkedin_url == "https://www.linkedin.com/in/eva-export"
    assert eva.source is ContactSource.DOMAIN_SEARCH


def test_parent_company_domain_is_last_fallback() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        domain = request.url.params["domain"]
        seen.append(domain)
        emails = BRAND_COM_EMAILS[2:] if domain == "wowtechgroup.com" else []
        return httpx.Response(200, json={"data": {"emails": emails}})

    provider = _provider(handler)
    criteria = SearchCriteria(domain="brand.io", parent_company="WOW Tech Group")

    contacts = provider.search(criteria, 5)

    assert seen == ["brand.io", "wowtechgroup.com"]
    assert [c.email for c in contacts] == ["carl@brand.com"]


def test_missing_key_skips_without_network(monkeypatch) -> None:
    monkeypatch.delenv("HUNTER_API_KEY", raising=False)
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    provider = _provider(handler, api_key=None)
    result = provider.fetch(SearchCriteria(website="https://brand.ch"), 5)

    assert result.status == "not_configured"
    assert result.contacts == []
    assert calls == []


def test_rate_limit_is_reported() -> None:
    provider = _provider(lambda request: httpx.Response(429))

    result = provider.fetch(SearchCriteria(website="https://brand.ch"), 5)

    assert result.status == "rate_limited"
    assert result.contacts == []


def test_limit_truncates_ranked_results() -> None:
    provider = _provider(lambda request: httpx.Response(200, json={"data": {"emails": BRAND_COM_EMAILS}}))

    contacts = provider.search(SearchCriteria(domain="brand.com"), 1)

    assert [c.name for c in contacts] == ["Eva Export"]


def test_is_relevant_title() -> None:
    assert is_relevant_title("Key Account Manager")
    assert not is_relevant_title("Accountant")
    assert not is_relevant_title(None)


def test_confidence_is_always_a_percentage() -> None:
    emails = [{"value": "sam@brand.com", "first_name": "Sam", "last_name": "Sales", "position": "Sales Manager", "confidence": 1}]
    provider = _provider(lambda request: httpx.Response(200, json={"data": {"emails": emails}}))

    contacts = provider.search(SearchCriteria(domain="brand.com"), 5)

    assert contacts[0].confidence == 0.01


def test_custom_focus_region_ranks_without_lookup() -> None:
    italy = FocusRegion(code="IT", primary="IT")
    emails = [
        {"value": "carl@brand.com", "first_name": "Carl", "last_name": "Chef", "position": "CEO", "confidence": 80},
        {"value": "ida@brand.com", "first_name": "Ida", "last_name": "Italia", "position": "Sales Manager Italy", "confidence": 70},
    ]
    provider = _provider(lambda request: httpx.Response(200, json={"data": {"emails": emails}}))

    result = provider.fetch(SearchCriteria(domain="brand.com", focus_region=italy), 5)

    assert result.ok
    assert [c.name for c in result.contacts] == ["Ida Italia", "Carl Chef"]
