import httpx

from roster_enricher.models import ContactSource, SearchCriteria
from roster_enricher.providers import PageScrapeConfig, PageScrapeProvider
from roster_enricher.providers.page_scrape import classify_role_email, extract_contacts, extract_phones

ABOUT_PAGE = """
# About us

We ship to retailers across Europe. For distribution enquiries write to
export@example.com or call +41 44 123 45 67.
"""


def _provider(handler, **config) -> PageScrapeProvider:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return PageScrapeProvider(PageScrapeConfig(**config), client=client)


def test_timeouts_skip_to_next_path_and_about_page_yields_export_contact() -> None:
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        if request.url.path in ("/contact", "/kontakt"):
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(200, text=ABOUT_PAGE)

    provider = _provider(
        handler,
        paths=("/contact", "/kontakt", "/about"),
        include_regional_paths=False,
        reader_prefix="",
    )
    result = provider.fetch(SearchCriteria(website="https://www.example.com/shop"), 5)

    assert result.ok
    assert requested == ["/contact", "/kontakt", "/about"]
    assert len(result.contacts) == 1
    contact = result.contacts[0]
    assert contact.email == "export@example.com"
    assert contact.title == "Export & International Contact"
    assert contact.confidence == 0.75
    assert contact.phone == "+41 44 123 45 67"
    assert contact.source is ContactSource.PAGE_SCRAPE


def test_reader_prefix_is_prepended() -> None:
    urls = []

    def handler(request: httpx.Request) -> httpx.Response:
        urls.append(str(request.url))
        return httpx.Response(200, text="sales@example.com")

    provider = _provider(handler, paths=("/contact",), include_regional_paths=False)
    provider.search(SearchCriteria(website="https://www.example.com"), 5)

    assert urls == ["https://r.jina.ai/https://www.example.com/contact"]


def test_max_pages_bounds_the_page_walk() -> None:
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        return httpx.Response(404)

    provider = _provider(handler, reader_prefix="", include_regional_paths=False, max_pages=3)
    result = provider.fetch(SearchCriteria(website="https://www.example.com"), 5)

    assert result.ok
    assert result.contacts == []
    assert len(requested) == 3


def test_language_subdomain_also_tries_main_domain() -> None:
    hosts = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        if request.url.host == "example.com":
            return httpx.Response(200, text="Contact: info@example.com")
        return httpx.Response(200, text="Nothing useful here")

    provider = _provider(handler, paths=("/contact",), include_regional_paths=False, reader_prefix="")
    contacts = provider.search(SearchCriteria(website="https://fr-ch.example.com"), 5)

    assert hosts == ["fr-ch.example.com", "example.com"]
    assert contacts[0].title == "General Contact"
    assert contacts[0].confidence == 0.65


def test_regional_paths_come_first() -> None:
    provider = PageScrapeProvider()

    paths = provider.candidate_paths("DACH")

    assert paths[:4] == ["/contact-switzerland", "/kontakt-schweiz", "/schweiz", "/contact"]
    assert "/impressum" in paths
    assert len(paths) == len(set(paths))
    assert len(paths) <= provider.config.max_pages


def test_default_config_reaches_generic_contact_page() -> None:
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        if request.url.path == "/contact":
            return httpx.Response(200, text="Sales enquiries: sales@example.com")
        return httpx.Response(404)

    provider = _provider(handler, reader_prefix="")
    result = provider.fetch(SearchCriteria(website="https://www.example.com"), 5)

    assert result.ok
    assert requested == ["/contact-switzerland", "/kontakt-schweiz", "/schweiz", "/contact"]
    assert [c.email for c in result.contacts] == ["sales@example.com"]
    assert result.contacts[0].title == "Sales Contact"


def test_missing_website_is_not_configured() -> None:
    result = PageScrapeProvider().fetch(SearchCriteria(), 5)
    assert result.status == "not_configured"


def test_role_email_priorities() -> None:
    contacts = extract_contacts("Write to info@brand.ch, swiss@brand.ch or sales.team@brand.ch")

    assert [c.email for c in contacts] == ["swiss@brand.ch", "sales.team@brand.ch", "info@brand.ch"]
    assert contacts[0].location == "Switzerland"
    assert contacts[0].confidence == 0.95
    assert classify_role_email("jane.doe@brand.ch") is None


def test_titled_names_are_extracted() -> None:
    contacts = extract_contacts("Export Manager: Hans Meier\nFür Fragen stehen wir bereit.")

    assert [(c.name, c.title) for c in contacts] == [("Hans Meier", "Export Manager")]


def test_phone_digit_bounds() -> None:
    assert extract_phones("Call +41 44 123 45 67 today") == ["+41 44 123 45 67"]
    assert extract_phones("Code +1 23") == []
