import threading
import time

import httpx
import pytest

from roster_enricher.credits import CreditLedger
from roster_enricher.errors import (
    DuplicateContact,
    EnrichmentCancelled,
    EntityNotFound,
    NotConfigured,
    ProviderUnavailable,
    RevealFailed,
)
from roster_enricher.models import (
    ContactRecord,
    ContactSource,
    DataPoint,
    PaidCandidate,
    PaidSearchResult,
    RevealRequest,
)
from roster_enricher.orchestrator import EnrichmentOrchestrator
from roster_enricher.providers import (
    DomainSearchConfig,
    DomainSearchProvider,
    PageScrapeConfig,
    PageScrapeProvider,
    ProviderAdapter,
)
from roster_enricher.regions import FocusRegion
from roster_enricher.store import InMemoryEntityStore


class StaticProvider(ProviderAdapter):
    def __init__(self, name, cost_rank, contacts=(), *, source=ContactSource.DOMAIN_SEARCH, delay=0.0) -> None:
        self.name = name
        self.cost_rank = cost_rank
        self.source = source
        self.contacts = list(contacts)
        self.delay = delay
        self.calls = []

    def search(self, criteria, limit):
        self.calls.append(criteria)
        if self.delay:
            time.sleep(self.delay)
        return list(self.contacts)


class FailingProvider(StaticProvider):
    def search(self, criteria, limit):
        self.calls.append(criteria)
        raise ProviderUnavailable(self.name, "service down")


class FakePaidProvider(StaticProvider):
    paid = True

    def __init__(self, contacts=(), *, balance=10, fail_reveal=False) -> None:
        super().__init__("paid", 100, contacts, source=ContactSource.PAID_PEOPLE_SEARCH)
        self.balance = balance
        self.fail_reveal = fail_reveal
        self.ledger = CreditLedger(lambda: self.balance, provider=self.name)
        self.reveals = []

    def search(self, criteria, limit):
        self.calls.append(criteria)
        with self.ledger.reserve(len(self.contacts)):
            self.balance -= len(self.contacts)
        return list(self.contacts)

    def search_candidates(self, criteria, *, focus_region=None):
        self.calls.append(criteria)
        return PaidSearchResult(
            candidates=[PaidCandidate(contact_id="p1", full_name="Paula Paid", job_title="Export Manager")],
            total_results=1,
            credits_remaining=self.balance,
        )

    def reveal(self, request, candidates=()):
        self.reveals.append(request)
        with self.ledger.reserve(request.estimated_cost):
            if self.fail_reveal:
                raise RevealFailed(self.name, "enrich failed", [c.to_contact(0.3) for c in candidates])
            self.balance -= request.estimated_cost
        return list(self.contacts)


def _contact(index, **overrides):
    values = {
        "name": f"Person {index}",
        "email": f"person{index}@brand.ch",
        "title": "Sales",
        "source": ContactSource.DOMAIN_SEARCH,
    }
    values.update(overrides)
    return ContactRecord(**values)


def _store(contacts=()):
    store = InMemoryEntityStore()
    store.put_entity(
        "brand",
        "b1",
        contacts=contacts,
        company_website="https://www.brand.ch",
        company_name="Brand",
    )
    return store


def test_providers_run_cheapest_first_with_ai_extraction_leading() -> None:
    page = StaticProvider("page_scrape", 20)
    domain = StaticProvider("domain_search", 10)

    orchestrator = EnrichmentOrchestrator(_store(), [page, domain])

    assert [d.name for d in orchestrator.providers] == ["ai_extraction", "domain_search", "page_scrape"]


def test_enrich_merges_stores_and_reports_stats() -> None:
    manual = ContactRecord(name="Anna Muster", email="anna@brand.ch", title="Export Manager", source="manual")
    store = _store([manual])
    domain = StaticProvider(
        "domain_search",
        10,
        [
            ContactRecord(name="Anna Muster", email="a.muster@brand.ch", source=ContactSource.DOMAIN_SEARCH),
            _contact(2),
        ],
    )
    page = StaticProvider("page_scrape", 20, [ContactRecord(email="export@brand.ch", source="page_scrape")])

    report = EnrichmentOrchestrator(store, [domain, page]).enrich("brand", "b1")

    assert report.success is True
    assert report.stats.before == 1
    assert report.stats.after == 3
    assert report.stats.new_added == 2
    assert [(s.provider, s.found, s.status) for s in report.stats.per_provider] == [
        ("ai_extraction", 0, "ok"),
        ("domain_search", 2, "ok"),
        ("page_scrape", 1, "ok"),
    ]
    assert report.contacts[0] is manual
    assert report.credits is None
    assert store.get_entity_contacts("brand", "b1").contacts == report.contacts
    assert domain.calls[0].domain == "brand.ch"
    assert domain.calls[0].focus_region.code == "DACH"


def test_failed_stage_does_not_stop_the_cascade() -> None:
    failing = FailingProvider("domain_search", 10)
    page = StaticProvider("page_scrape", 20, [_contact(1)])

    report = EnrichmentOrchestrator(_store(), [failing, page]).enrich("brand", "b1")

    assert report.success is True
    statuses = {s.provider: (s.status, s.message) for s in report.stats.per_provider}
    assert statuses["domain_search"] == ("unavailable", "service down")
    assert statuses["page_scrape"][0] == "ok"
    assert len(page.calls) == 1


def test_extracted_contacts_flow_through_ai_stage() -> None:
    report = EnrichmentOrchestrator(_store(), []).enrich(
        "brand", "b1", extracted_contacts=[{"name": "Eva Export", "email": "eva@brand.ch"}]
    )

    assert report.contacts[0].source is ContactSource.AI_EXTRACTION
    assert report.stats.per_provider[0].found == 1


def test_nothing_found_is_a_soft_failure_and_writes_nothing() -> None:
    store = _store()
    writes = []
    original = store.replace_entity_contacts
    store.replace_entity_contacts = lambda *args: writes.append(args) or original(*args)

    report = EnrichmentOrchestrator(store, [FailingProvider("domain_search", 10)]).enrich("brand", "b1")

    assert report.success is False
    assert report.contacts == []
    assert writes == []


def test_roster_cap_applies_to_automated_enrichment() -> None:
    store = _store([_contact(i) for i in range(3)])
    domain = StaticProvider("domain_search", 10, [_contact(i) for i in range(10, 20)])

    report = EnrichmentOrchestrator(store, [domain]).enrich("brand", "b1")

    assert len(report.contacts) == 5


def test_paid_stage_skipped_when_free_stages_are_sufficient() -> None:
    paid = FakePaidProvider([_contact(50)])
    domain = StaticProvider("domain_search", 10, [_contact(1), _contact(2)])

    orchestrator = EnrichmentOrchestrator(_store(), [paid, domain], sufficient_contacts=2)
    report = orchestrator.enrich("brand", "b1", use_paid=True)

    assert paid.calls == []
    assert report.credits is None
    assert [s.provider for s in report.stats.per_provider] == ["ai_extraction", "domain_search"]


def test_paid_stage_runs_last_and_reports_credits() -> None:
    paid = FakePaidProvider([_contact(50, title="Export Manager")], balance=10)
    domain = StaticProvider("domain_search", 10, [_contact(1)])

    report = EnrichmentOrchestrator(_store(), [paid, domain]).enrich("brand", "b1", use_paid=True)

    assert [s.provider for s in report.stats.per_provider][-1] == "paid"
    assert report.credits is not None
    assert report.credits.used == 1
    assert report.credits.remaining == 9
    assert report.stats.new_added == 2


def test_paid_stage_not_run_without_opt_in() -> None:
    paid = FakePaidProvider([_contact(50)])

    EnrichmentOrchestrator(_store(), [paid]).enrich("brand", "b1")

    assert paid.calls == []


def test_cancelled_request_writes_nothing_and_spends_nothing() -> None:
    store = _store([_contact(1)])
    domain = StaticProvider("domain_search", 10, [_contact(2)])
    paid = FakePaidProvider([_contact(50)])
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(EnrichmentCancelled):
        EnrichmentOrchestrator(store, [domain, paid]).enrich("brand", "b1", use_paid=True, cancel_event=cancel)

    assert domain.calls == []
    assert paid.ledger.used == 0
    assert [c.name for c in store.get_entity_contacts("brand", "b1").contacts] == ["Person 1"]


def test_unknown_entity_raises() -> None:
    with pytest.raises(EntityNotFound):
        EnrichmentOrchestrator(_store(), []).enrich("brand", "missing")
    with pytest.raises(ValueError):
        EnrichmentOrchestrator(_store(), []).enrich("shop", "b1")


def test_concurrent_mode_keeps_cascade_order() -> None:
    slow = StaticProvider("domain_search", 10, [_contact(1)], delay=0.05)
    fast = StaticProvider("page_scrape", 20, [_contact(2)])

    report = EnrichmentOrchestrator(_store(), [slow, fast], concurrent=True, max_workers=3).enrich("brand", "b1")

    assert [s.provider for s in report.stats.per_provider] == ["ai_extraction", "domain_search", "page_scrape"]


def test_add_manual_contact_dedupes_and_bypasses_cap() -> None:
    store = _store([_contact(i) for i in range(5)])
    orchestrator = EnrichmentOrchestrator(store, [])

    contacts = orchestrator.add_manual_contact("brand", "b1", {"name": "Maria Manual", "title": "Owner"})

    assert len(contacts) == 6
    assert contacts[-1].source is ContactSource.MANUAL
    with pytest.raises(DuplicateContact):
        orchestrator.add_manual_contact("brand", "b1", {"name": "maria manual"})


def test_interactive_paid_flow_merges_without_cap() -> None:
    store = _store([_contact(i) for i in range(5)])
    paid = FakePaidProvider([_contact(60), _contact(61)], balance=10)
    orchestrator = EnrichmentOrchestrator(store, [paid])

    result = orchestrator.search_paid_candidates("brand", "b1")
    request = result.select(["p1"], [DataPoint.EMAIL, DataPoint.PHONE])
    report = orchestrator.reveal_paid_candidates("brand", "b1", request, candidates=result.candidates)

    assert len(report.contacts) == 7
    assert report.stats.new_added == 2
    assert report.credits.used == 2
    assert report.credits.remaining == 8
    assert len(store.get_entity_contacts("brand", "b1").contacts) == 7


def test_failed_reveal_still_adds_masked_candidates() -> None:
    paid = FakePaidProvider([], fail_reveal=True)
    store = _store()
    orchestrator = EnrichmentOrchestrator(store, [paid])
    candidate = PaidCandidate(contact_id="p1", full_name="Paula Paid", job_title="Export Manager")

    report = orchestrator.reveal_paid_candidates(
        "brand", "b1", RevealRequest(["p1"], [DataPoint.EMAIL]), candidates=[candidate]
    )

    assert report.stats.per_provider[0].status == "reveal_failed"
    assert [c.name for c in report.contacts] == ["Paula Paid"]
    assert report.contacts[0].confidence == 0.3
    assert report.credits.used == 0


def test_interactive_search_without_paid_provider_is_not_configured() -> None:
    with pytest.raises(NotConfigured):
        EnrichmentOrchestrator(_store(), []).search_paid_candidates("brand", "b1")


def test_reveal_falls_back_to_candidates_from_last_search() -> None:
    paid = FakePaidProvider([], fail_reveal=True)
    orchestrator = EnrichmentOrchestrator(_store(), [paid])

    result = orchestrator.search_paid_candidates("brand", "b1")
    request = result.select(["p1"], [DataPoint.EMAIL])
    report = orchestrator.reveal_paid_candidates("brand", "b1", request)

    assert report.stats.per_provider[0].status == "reveal_failed"
    assert [(c.name, c.title) for c in report.contacts] == [("Paula Paid", "Export Manager")]
    assert report.contacts[0].confidence == 0.3


def test_reveal_of_unknown_candidate_is_rejected_before_spending() -> None:
    paid = FakePaidProvider([_contact(60)], balance=10)
    store = _store()
    orchestrator = EnrichmentOrchestrator(store, [paid])

    with pytest.raises(ValueError):
        orchestrator.reveal_paid_candidates("brand", "b1", RevealRequest(["zz"], [DataPoint.EMAIL]))

    assert paid.reveals == []
    assert paid.balance == 10
    assert store.get_entity_contacts("brand", "b1").contacts == []


def test_custom_focus_region_reaches_http_providers() -> None:
    italy = FocusRegion(code="IT", primary="IT", scrape_paths=("/contatti",))
    hunter_emails = [
        {"value": "sam@brand.ch", "first_name": "Sam", "last_name": "Sales", "position": "Sales Manager", "confidence": 90}
    ]
    pages = []

    def hunter(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {"emails": hunter_emails}})

    def site(request: httpx.Request) -> httpx.Response:
        pages.append(request.url.path)
        return httpx.Response(404)

    domain = DomainSearchProvider(
        DomainSearchConfig(api_key="test-key"), client=httpx.Client(transport=httpx.MockTransport(hunter))
    )
    page = PageScrapeProvider(PageScrapeConfig(reader_prefix=""), client=httpx.Client(transport=httpx.MockTransport(site)))
    orchestrator = EnrichmentOrchestrator(_store(), [domain, page])

    report = orchestrator.enrich("brand", "b1", focus_region=italy)

    assert report.success
    assert [(s.provider, s.status) for s in report.stats.per_provider] == [
        ("ai_extraction", "ok"),
        ("domain_search", "ok"),
        ("page_scrape", "ok"),
    ]
    assert [c.email for c in report.contacts] == ["sam@brand.ch"]
    assert pages[0] == "/contatti"


def test_company_linkedin_page_is_passed_to_providers() -> None:
    store = InMemoryEntityStore()
    store.put_entity(
        "product",
        "p1",
        company_website="https://www.brand.ch",
        company_linkedin_url="https://www.linkedin.com/company/brand-ag",
    )
    employees = StaticProvider("linkedin_employees", 50, [_contact(7)], source=ContactSource.LINKEDIN_EMPLOYEES)

    report = EnrichmentOrchestrator(store, [employees]).enrich("product", "p1")

    assert employees.calls[0].linkedin_url == "https://www.linkedin.com/company/brand-ag"
    assert report.stats.new_added == 1
