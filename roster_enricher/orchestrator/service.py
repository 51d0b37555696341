"""Enrichment orchestrator that runs the provider cascade for one entity."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

from ..domains import extract_domain
from ..errors import EnrichmentCancelled, NotConfigured, RevealFailed
from ..merge import (
    DEFAULT_MATCHER,
    DEFAULT_MAX_ROSTER_SIZE,
    ContactMatcher,
    count_new_actionable,
    merge_contacts,
)
from ..models import (
    ContactRecord,
    ContactSource,
    CreditUsage,
    EnrichmentReport,
    EnrichmentStats,
    EntityContacts,
    PaidCandidate,
    PaidSearchResult,
    ProviderResult,
    ProviderStats,
    RevealRequest,
    SearchCriteria,
    coerce_contacts,
)
from ..providers.ai_extraction import AIExtractionProvider
from ..regions import DEFAULT_FOCUS_REGION, FocusRegion, get_focus_region
from ..scoring import DEFAULT_SCORER, RelevanceScorer
from ..store import EntityStore, validate_entity_type

LOGGER = logging.getLogger(__name__)


class ProviderProtocol(Protocol):
    """Interface the orchestrator needs from a provider (or its rate-limited wrapper)."""

    name: str
    cost_rank: int

    def fetch(
        self, criteria: SearchCriteria, limit: int, *, raise_on_error: bool = False
    ) -> ProviderResult:  # pragma: no cover - runtime protocol
        """Return a never-throwing result for the supplied criteria."""


@dataclass(frozen=True)
class ProviderDescriptor:
    """One stage of the cascade: the provider plus how it is scheduled."""

    provider: Any
    name: str
    cost_rank: int
    paid: bool = False
    source: Optional[ContactSource] = None

    @classmethod
    def describe(cls, provider: Any) -> "ProviderDescriptor":
        return cls(
            provider=provider,
            name=getattr(provider, "name", provider.__class__.__name__),
            cost_rank=int(getattr(provider, "cost_rank", 0)),
            paid=bool(getattr(provider, "paid", False)),
            source=getattr(provider, "source", None),
        )


def order_providers(providers: Iterable[Any]) -> List[ProviderDescriptor]:
    """Describe providers and order them cheapest first, AI extraction always leading."""

    descriptors = [ProviderDescriptor.describe(provider) for provider in providers]
    if not any(d.source is ContactSource.AI_EXTRACTION for d in descriptors):
        descriptors.append(ProviderDescriptor.describe(AIExtractionProvider()))
    return sorted(descriptors, key=lambda d: (d.source is not ContactSource.AI_EXTRACTION, d.cost_rank))


class EnrichmentOrchestrator:
    """Runs providers for one entity, merges their contacts and stores the roster."""

    def __init__(
        self,
        store: EntityStore,
        providers: Sequence[ProviderProtocol] = (),
        *,
        scorer: RelevanceScorer = DEFAULT_SCORER,
        matcher: ContactMatcher = DEFAULT_MATCHER,
        max_roster_size: int = DEFAULT_MAX_ROSTER_SIZE,
        sufficient_contacts: int = DEFAULT_MAX_ROSTER_SIZE,
        default_focus_region: str = DEFAULT_FOCUS_REGION,
        concurrent: bool = False,
        max_workers: Optional[int] = None,
        raise_on_error: bool = False,
    ) -> None:
        self._store = store
        self._descriptors = order_providers(providers)
        self._scorer = scorer
        self._matcher = matcher
        self._max_roster_size = max_roster_size
        self._sufficient_contacts = sufficient_contacts
        self._default_focus_region = get_focus_region(default_focus_region)
        self._concurrent = concurrent
        self._max_workers = max_workers
        self._raise_on_error = raise_on_error
        self._locks: Dict[Tuple[str, str], threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._last_searches: Dict[Tuple[str, str], PaidSearchResult] = {}

    @property
    def providers(self) -> List[ProviderDescriptor]:
        return list(self._descriptors)

    # ------------------------------------------------------------------
    # Automated cascade
    def enrich(
        self,
        entity_type: str,
        entity_id: str,
        use_paid: bool = False,
        focus_region: Union[FocusRegion, str, None] = None,
        *,
        extracted_contacts: Sequence[Union[ContactRecord, Mapping[str, Any]]] = (),
        cancel_event: Optional[threading.Event] = None,
    ) -> EnrichmentReport:
        """Run every stage for the entity and store the merged roster.

        Stage failures never escape; they are reported per provider in the
        returned stats. ``EntityNotFound`` and ``EnrichmentCancelled`` do.
        """

        entity_type = validate_entity_type(entity_type)
        region = self._region(focus_region)
        with self._entity_lock(entity_type, entity_id):
            entity = self._store.get_entity_contacts(entity_type, entity_id)
            existing = list(entity.contacts)
            criteria = self._criteria(entity, region, extracted_contacts, cancel_event)
            LOGGER.info(
                "Enriching %s %s (%s existing contact(s), focus %s, paid=%s)",
                entity_type,
                entity_id,
                len(existing),
                region.code,
                use_paid,
            )

            free = [d for d in self._descriptors if not d.paid]
            paid = [d for d in self._descriptors if d.paid]
            results = self._run_free_stages(free, criteria)
            found: List[ContactRecord] = [c for result in results for c in result.contacts]

            credits: Optional[CreditUsage] = None
            if use_paid:
                preview = self._merge(existing, found, region, automated=True)
                actionable = sum(1 for record in preview if record.is_actionable)
                if actionable >= self._sufficient_contacts:
                    LOGGER.info(
                        "Skipping paid stage: free stages already give %s actionable contact(s)", actionable
                    )
                elif not paid:
                    LOGGER.info("Paid stage requested but no paid provider is configured")
                else:
                    for descriptor in paid:
                        self._check_cancelled(cancel_event)
                        result, usage = self._run_paid_stage(descriptor, criteria)
                        results.append(result)
                        found.extend(result.contacts)
                        credits = usage

            self._check_cancelled(cancel_event)
            merged = self._merge(existing, found, region, automated=True)
            stats = EnrichmentStats(
                before=len(existing),
                per_provider=[_stats_for(result) for result in results],
                after=len(merged),
                new_added=count_new_actionable(existing, merged),
            )

            if not merged:
                LOGGER.info("No contacts found for %s %s", entity_type, entity_id)
                return EnrichmentReport(
                    contacts=[],
                    stats=stats,
                    credits=credits,
                    success=False,
                    message="No contacts could be found for this entity.",
                )

            if _changed(existing, merged):
                merged = self._store.replace_entity_contacts(entity_type, entity_id, merged)
            LOGGER.info(
                "Enrichment of %s %s finished: %s -> %s contact(s), %s new",
                entity_type,
                entity_id,
                stats.before,
                stats.after,
                stats.new_added,
            )
            return EnrichmentReport(
                contacts=list(merged),
                stats=stats,
                credits=credits,
                success=True,
                message=_summary(stats),
            )

    # ------------------------------------------------------------------
    # Interactive paid flow
    def search_paid_candidates(
        self,
        entity_type: str,
        entity_id: str,
        focus_region: Union[FocusRegion, str, None] = None,
    ) -> PaidSearchResult:
        """Free search phase of the paid provider; provider errors reach the caller."""

        entity_type = validate_entity_type(entity_type)
        region = self._region(focus_region)
        provider = self._paid_provider()
        entity = self._store.get_entity_contacts(entity_type, entity_id)
        criteria = self._criteria(entity, region, (), None)
        result = provider.search_candidates(criteria, focus_region=region)
        with self._locks_guard:
            self._last_searches[(entity_type, str(entity_id))] = result
        return result

    def reveal_paid_candidates(
        self,
        entity_type: str,
        entity_id: str,
        request: RevealRequest,
        *,
        candidates: Sequence[PaidCandidate] = (),
        focus_region: Union[FocusRegion, str, None] = None,
    ) -> EnrichmentReport:
        """Reveal the chosen candidates and add them to the roster without the cap.

        Candidates not passed in are taken from the last
        :meth:`search_paid_candidates` result for the entity; an id known to
        neither raises ``ValueError``. ``InsufficientCredits`` is raised before
        any reveal call when the balance cannot cover ``request``. A failed
        reveal still adds the masked candidates with degraded confidence.
        """

        entity_type = validate_entity_type(entity_type)
        region = self._region(focus_region)
        provider = self._paid_provider()
        candidates = self._reveal_candidates(entity_type, entity_id, request, candidates)
        ledger = getattr(provider, "ledger", None)
        used_before = ledger.used if ledger is not None else 0

        with self._entity_lock(entity_type, entity_id):
            existing = list(self._store.get_entity_contacts(entity_type, entity_id).contacts)
            try:
                revealed = list(provider.reveal(request, candidates))
                stage = ProviderStats(provider.name, len(revealed), "ok")
            except RevealFailed as exc:
                LOGGER.warning("Reveal failed for %s %s: %s", entity_type, entity_id, exc.message)
                revealed = list(exc.fallback_contacts)
                stage = ProviderStats(provider.name, len(revealed), exc.status, exc.message)

            merged = self._merge(existing, revealed, region, automated=False)
            if _changed(existing, merged):
                merged = self._store.replace_entity_contacts(entity_type, entity_id, merged)

        stats = EnrichmentStats(
            before=len(existing),
            per_provider=[stage],
            after=len(merged),
            new_added=count_new_actionable(existing, merged),
        )
        credits = None
        if ledger is not None:
            credits = CreditUsage(used=ledger.used - used_before, remaining=ledger.remaining)
        return EnrichmentReport(
            contacts=list(merged),
            stats=stats,
            credits=credits,
            success=bool(merged),
            message=_summary(stats),
        )

    # ------------------------------------------------------------------
    # Manual additions
    def add_manual_contact(
        self,
        entity_type: str,
        entity_id: str,
        contact: Union[ContactRecord, Mapping[str, Any]],
    ) -> List[ContactRecord]:
        """Append a human-entered contact; raises ``DuplicateContact`` on a match."""

        entity_type = validate_entity_type(entity_type)
        record = coerce_contacts([contact], default_source=ContactSource.MANUAL)[0]
        with self._entity_lock(entity_type, entity_id):
            contacts = self._store.add_single_contact(entity_type, entity_id, record)
        LOGGER.info("Added manual contact %s to %s %s", record.display_name(), entity_type, entity_id)
        return contacts

    # ------------------------------------------------------------------
    # Internals
    def _run_free_stages(self, descriptors: Sequence[ProviderDescriptor], criteria: SearchCriteria) -> List[ProviderResult]:
        limit = self._max_roster_size
        if not self._concurrent or len(descriptors) <= 1:
            results: List[ProviderResult] = []
            for descriptor in descriptors:
                self._check_cancelled(criteria.cancel_event)
                results.append(self._execute_stage(descriptor, criteria, limit))
            return results

        self._check_cancelled(criteria.cancel_event)
        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            futures = [executor.submit(self._execute_stage, d, criteria, limit) for d in descriptors]
            # Futures are kept in descriptor order so the merge sees the cascade order.
            return [future.result() for future in futures]

    def _run_paid_stage(
        self, descriptor: ProviderDescriptor, criteria: SearchCriteria
    ) -> Tuple[ProviderResult, Optional[CreditUsage]]:
        ledger = getattr(descriptor.provider, "ledger", None)
        used_before = ledger.used if ledger is not None else 0
        result = self._execute_stage(descriptor, criteria, self._max_roster_size)
        usage = None
        if ledger is not None:
            usage = CreditUsage(used=ledger.used - used_before, remaining=ledger.remaining)
        return result, usage

    def _execute_stage(self, descriptor: ProviderDescriptor, criteria: SearchCriteria, limit: int) -> ProviderResult:
        LOGGER.debug("Running provider %s (cost rank %s)", descriptor.name, descriptor.cost_rank)
        result = descriptor.provider.fetch(criteria, limit, raise_on_error=self._raise_on_error)
        LOGGER.info("%s found %s contact(s) [%s]", descriptor.name, len(result.contacts), result.status)
        return result

    def _merge(
        self,
        existing: Sequence[ContactRecord],
        incoming: Iterable[ContactRecord],
        region: FocusRegion,
        *,
        automated: bool,
    ) -> List[ContactRecord]:
        return merge_contacts(
            existing,
            incoming,
            focus_region=region,
            automated=automated,
            max_roster_size=self._max_roster_size,
            scorer=self._scorer,
            matcher=self._matcher,
        )

    def _criteria(
        self,
        entity: EntityContacts,
        region: FocusRegion,
        extracted_contacts: Sequence[Union[ContactRecord, Mapping[str, Any]]],
        cancel_event: Optional[threading.Event],
    ) -> SearchCriteria:
        return SearchCriteria(
            domain=extract_domain(entity.company_website),
            company_name=entity.company_name,
            linkedin_url=entity.company_linkedin_url,
            website=entity.company_website,
            parent_company=entity.parent_company,
            focus_region=region,
            extracted_contacts=list(extracted_contacts or []),
            cancel_event=cancel_event,
        )

    def _region(self, focus_region: Union[FocusRegion, str, None]) -> FocusRegion:
        if focus_region is None:
            return self._default_focus_region
        return get_focus_region(focus_region)

    def _reveal_candidates(
        self,
        entity_type: str,
        entity_id: str,
        request: RevealRequest,
        candidates: Sequence[PaidCandidate],
    ) -> List[PaidCandidate]:
        known = {candidate.contact_id: candidate for candidate in candidates}
        missing = [cid for cid in request.contact_ids if cid not in known]
        if missing:
            with self._locks_guard:
                last = self._last_searches.get((entity_type, str(entity_id)))
            if last is not None:
                known.update((c.contact_id, c) for c in last.candidates_for(missing))
                missing = [cid for cid in missing if cid not in known]
        if missing:
            raise ValueError(
                f"Unknown candidate id(s) for {entity_type} {entity_id}: {', '.join(missing)}; "
                "search paid candidates first"
            )
        return [known[cid] for cid in request.contact_ids]

    def _paid_provider(self) -> Any:
        for descriptor in self._descriptors:
            if descriptor.paid:
                return descriptor.provider
        raise NotConfigured("paid_people_search", "no paid provider is configured")

    def _entity_lock(self, entity_type: str, entity_id: str) -> threading.Lock:
        key = (entity_type, str(entity_id))
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise EnrichmentCancelled("Enrichment cancelled by the caller")


def _stats_for(result: ProviderResult) -> ProviderStats:
    message = ""
    if result.error is not None:
        message = getattr(result.error, "message", None) or str(result.error)
    return ProviderStats(provider=result.provider, found=len(result.contacts), status=result.status, message=message)


def _changed(existing: Sequence[ContactRecord], merged: Sequence[ContactRecord]) -> bool:
    return [id(record) for record in existing] != [id(record) for record in merged]


def _summary(stats: EnrichmentStats) -> str:
    if stats.new_added == 0:
        return f"No new contacts found ({stats.after} on the roster)."
    return f"Added {stats.new_added} new contact(s); {stats.after} on the roster."


__all__ = ["EnrichmentOrchestrator", "ProviderDescriptor", "ProviderProtocol", "order_providers"]
