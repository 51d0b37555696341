"""CLI helper to exercise the two-phase paid people search by hand."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from dotenv import load_dotenv  # noqa: E402

from roster_enricher import EnrichmentOrchestrator, InMemoryEntityStore  # noqa: E402  (import after path fix)
from roster_enricher.errors import ProviderError  # noqa: E402
from roster_enricher.models import DataPoint, PaidSearchResult  # noqa: E402
from roster_enricher.providers import PaidPeopleSearchConfig, PaidPeopleSearchProvider  # noqa: E402

LOGGER = logging.getLogger(__name__)

ENTITY_ID = "debug"


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Search paid candidates and optionally reveal a selection.")
    parser.add_argument("website", help="Company website, e.g. https://www.example.com")
    parser.add_argument("--company-name", help="Company name")
    parser.add_argument("--focus-region", default=None, help="Focus region code (CH, DACH, DE, ...)")
    parser.add_argument(
        "--reveal",
        nargs="+",
        metavar="CONTACT_ID",
        help="Candidate ids to reveal (spends credits)",
    )
    parser.add_argument(
        "--data-point",
        dest="data_points",
        action="append",
        choices=[point.value for point in DataPoint],
        help="Data point to reveal; repeat for several (default: work_email)",
    )
    parser.add_argument(
        "--output-json",
        type=Path,
        help="Optional path to save the revealed roster as JSON",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Console log level",
    )
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level))


def run_search(args: argparse.Namespace) -> None:
    configure_logging(args.log_level)
    load_dotenv()

    store = InMemoryEntityStore()
    store.put_entity("brand", ENTITY_ID, company_website=args.website, company_name=args.company_name)

    with PaidPeopleSearchProvider(PaidPeopleSearchConfig()) as provider:
        orchestrator = EnrichmentOrchestrator(store, [provider])
        result = orchestrator.search_paid_candidates("brand", ENTITY_ID, args.focus_region)
        pretty_print_candidates(result)

        if not args.reveal:
            return

        request = result.select(args.reveal, args.data_points or [DataPoint.EMAIL.value])
        print(f"Revealing {len(request.contact_ids)} contact(s) for {request.estimated_cost} credit(s)...")
        report = orchestrator.reveal_paid_candidates(
            "brand",
            ENTITY_ID,
            request,
            candidates=result.candidates_for(request.contact_ids),
            focus_region=args.focus_region,
        )

    for contact in report.contacts:
        print(f"  - {contact.display_name()} | {contact.title or '-'} | {contact.email or '-'} | {contact.phone or '-'}")
    if report.credits is not None:
        print(f"Credits used: {report.credits.used}, remaining: {report.credits.remaining}")

    if args.output_json:
        args.output_json.write_text(json.dumps(report.as_dict(), indent=2))
        LOGGER.info("Wrote result JSON to %s", args.output_json)


def pretty_print_candidates(result: PaidSearchResult) -> None:
    print(f"Candidates ({len(result.candidates)} of {result.total_results}):")
    for candidate in result.candidates:
        hints = ", ".join(
            label for label, present in (("email", candidate.has_email), ("phone", candidate.has_phone)) if present
        )
        print(
            f"  [{candidate.contact_id}] {candidate.name or '(unnamed)'}"
            f" | {candidate.job_title or '-'} | {candidate.location or '-'} | {hints or 'no data'}"
        )
    if result.location_filter_dropped:
        print("Note: no match in the focus region, showing results from all locations.")
    if result.simplified:
        print("Note: structured filters were rejected, showing a simplified search.")
    print(f"Credits remaining: {result.credits_remaining if result.credits_remaining is not None else 'unknown'}")


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv or sys.argv[1:])
    try:
        run_search(args)
    except ProviderError as exc:
        LOGGER.error("Paid search failed (%s): %s", exc.status, exc.message)
        sys.exit(1)


if __name__ == "__main__":
    main()
