"""Command line interface for enriching one entity's contact roster."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .config import load_configuration, pipeline_settings
from .factory import build_providers
from .ingestion import export_roster, load_roster
from .orchestrator import EnrichmentOrchestrator
from .regions import known_region_codes
from .store import ENTITY_TYPES, InMemoryEntityStore

CLI_ENTITY_ID = "cli"


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Find, merge and rank decision-maker contacts for one company",
    )
    parser.add_argument("input", help="Existing roster (CSV, TSV or XLSX); a missing file means an empty roster")
    parser.add_argument("output", help="Path where the enriched roster should be written")
    parser.add_argument(
        "--config",
        required=True,
        help="Path to the provider configuration file (YAML or JSON)",
    )
    parser.add_argument("--website", required=True, help="Company website, e.g. https://www.example.com")
    parser.add_argument("--company-name", default=None, help="Company name used by name-based searches")
    parser.add_argument("--parent-company", default=None, help="Parent company name for domain fallbacks")
    parser.add_argument("--linkedin-url", default=None, help="LinkedIn company page used by the employee listing")
    parser.add_argument(
        "--entity-type",
        choices=list(ENTITY_TYPES),
        default="brand",
        help="Kind of entity the roster belongs to",
    )
    parser.add_argument(
        "--focus-region",
        type=str.upper,
        choices=known_region_codes(),
        default=None,
        help="Target market used for ranking and search filters",
    )
    parser.add_argument(
        "--use-paid",
        action="store_true",
        help="Allow the paid people search (spends credits)",
    )
    parser.add_argument(
        "--mode",
        choices=["sequential", "concurrent"],
        default=None,
        help="Whether to run the free providers sequentially or concurrently",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Maximum number of workers to use in concurrent mode",
    )
    parser.add_argument(
        "--raise-on-error",
        action="store_true",
        help="Propagate unexpected provider exceptions instead of recording them",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    load_dotenv()

    config = load_configuration(args.config)
    settings = pipeline_settings(config)
    providers = build_providers(config)
    if not providers:
        logging.warning("No providers are enabled - only extracted contacts will be considered")

    input_path = Path(args.input)
    if input_path.exists():
        existing = load_roster(input_path)
    else:
        logging.info("Input roster %s does not exist - starting from an empty roster", input_path)
        existing = []

    store = InMemoryEntityStore()
    store.put_entity(
        args.entity_type,
        CLI_ENTITY_ID,
        contacts=existing,
        company_website=args.website,
        company_name=args.company_name,
        parent_company=args.parent_company,
        company_linkedin_url=args.linkedin_url,
    )

    concurrent = settings.concurrent if args.mode is None else args.mode == "concurrent"
    orchestrator = EnrichmentOrchestrator(
        store,
        providers,
        max_roster_size=settings.max_roster_size,
        sufficient_contacts=settings.sufficient_contacts,
        default_focus_region=settings.default_focus_region,
        concurrent=concurrent,
        max_workers=args.max_workers if args.max_workers is not None else settings.max_workers,
        raise_on_error=args.raise_on_error,
    )

    focus_region = args.focus_region or settings.default_focus_region
    report = orchestrator.enrich(args.entity_type, CLI_ENTITY_ID, use_paid=args.use_paid, focus_region=focus_region)
    export_roster(report.contacts, args.output, focus_region=focus_region)

    for stage in report.stats.per_provider:
        logging.info("%s: %s contact(s) [%s] %s", stage.provider, stage.found, stage.status, stage.message)
    if report.credits is not None:
        logging.info("Credits used: %s, remaining: %s", report.credits.used, report.credits.remaining)
    print(report.message)
    logging.info("Roster written to %s", Path(args.output).resolve())
    return 0 if report.success else 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
