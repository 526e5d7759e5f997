#!/usr/bin/env python3
"""
Main CLI runner for lead-enricher.

This script orchestrates the complete workflow:
- Reading leads (single lead, CSV file, Close CRM or due refreshes)
- Enriching each lead through the browser pipeline
- Writing results to a JSON file and/or the Result Sink
"""

import argparse
import asyncio
import csv
import json
import sys
from pathlib import Path
from typing import List

from runner.logging_setup import get_logger, setup_logging
from scrape_lead import (
    STAGE_ORDER,
    EnrichmentConfig,
    LeadEnrichmentOrchestrator,
    LeadIdentity,
    SessionManager,
)


# Initialize logger
logger = get_logger("main")


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="lead-enrich",
        description="lead-enricher: Enrich company leads with web, social, ads and search data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Enrich one lead
  lead-enrich --name "ACME GmbH" --url https://acme.de

  # Enrich a CSV file (columns: name,url) and write JSON
  lead-enrich --input leads.csv --output results.json

  # Enrich leads from Close CRM and store them
  lead-enrich --from-crm --limit 20 --save

  # Re-enrich leads whose LinkedIn data is due
  lead-enrich --refresh-stage linkedin --limit 50 --save
        """,
    )

    # Source selection
    source_group = parser.add_mutually_exclusive_group(required=True)
    source_group.add_argument(
        "--url",
        type=str,
        help="Website of a single lead (use with --name)",
    )
    source_group.add_argument(
        "--input",
        type=str,
        help="CSV file with 'name' and 'url' columns",
    )
    source_group.add_argument(
        "--from-crm",
        action="store_true",
        help="Read leads from Close CRM (requires CLOSE_API_KEY)",
    )
    source_group.add_argument(
        "--refresh-stage",
        type=str,
        choices=list(STAGE_ORDER),
        help="Re-enrich stored leads whose data for this stage is due",
    )

    parser.add_argument(
        "--name",
        type=str,
        help="Company name of the single lead (default: the URL)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of leads to process (default: all)",
    )

    # Output options
    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument(
        "--output",
        type=str,
        help="Write results as a JSON list to this file",
    )
    output_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override LOG_LEVEL for this run",
    )
    output_group.add_argument(
        "--save",
        action="store_true",
        help="Upsert results into the database (DATABASE_URL)",
    )

    # Browser options
    browser_group = parser.add_argument_group("Browser Options")
    browser_group.add_argument(
        "--headful",
        action="store_true",
        help="Show the browser window",
    )
    browser_group.add_argument(
        "--max-concurrent-leads",
        type=int,
        default=None,
        help="Leads enriched at the same time (default: MAX_CONCURRENT_LEADS or 2)",
    )

    return parser.parse_args(argv)


def read_leads_csv(path: str) -> List[LeadIdentity]:
    """
    Read leads from a CSV file.

    Args:
        path: CSV file with a header row containing 'url' and optionally 'name'

    Returns:
        List of LeadIdentity (rows without a URL are skipped)
    """
    leads = []
    with open(path, newline="", encoding="utf-8") as csvfile:
        for row_num, row in enumerate(csv.DictReader(csvfile), start=2):
            url = (row.get("url") or "").strip()
            name = (row.get("name") or "").strip()
            if not url:
                logger.warning(f"Skipping row {row_num}: no url")
                continue
            leads.append(LeadIdentity(name=name or url, url=url))

    logger.info(f"Read {len(leads)} lead(s) from {path}")
    return leads


def load_leads(args, config: EnrichmentConfig, store=None) -> List[LeadIdentity]:
    """Resolve the lead list for the selected source."""
    if args.url:
        leads = [LeadIdentity(name=args.name or args.url, url=args.url)]
    elif args.input:
        leads = read_leads_csv(args.input)
    elif args.from_crm:
        from services.close_crm import CloseCrmClient

        leads = CloseCrmClient(api_key=config.close_api_key).fetch_leads(limit=args.limit)
    else:
        leads = store.leads_due_for_refresh(args.refresh_stage, limit=args.limit)

    if args.limit is not None:
        leads = leads[: args.limit]
    return leads


def write_results(results, output_path: str):
    """Write results as a JSON list."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([result.to_dict() for result in results], f, indent=2, ensure_ascii=False)
    logger.info(f"Wrote {len(results)} result(s) to {path}")


async def run_enrichment(leads, config: EnrichmentConfig, store=None):
    """Enrich every lead, saving each result as soon as it completes when a store is given."""
    orchestrator = LeadEnrichmentOrchestrator(
        SessionManager(config),
        config=config,
        result_sink=store.save_result if store is not None else None,
    )
    return await orchestrator.enrich_batch(leads)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    if args.log_level:
        setup_logging(log_level=args.log_level)

    logger.info("=" * 70)
    logger.info("lead-enricher - Lead Enrichment Pipeline")
    logger.info("=" * 70)

    config = EnrichmentConfig.from_env()
    if args.headful:
        config.headless = False
    if args.max_concurrent_leads:
        config.max_concurrent_leads = args.max_concurrent_leads

    exit_code = 0

    try:
        store = None
        if args.save or args.refresh_stage:
            from db.lead_store import LeadStore

            store = LeadStore(config.database_url, refresh_days=config.lead_refresh_days)

        leads = load_leads(args, config, store)
        if not leads:
            logger.info("No leads to enrich")
            return 0

        results = asyncio.run(run_enrichment(leads, config, store if args.save else None))

        if args.output:
            write_results(results, args.output)
        elif not args.save:
            print(json.dumps([result.to_dict() for result in results], indent=2, ensure_ascii=False))

        # Final summary
        fatal = sum(1 for result in results if result.fatal_error)
        logger.info("=" * 70)
        logger.info("ENRICHMENT SUMMARY")
        logger.info("=" * 70)
        logger.info(f"Leads processed: {len(results)}")
        logger.info(f"Fatal failures:  {fatal}")
        for stage in STAGE_ORDER:
            succeeded = sum(1 for result in results if stage in result.succeeded_stages)
            logger.info(f"  {stage:16s}: {succeeded}/{len(results)} succeeded")
        logger.info("=" * 70)

        if fatal == len(results):
            exit_code = 1

    except KeyboardInterrupt:
        logger.warning("Interrupted by user (Ctrl+C)")
        exit_code = 130

    except Exception as e:
        logger.error("=" * 70)
        logger.error("FATAL ERROR")
        logger.error("=" * 70)
        logger.error(f"{e}", exc_info=True)
        exit_code = 1

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
