"""Main REU ingestion pipeline with APScheduler.

- Daily polling schedule (configurable) using APScheduler
- Each adapter emits RawProgramRecord; the normalizer produces NormalizedProgram
- Reconciling upsert matches on title/institution, institution/field, then link
- Writes to the Supabase ``programs`` table (in-memory store with --dry-run)
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .config import Config, load_config
from .adapters import (
    BaseAdapter,
    EtapAdapter,
    GoogleSheetsAdapter,
    ManualAdapter,
    NsfAdapter,
    PathwaysAdapter,
)
from .database import InMemoryProgramStore, ProgramStore, SupabaseProgramStore
from .models import SourceResult, SourceTag
from .normalizer import FieldStandardizer, ProgramNormalizer
from .orchestrator import ScrapeOrchestrator
from .reconciler import ProgramReconciler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


def build_adapters(config: Config) -> Dict[SourceTag, BaseAdapter]:
    """One adapter per source tag, configured from the environment."""
    nsf_kwargs = dict(
        api_token=config.nsf_api_token,
        user_id=config.nsf_user_id,
        search_term=config.nsf_search_term,
        api_url=config.nsf_api_url,
    )
    return {
        SourceTag.NSF: NsfAdapter(default_deadline=config.nsf_default_deadline, **nsf_kwargs),
        SourceTag.ETAP: EtapAdapter(**nsf_kwargs),
        SourceTag.GOOGLE_SHEETS: GoogleSheetsAdapter(
            spreadsheet_id=config.google_sheets_id,
            credentials_file=config.google_service_account_file,
        ),
        SourceTag.PATHWAYS_TO_SCIENCE: PathwaysAdapter(
            search_url=config.pathways_search_url,
            batch_size=config.pathways_batch_size,
            concurrency=config.pathways_concurrency,
            request_delay=config.pathways_request_delay,
            timeout=config.pathways_timeout,
        ),
        SourceTag.MANUAL: ManualAdapter(config.manual_programs_file),
    }


def build_store(config: Config, dry_run: bool = False) -> ProgramStore:
    if dry_run:
        logger.info("Dry run: writing to in-memory store")
        return InMemoryProgramStore()
    return SupabaseProgramStore(config.supabase_url, config.supabase_key, table=config.supabase_table)


def build_orchestrator(config: Config, store: ProgramStore) -> ScrapeOrchestrator:
    normalizer = ProgramNormalizer(
        standardizer=FieldStandardizer(default=config.field_default_tag),
        default_deadline_year=config.default_deadline_year,
    )
    reconciler = ProgramReconciler(store, batch_size=config.upsert_batch_size)
    return ScrapeOrchestrator(build_adapters(config), normalizer, reconciler)


async def run_scrapers(
    sources: Optional[Iterable[str]] = None,
    dry_run: bool = False,
    config: Optional[Config] = None,
) -> List[SourceResult]:
    """Run one scrape cycle over the requested sources.

    Source failures are reported in the returned results, not raised.
    """
    logger.info("=" * 60)
    logger.info("Starting scrape cycle")
    logger.info("=" * 60)
    start_time = datetime.utcnow()

    try:
        config = config or load_config()
        logging.getLogger().setLevel(config.log_level)
        store = build_store(config, dry_run=dry_run)
        orchestrator = build_orchestrator(config, store)
        results = await orchestrator.run_all(sources)
    except Exception as e:
        logger.error(f"Scrape cycle failed: {e}", exc_info=True)
        raise

    for result in results:
        if result.status == "fulfilled":
            logger.info(
                f"✓ {result.source}: {result.count} programs "
                f"({result.inserted} inserted, {result.updated} updated)"
            )
        else:
            logger.warning(f"⚠ {result.source}: rejected ({result.error})")

    duration = (datetime.utcnow() - start_time).total_seconds()
    logger.info("=" * 60)
    logger.info(f"Scrape cycle completed in {duration:.2f} seconds")
    logger.info("=" * 60)
    return results


def start_scheduler(sources: Optional[List[str]] = None):
    """Start APScheduler for continuous polling (default once a day)."""
    config = load_config()

    logging.getLogger().setLevel(config.log_level)

    logger.info("Initializing REU Ingestion Pipeline")
    logger.info(f"Polling interval: {config.polling_interval_minutes} minutes")

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    scheduler = AsyncIOScheduler(event_loop=loop)
    scheduler.add_job(
        run_scrapers,
        trigger=IntervalTrigger(minutes=config.polling_interval_minutes),
        kwargs={"sources": sources, "config": config},
        id="scrape_programs",
        name="Scrape all REU program sources",
        replace_existing=True,
        max_instances=1,
    )
    scheduler.start()
    logger.info("✓ Scheduler started")

    logger.info("Running initial scrape cycle...")
    loop.create_task(run_scrapers(sources=sources, config=config))

    try:
        loop.run_forever()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down scheduler...")
        scheduler.shutdown()
        logger.info("✓ Scheduler stopped")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scrape and normalize REU program listings.")
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    parser.add_argument(
        "--source",
        action="append",
        dest="sources",
        choices=[tag.value for tag in SourceTag],
        help="Source to run (repeatable); defaults to NSF, GoogleSheets, PathwaysToScience",
    )
    parser.add_argument("--dry-run", action="store_true", help="Write to an in-memory store")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.once:
        results = asyncio.run(run_scrapers(sources=args.sources, dry_run=args.dry_run))
        return 0 if all(r.status == "fulfilled" for r in results) else 1
    start_scheduler(args.sources)
    return 0


if __name__ == "__main__":
    sys.exit(main())
