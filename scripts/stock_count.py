#!/usr/bin/env python3
"""
Stock count from the command line, using the environment credential
(SHOP / SHOPIFY_ACCESS_TOKEN).

    python scripts/stock_count.py bristol                      # list stock
    python scripts/stock_count.py bristol --search mug         # filtered list
    python scripts/stock_count.py bristol --set MUG-01=12 --set MUG-02=0
    python scripts/stock_count.py bristol --set MUG-01=12 --dry-run
"""
import argparse
import asyncio
import logging
import os
import sys

import httpx

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from stock_counter.config import settings
from stock_counter.errors import StockCounterError
from stock_counter.models import Credential
from stock_counter.services.credentials import resolve_credential
from stock_counter.services.inventory_reader import fetch_location_inventory
from stock_counter.services.inventory_writer import apply_inventory_updates
from stock_counter.services.stock_session import StockCountSession, filter_records, summarize_result

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def parse_edits(pairs):
    edits = []
    for pair in pairs or []:
        sku, sep, count = pair.rpartition("=")
        if not sep or not sku:
            raise SystemExit(f"Expected SKU=COUNT, got {pair!r}")
        edits.append((sku, count.strip()))
    return edits


def print_records(records):
    for r in records:
        title = r.product_title + (f" - {r.variant_title}" if r.variant_title else "")
        print(f"{r.sku:<24} {r.current_stock:>6}  {title}")


async def run(args, credential: Credential) -> int:
    location = settings.get_location(args.location)
    if location is None:
        known = ", ".join(loc.key for loc in settings.LOCATIONS)
        logger.error("Unknown location %r (known: %s)", args.location, known)
        return 2

    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
        async def fetch(location_id):
            return await fetch_location_inventory(client, credential, location_id)

        async def submit(updates):
            return await apply_inventory_updates(client, credential, updates)

        session = StockCountSession(location, fetch, submit)
        records = await session.load()
        logger.info("%s: %s product(s) stocked", location.display_name, len(records))

        edits = parse_edits(args.set)
        if not edits:
            print_records(filter_records(records, args.search))
            return 0

        for sku, count in edits:
            if session.set_edit_by_sku(sku, count) == 0:
                logger.warning("SKU %s is not stocked at %s; skipped", sku, location.display_name)

        changes = session.changes
        if not changes:
            logger.info("Nothing to update")
            return 0
        for change in changes:
            print(f"{change.sku:<24} {change.old_value:>6} -> {change.new_value}")
        if args.dry_run:
            logger.info("Dry run: %s change(s) not sent", len(changes))
            return 0

        result = await session.save()
        logger.info(summarize_result(result))
        for error in result.errors:
            logger.error(error)
        return 1 if result.failed else 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Count and correct stock at a store location")
    parser.add_argument("location", help="location key (bristol, rotherham, london, gateshead) or Shopify id")
    parser.add_argument("--set", action="append", metavar="SKU=COUNT", help="new absolute count for a SKU")
    parser.add_argument("--search", default="", help="filter the listing by SKU or title")
    parser.add_argument("--dry-run", action="store_true", help="show the changes without sending them")
    args = parser.parse_args()

    credential = resolve_credential({}, settings)
    if credential is None:
        logger.error("SHOPIFY_ACCESS_TOKEN is not set")
        return 2
    try:
        return asyncio.run(run(args, credential))
    except StockCounterError as e:
        logger.error("%s: %s", e.__class__.__name__, e.message)
        return 1


if __name__ == "__main__":
    sys.exit(main())
