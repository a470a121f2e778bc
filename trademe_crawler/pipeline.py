import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Iterable
from trademe_crawler.aggregator import aggregate
from trademe_crawler.config import CRAWL_CONFIG
from trademe_crawler.extractor import load_listing
from trademe_crawler.fetch import Fetcher
from trademe_crawler.frontier import SeenSet, dedupe_and_forward, discover_listings
from trademe_crawler.models import PropertyRecord
from trademe_crawler.pool import parallel_map
from trademe_crawler.urls import canonical_listing_url, validate_seed_url

logger = logging.getLogger(__name__)


@dataclass
class CrawlResult:
    records: dict[str, PropertyRecord] = field(default_factory=dict)
    search_pages: int = 0
    listings: int = 0


def crawl(
    seed_urls: Iterable[str],
    fetcher: Fetcher | None = None,
    worker_count: int | None = None,
    channel_size: int | None = None,
) -> CrawlResult:
    """Run one crawl to completion.

    seeds -> search frontier -> listing dedupe -> extraction workers -> aggregate

    Raises ParseError before anything starts if a seed URL is malformed.
    """
    seeds = [validate_seed_url(url) for url in seed_urls]
    fetcher = fetcher or Fetcher()
    if worker_count is None:
        worker_count = CRAWL_CONFIG["worker_count"]
    if channel_size is None:
        channel_size = CRAWL_CONFIG["channel_size"]

    logger.info(f"Crawling {len(seeds)} seed pages with {worker_count} workers")
    raw_listings, frontier = discover_listings(fetcher, seeds, maxsize=channel_size)
    listing_seen = SeenSet("listings")
    listing_urls = dedupe_and_forward(
        raw_listings, listing_seen, canonical=canonical_listing_url, maxsize=channel_size
    )
    records = parallel_map(
        worker_count, listing_urls, partial(load_listing, fetcher), maxsize=channel_size
    )
    by_id = aggregate(records)

    # Every stage has closed its channel by now, so the seen-sets are final.
    return CrawlResult(
        records=by_id,
        search_pages=len(frontier.seen),
        listings=len(listing_seen),
    )
