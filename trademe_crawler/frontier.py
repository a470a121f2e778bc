import logging
import threading
from collections import deque
from typing import Callable, Iterable
from trademe_crawler.channels import Channel
from trademe_crawler.errors import BadSearchPage, NetworkError
from trademe_crawler.fetch import Fetcher
from trademe_crawler.urls import UrlKind, canonical_listing_url, canonical_search_url
from trademe_crawler.walker import walk_search_page

logger = logging.getLogger(__name__)


class SeenSet:
    """Write-once record of canonical URLs. Owned by exactly one stage thread."""

    def __init__(self, name: str):
        self.name = name
        self._seen: set[str] = set()

    def add(self, key: str) -> bool:
        """Record ``key``; return True only the first time it is added."""
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def __contains__(self, key: str) -> bool:
        return key in self._seen

    def __len__(self) -> int:
        return len(self._seen)


def _start(target: Callable, name: str) -> threading.Thread:
    thread = threading.Thread(target=target, name=name, daemon=True)
    thread.start()
    return thread


def dedupe_and_forward(
    source: Channel[str],
    seen: SeenSet,
    canonical: Callable[[str], str] = canonical_listing_url,
    maxsize: int = 0,
) -> Channel[str]:
    """Forward each URL from ``source`` the first time its canonical form appears.

    Runs in its own thread, the only one that touches ``seen``. The returned
    channel closes once ``source`` is exhausted.
    """
    sink: Channel[str] = Channel(maxsize)

    def run():
        forwarded = 0
        try:
            for url in source:
                key = canonical(url)
                if seen.add(key):
                    sink.put(key)
                    forwarded += 1
                else:
                    logger.debug(f"Already seen {key}, dropping")
        finally:
            sink.close()
        logger.info(f"{seen.name}: forwarded {forwarded} unique URLs")

    _start(run, f"dedupe-{seen.name}")
    return sink


class SearchFrontier:
    """Walks search pages, following pagination until no unseen page is left.

    Next-page links feed back into this stage's own queue; listing links go
    out on ``listings``, which is closed when the frontier is exhausted.
    """

    def __init__(self, fetcher: Fetcher, seed_urls: Iterable[str], listings: Channel[str]):
        self.fetcher = fetcher
        self.seen = SeenSet("search-pages")
        self.listings = listings
        self._queue: deque[str] = deque()
        for url in seed_urls:
            self._enqueue(url)

    def _enqueue(self, url: str) -> None:
        key = canonical_search_url(url)
        if self.seen.add(key):
            self._queue.append(key)
        else:
            logger.debug(f"Search page {key} already visited, dropping")

    def run(self) -> None:
        try:
            while self._queue:
                self._visit(self._queue.popleft())
        finally:
            self.listings.close()
        logger.info(f"Search frontier exhausted after {len(self.seen)} pages")

    def start(self) -> threading.Thread:
        return _start(self.run, "search-frontier")

    def _visit(self, url: str) -> None:
        logger.info(f"Reading search page {url}")
        found = 0
        try:
            for kind, target in walk_search_page(self.fetcher, url):
                if kind is UrlKind.LISTING:
                    self.listings.put(target)
                    found += 1
                elif kind is UrlKind.NEXT_PAGE:
                    self._enqueue(target)
        except BadSearchPage as e:
            logger.warning(f"{e}; abandoning this branch")
        except NetworkError as e:
            logger.error(f"{e}; skipping search page")
        except Exception:
            logger.exception(f"Unexpected failure reading search page {url}")
        logger.info(f"Search page {url} yielded {found} listing links")


def discover_listings(
    fetcher: Fetcher, seed_urls: Iterable[str], maxsize: int = 0
) -> tuple[Channel[str], SearchFrontier]:
    """Start the search-page stage; return its raw listing-URL channel."""
    listings: Channel[str] = Channel(maxsize)
    frontier = SearchFrontier(fetcher, seed_urls, listings)
    frontier.start()
    return listings, frontier
