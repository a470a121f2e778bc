from unittest.mock import patch
import responses
from trademe_crawler.channels import Channel
from trademe_crawler.fetch import Fetcher
from trademe_crawler.frontier import SearchFrontier, SeenSet, dedupe_and_forward
from trademe_crawler.urls import UrlKind, canonical_search_url

BASE = "https://www.trademe.co.nz"
LISTING_PREFIX = f"{BASE}/property/residential-property-for-sale/auction-"


def _page_url(n: int) -> str:
    return f"{BASE}/browse/page-{n}.aspx"


def _search_page(listing_ids, next_page: int | None = None) -> str:
    links = "".join(
        f'<a href="/property/residential-property-for-sale/auction-{i}.htm">#{i}</a>'
        for i in listing_ids
    )
    if next_page is not None:
        links += f'<a rel="next" href="/browse/page-{next_page}.aspx">Next</a>'
    return f"<html><body>{links}</body></html>"


def _calls_to(url: str) -> int:
    return sum(1 for call in responses.calls if call.request.url == url)


def _run_frontier(seeds) -> tuple[list[str], SearchFrontier]:
    listings = Channel()
    frontier = SearchFrontier(Fetcher(timeout=5), seeds, listings)
    frontier.run()
    return list(listings), frontier


def test_seen_set_add_reports_first_insert_only():
    seen = SeenSet("test")
    assert seen.add("a") is True
    assert seen.add("a") is False
    assert "a" in seen
    assert len(seen) == 1


def test_dedupe_and_forward_drops_repeats_and_closes():
    source = Channel()
    for url in [
        LISTING_PREFIX + "1.htm?rsqid=x",
        LISTING_PREFIX + "2.htm",
        LISTING_PREFIX + "1.htm",
        LISTING_PREFIX + "1.htm#photos",
    ]:
        source.put(url)
    source.close()
    seen = SeenSet("listings")

    forwarded = list(dedupe_and_forward(source, seen))

    assert forwarded == [LISTING_PREFIX + "1.htm", LISTING_PREFIX + "2.htm"]
    assert len(seen) == 2


def test_dedupe_and_forward_with_search_canonical_form():
    source = Channel()
    for url in [_page_url(1) + "?page=1", _page_url(1) + "?page=2", _page_url(1) + "?page=1#top"]:
        source.put(url)
    source.close()

    forwarded = list(dedupe_and_forward(source, SeenSet("pages"), canonical=canonical_search_url))

    assert forwarded == [_page_url(1) + "?page=1", _page_url(1) + "?page=2"]


@responses.activate
def test_same_search_page_twice_yields_listing_once():
    responses.get(_page_url(1), body=_search_page([1]), status=200)

    listings, frontier = _run_frontier([_page_url(1), _page_url(1)])

    assert listings == [LISTING_PREFIX + "1.htm"]
    assert _calls_to(_page_url(1)) == 1
    assert len(frontier.seen) == 1


@responses.activate
def test_pagination_loop_terminates():
    # 1 -> 2 -> 3 -> back to 1
    responses.get(_page_url(1), body=_search_page([1], next_page=2), status=200)
    responses.get(_page_url(2), body=_search_page([2], next_page=3), status=200)
    responses.get(_page_url(3), body=_search_page([3], next_page=1), status=200)

    listings, frontier = _run_frontier([_page_url(1)])

    assert sorted(listings) == [LISTING_PREFIX + f"{i}.htm" for i in (1, 2, 3)]
    for n in (1, 2, 3):
        assert _calls_to(_page_url(n)) == 1
    assert len(frontier.seen) == 3


@responses.activate
def test_five_page_chain_visits_each_page_once():
    for n in range(1, 6):
        responses.get(_page_url(n), body=_search_page([n, n + 100], next_page=n % 5 + 1), status=200)

    listings, frontier = _run_frontier([_page_url(1), _page_url(3)])

    assert len(listings) == 10
    for n in range(1, 6):
        assert _calls_to(_page_url(n)) == 1
    assert len(frontier.seen) == 5


@responses.activate
def test_failed_branch_does_not_stop_other_seeds():
    responses.get(_page_url(1), status=500)
    responses.get(
        _page_url(2),
        body='<html><body><div id="ErrorOops">Oops</div></body></html>',
        status=200,
    )
    responses.get(_page_url(3), body=_search_page([30]), status=200)

    listings, _ = _run_frontier([_page_url(1), _page_url(2), _page_url(3)])

    assert listings == [LISTING_PREFIX + "30.htm"]


@responses.activate
def test_frontier_closes_listing_channel_when_started_in_thread():
    responses.get(_page_url(1), body=_search_page([1, 2]), status=200)
    listings = Channel(maxsize=1)

    thread = SearchFrontier(Fetcher(timeout=5), [_page_url(1)], listings).start()
    received = list(listings)
    thread.join(timeout=5)

    assert received == [LISTING_PREFIX + "1.htm", LISTING_PREFIX + "2.htm"]
    assert not thread.is_alive()


@responses.activate
def test_five_link_chain_with_link_back_to_first_page():
    # next links: 1 -> 2, 2 -> 3, 3 -> 1, 4 -> 5, 5 -> 2
    next_links = {1: 2, 2: 3, 3: 1, 4: 5, 5: 2}
    for page, target in next_links.items():
        responses.get(_page_url(page), body=_search_page([page], next_page=target), status=200)

    listings, frontier = _run_frontier([_page_url(1), _page_url(4)])

    assert sorted(listings) == [LISTING_PREFIX + f"{n}.htm" for n in range(1, 6)]
    for n in range(1, 6):
        assert _calls_to(_page_url(n)) == 1
    assert len(frontier.seen) == 5


@responses.activate
def test_undecodable_charset_page_does_not_stop_later_seeds():
    responses.get(
        _page_url(1),
        body=b'<html><head><meta charset="hex"></head><body>'
        b'<a href="/property/residential-property-for-sale/auction-10.htm">x</a></body></html>',
        status=200,
    )
    responses.get(_page_url(2), body=_search_page([20]), status=200)

    listings, _ = _run_frontier([_page_url(1), _page_url(2)])

    assert listings == [LISTING_PREFIX + "10.htm", LISTING_PREFIX + "20.htm"]


def test_unexpected_error_on_one_page_does_not_stop_the_frontier():
    def fake_walk(fetcher, url):
        if url == _page_url(1):
            raise RuntimeError("boom")
        yield UrlKind.LISTING, LISTING_PREFIX + "2.htm"

    with patch("trademe_crawler.frontier.walk_search_page", side_effect=fake_walk):
        listings, frontier = _run_frontier([_page_url(1), _page_url(2)])

    assert listings == [LISTING_PREFIX + "2.htm"]
    assert len(frontier.seen) == 2
