import logging
from contextlib import closing
from typing import Iterator
from trademe_crawler.errors import BadSearchPage, ParseError
from trademe_crawler.fetch import Fetcher
from trademe_crawler.scanner import TagCursor
from trademe_crawler.tokenizer import Tokenizer, TokenType
from trademe_crawler.urls import UrlKind, classify, resolve

logger = logging.getLogger(__name__)

ERROR_PAGE_ID = "ErrorOops"


def walk_search_page(fetcher: Fetcher, url: str) -> Iterator[tuple[UrlKind, str]]:
    """Yield (LISTING | NEXT_PAGE, url) for every relevant anchor on a search page.

    Raises NetworkError if the page cannot be opened and BadSearchPage if the
    site served its error page. Links yielded before either failure stand.
    """
    with closing(fetcher.fetch(url)) as chunks:
        yield from scan_search_page(TagCursor(Tokenizer(chunks)), url)


def scan_search_page(cursor: TagCursor, url: str) -> Iterator[tuple[UrlKind, str]]:
    seen_tokens = 0
    while True:
        token = cursor.next()
        if token.type is TokenType.END_OF_STREAM:
            break
        if token.type is TokenType.ERROR:
            if seen_tokens == 0:
                raise cursor.lex_error
            logger.debug(f"Search page {url} truncated after {seen_tokens} tokens")
            break
        seen_tokens += 1

        if token.type is TokenType.END_TAG and token.name == "html":
            break
        if not token.is_open:
            continue

        if token.name == "a" and "href" in token.attrs:
            try:
                target = resolve(url, token.attrs["href"])
            except ParseError as e:
                logger.debug(f"Skipping anchor on {url}: {e}")
                continue
            kind = classify(target, token.attrs)
            if kind is not UrlKind.OTHER:
                yield kind, target
        elif token.name == "div" and token.attrs.get("id") == ERROR_PAGE_ID:
            raise BadSearchPage(url)
