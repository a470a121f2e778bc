"""Listing page extraction.

A listing page is read front to back exactly once. Each section is found in
document order; if any section is missing or malformed the whole listing is
rejected with an ``ExtractionFailure`` naming the step.
"""
import logging
import re
from contextlib import closing, contextmanager
from trademe_crawler.errors import (
    CrawlError,
    ExtractionFailure,
    MarkupExhausted,
    ParseError,
)
from trademe_crawler.fetch import Fetcher
from trademe_crawler.models import Location, PropertyRecord
from trademe_crawler.scanner import TagCursor
from trademe_crawler.tokenizer import Tokenizer, TokenType
from trademe_crawler.urls import full_size_url, is_thumbnail, resolve

logger = logging.getLogger(__name__)

PRICE_RE = re.compile(r"\$(\d[\d,]*(?:\.\d{2})?)")

SNIPPET_LENGTH = 200

ATTRIBUTES_TABLE = ("table", "id", "ListingAttributes")
TEMPLATE_MARKER = ("script", "type", "text/x-jquery-tmpl")
# Any of these ends a table cell whose closing tag was left out.
CELL_END = frozenset({"th", "td", "tr", "thead", "tbody", "tfoot", "table"})


def _script_value(key: str) -> re.Pattern:
    # key: "quoted" | key: 'quoted' | key: bare
    return re.compile(
        rf"""\b{key}\s*:\s*(?:"([^"]*)"|'([^']*)'|([^,}}\s][^,}}\n]*))"""
    )


SCRIPT_KEYS = {
    key: _script_value(key)
    for key in ("listingId", "lat", "lng", "userEnteredLocation", "structuredLocation")
}


def _snippet(text: str) -> str:
    text = text.strip()
    if len(text) > SNIPPET_LENGTH:
        return text[:SNIPPET_LENGTH] + "..."
    return text


@contextmanager
def _step(name: str):
    try:
        yield
    except (MarkupExhausted, ParseError) as e:
        raise ExtractionFailure(name, str(e)) from e


def parse_price(text: str) -> float:
    matches = PRICE_RE.findall(text)
    if len(matches) != 1:
        raise ExtractionFailure("price", _snippet(text))
    return float(matches[0].replace(",", ""))


def parse_degrees(name: str, raw: str | None, limit: float) -> float:
    if raw is None:
        raise ParseError(f"{name} missing")
    try:
        value = float(raw)
    except ValueError as e:
        raise ParseError(f"{name} is not a number: {raw!r}") from e
    if not -limit <= value <= limit:
        raise ParseError(f"{name} out of range: {raw!r}")
    return value


def script_value(source: str, key: str) -> str | None:
    match = SCRIPT_KEYS[key].search(source)
    if match is None:
        return None
    quoted_double, quoted_single, bare = match.groups()
    if quoted_double is not None:
        return quoted_double
    if quoted_single is not None:
        return quoted_single
    return bare.strip()


def parse_listing_script(source: str) -> tuple[str, Location]:
    listing_id = script_value(source, "listingId")
    if not listing_id:
        raise ExtractionFailure("script", _snippet(source))
    try:
        latitude = parse_degrees("lat", script_value(source, "lat"), 90.0)
        longitude = parse_degrees("lng", script_value(source, "lng"), 180.0)
    except ParseError as e:
        raise ExtractionFailure("script", f"{e} in {_snippet(source)}") from e
    location = Location(
        latitude=latitude,
        longitude=longitude,
        street=(script_value(source, "userEnteredLocation") or "").strip(),
        suburb=(script_value(source, "structuredLocation") or "").strip(),
    )
    return listing_id, location


def _read_images(cursor: TagCursor, page_url: str) -> set[str]:
    images = set()
    table_name, attr, value = ATTRIBUTES_TABLE
    while True:
        token = cursor.next()
        if token.is_terminal:
            raise ExtractionFailure(
                "attributes", f"no <{table_name} {attr}=\"{value}\"> before end of page"
            )
        if not token.is_open:
            continue
        if token.name == table_name and token.attrs.get(attr) == value:
            cursor.unread(token)
            return images
        if token.name == "img" and token.attrs.get("src"):
            try:
                src = resolve(page_url, token.attrs["src"])
            except ParseError as e:
                logger.debug(f"Skipping image on {page_url}: {e}")
                continue
            if is_thumbnail(src):
                images.add(full_size_url(src))


def _read_attributes(cursor: TagCursor) -> dict[str, str]:
    cursor.find_tag(*ATTRIBUTES_TABLE)
    attributes = {}
    label = None
    while True:
        token = cursor.next()
        if token.is_terminal:
            raise MarkupExhausted("</table>", cursor.lex_error)
        if token.type is TokenType.END_TAG and token.name == "table":
            return attributes
        if token.type is not TokenType.START_TAG:
            continue
        if token.name == "th":
            label = cursor.read_element_text("th", CELL_END).rstrip(":").strip()
        elif token.name == "td" and label is not None:
            attributes[label] = cursor.read_element_text("td", CELL_END)
            label = None


def extract_listing(cursor: TagCursor, url: str) -> PropertyRecord:
    """Read one listing page from ``cursor`` into a PropertyRecord.

    Raises ExtractionFailure for the first section that cannot be read.
    """
    with _step("container"):
        cursor.find_tag("div", "id", "mainContent")

    with _step("title"):
        title = cursor.read_text_from("h1", "id", "ListingTitle_title")
    if not title:
        raise ExtractionFailure("title", "empty title")

    with _step("price"):
        price_text = cursor.read_text_from("li", "id", "ListingTitle_classifiedTitlePrice")
    price = parse_price(price_text)

    with _step("images"):
        images = _read_images(cursor, url)

    with _step("attributes"):
        attributes = _read_attributes(cursor)

    with _step("description"):
        cursor.find_tag("div", "id", "ListingDescription_ListingDescription")
        description = cursor.read_element_text("div")

    with _step("script"):
        cursor.find_tag(*TEMPLATE_MARKER)
        # External scripts (src=...) carry no inline source.
        while "src" in cursor.find_tag("script", "type", "text/javascript").attrs:
            pass
        source = cursor.read_text()
    listing_id, location = parse_listing_script(source)

    return PropertyRecord(
        listing_id=listing_id,
        source_url=url,
        title=title,
        price=price,
        location=location,
        description=description,
        attributes=attributes,
        images=images,
    )


def load_listing(fetcher: Fetcher, url: str) -> PropertyRecord | None:
    """Fetch and extract one listing; log and return None on any failure."""
    try:
        with closing(fetcher.fetch(url)) as chunks:
            record = extract_listing(TagCursor(Tokenizer(chunks)), url)
    except ExtractionFailure as e:
        logger.warning(f"Extraction failed for {url} at step {e.step}: {e.snippet!r}")
        return None
    except CrawlError as e:
        logger.error(f"Failed to load listing {url}: {e}")
        return None
    logger.info(f"Loaded listing {record.listing_id}: {record.title}")
    return record
