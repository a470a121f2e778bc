import re
from enum import Enum
from urllib.parse import urldefrag, urljoin, urlsplit, urlunsplit
from trademe_crawler.errors import ParseError

LISTING_URL_RE = re.compile(
    r"https?://www\.trademe\.co\.nz/property/residential-property[a-z\-]*/auction-\d+\.htm"
)

THUMB_SEGMENT = "/thumb/"
FULL_SEGMENT = "/full/"


class UrlKind(Enum):
    LISTING = "listing"
    NEXT_PAGE = "next"
    OTHER = "other"


def resolve(base: str, href: str) -> str:
    """Resolve ``href`` against ``base``; raise ParseError if either is malformed."""
    try:
        resolved = urljoin(base, href.strip())
        urlsplit(resolved).port  # raises ValueError on a bad port or IPv6 host
    except ValueError as e:
        raise ParseError(f"Bad URL {href!r} relative to {base!r}: {e}") from e
    return resolved


def is_listing_url(url: str) -> bool:
    return LISTING_URL_RE.match(url) is not None


def has_rel_next(attrs: dict[str, str]) -> bool:
    return "next" in attrs.get("rel", "").lower().split()


def classify(url: str, attrs: dict[str, str]) -> UrlKind:
    """Classify an anchor's resolved URL, using the anchor's attributes for rel=next."""
    if is_listing_url(url):
        return UrlKind.LISTING
    if has_rel_next(attrs):
        return UrlKind.NEXT_PAGE
    return UrlKind.OTHER


def canonical_listing_url(url: str) -> str:
    """Drop query string and fragment; listing identity lives in the path."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc.lower(), parts.path, "", ""))


def canonical_search_url(url: str) -> str:
    # The query carries the search filters and page number, so only the fragment goes.
    return urldefrag(url)[0]


def validate_seed_url(url: str) -> str:
    try:
        parts = urlsplit(url)
        parts.port
    except ValueError as e:
        raise ParseError(f"Bad seed URL {url!r}: {e}") from e
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ParseError(f"Seed URL {url!r} must be an absolute http(s) URL")
    return url


def is_thumbnail(url: str) -> bool:
    return THUMB_SEGMENT in urlsplit(url).path


def full_size_url(thumbnail_url: str) -> str:
    parts = urlsplit(thumbnail_url)
    path = parts.path.replace(THUMB_SEGMENT, FULL_SEGMENT, 1)
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))
