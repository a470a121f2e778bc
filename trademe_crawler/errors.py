class CrawlError(Exception):
    """Base class for failures local to one unit of crawl work."""


class NetworkError(CrawlError):
    def __init__(self, url: str, cause: Exception):
        super().__init__(f"Failed to fetch {url}: {cause}")
        self.url = url
        self.cause = cause


class BadSearchPage(CrawlError):
    """The site rendered its error page instead of search results."""

    def __init__(self, url: str):
        super().__init__(f"Search page {url} is an error page")
        self.url = url


class ParseError(CrawlError):
    """A URL or numeric literal could not be parsed."""


class ExtractionFailure(CrawlError):
    """A listing page section was missing or malformed.

    ``step`` names the extraction step that failed and ``snippet`` holds the
    raw text that could not be understood, for diagnostics.
    """

    def __init__(self, step: str, snippet: str):
        super().__init__(f"{step}: {snippet!r}")
        self.step = step
        self.snippet = snippet


class MarkupExhausted(CrawlError):
    """The token stream ended while a scan was still looking for something."""

    def __init__(self, looking_for: str, lex_error: Exception | None = None):
        reason = f"lexer error: {lex_error}" if lex_error else "end of document"
        super().__init__(f"{reason} while looking for {looking_for}")
        self.looking_for = looking_for
        self.lex_error = lex_error
