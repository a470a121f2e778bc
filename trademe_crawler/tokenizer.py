"""Pull-style HTML tokenizer over a stream of byte chunks.

``html.parser.HTMLParser`` is push-based: it calls handler methods as it is
fed. ``Tokenizer`` feeds it one chunk at a time and queues the events, so
callers can ask for the next token without the page ever being held in
memory as a tree.
"""
import codecs
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from html.parser import HTMLParser
from typing import Iterable
from bs4.dammit import EncodingDetector
from trademe_crawler.errors import CrawlError

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"


class TokenType(Enum):
    START_TAG = "start"
    END_TAG = "end"
    SELF_CLOSING = "self-closing"
    TEXT = "text"
    END_OF_STREAM = "eof"
    ERROR = "error"


@dataclass(frozen=True)
class Token:
    type: TokenType
    name: str = ""
    data: str = ""
    attrs: dict[str, str] = field(default_factory=dict)

    @property
    def is_open(self) -> bool:
        return self.type in (TokenType.START_TAG, TokenType.SELF_CLOSING)

    @property
    def is_terminal(self) -> bool:
        return self.type in (TokenType.END_OF_STREAM, TokenType.ERROR)


class _TokenCollector(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.pending: deque[Token] = deque()

    def handle_starttag(self, tag, attrs):
        self.pending.append(Token(TokenType.START_TAG, tag, attrs=_attr_map(attrs)))

    def handle_startendtag(self, tag, attrs):
        self.pending.append(Token(TokenType.SELF_CLOSING, tag, attrs=_attr_map(attrs)))

    def handle_endtag(self, tag):
        self.pending.append(Token(TokenType.END_TAG, tag))

    def handle_data(self, data):
        self.pending.append(Token(TokenType.TEXT, data=data))


def _attr_map(attrs) -> dict[str, str]:
    # Later duplicates win; valueless attributes read as "".
    return {name: value or "" for name, value in attrs}


def _sniff_encoding(first_chunk: bytes) -> tuple[bytes, str]:
    data, encoding = EncodingDetector.strip_byte_order_mark(first_chunk)
    if encoding:
        return data, encoding
    declared = EncodingDetector.find_declared_encoding(data, is_html=True)
    if declared:
        try:
            info = codecs.lookup(declared)
        except LookupError:
            logger.debug(f"Ignoring unknown declared encoding {declared!r}")
        else:
            # bytes-to-bytes codecs such as "hex" are not character encodings
            if info._is_text_encoding:
                return data, declared
            logger.debug(f"Ignoring non-text declared encoding {declared!r}")
    return data, DEFAULT_ENCODING


class Tokenizer:
    """Hands out one ``Token`` per ``next()`` call.

    A ``CrawlError`` raised by the chunk source (a transport failure while
    the body is still arriving) is reported as a single ERROR token and the
    stream ends there; ``error`` keeps the exception.
    """

    def __init__(self, chunks: Iterable[bytes]):
        self._chunks = iter(chunks)
        self._parser = _TokenCollector()
        self._decoder = None
        self._finished = False
        self._current: Token | None = None
        self.error: CrawlError | None = None

    def next(self) -> Token:
        while not self._parser.pending:
            if self._finished:
                if self.error is not None:
                    self._current = Token(TokenType.ERROR, data=str(self.error))
                else:
                    self._current = Token(TokenType.END_OF_STREAM)
                return self._current
            self._feed_more()
        self._current = self._parser.pending.popleft()
        return self._current

    def current_attributes(self) -> dict[str, str]:
        if self._current is None or not self._current.is_open:
            return {}
        return self._current.attrs

    def __iter__(self):
        while True:
            token = self.next()
            yield token
            if token.is_terminal:
                return

    def _feed_more(self) -> None:
        try:
            chunk = next(self._chunks)
        except StopIteration:
            if self._decoder is not None:
                self._parser.feed(self._decoder.decode(b"", final=True))
            self._parser.close()
            self._finished = True
            return
        except CrawlError as e:
            self.error = e
            self._finished = True
            return

        if self._decoder is None:
            chunk, encoding = _sniff_encoding(chunk)
            self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._parser.feed(self._decoder.decode(chunk))
