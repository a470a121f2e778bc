from trademe_crawler.errors import MarkupExhausted
from trademe_crawler.tokenizer import Token, Tokenizer, TokenType


class TagCursor:
    """Forward-only cursor over a ``Tokenizer`` with one token of pushback.

    The search helpers raise ``MarkupExhausted`` when the stream ends (or the
    lexer fails) before they find what they are looking for.
    """

    def __init__(self, tokenizer: Tokenizer):
        self._tokens = tokenizer
        self._pushed: Token | None = None
        self.current: Token | None = None

    def next(self) -> Token:
        if self._pushed is not None:
            self.current, self._pushed = self._pushed, None
        else:
            self.current = self._tokens.next()
        return self.current

    def unread(self, token: Token) -> None:
        self._pushed = token

    @property
    def lex_error(self):
        return self._tokens.error

    def attrs(self) -> dict[str, str]:
        if self.current is None or not self.current.is_open:
            return {}
        return self.current.attrs

    def _next_or_raise(self, looking_for: str) -> Token:
        token = self.next()
        if token.is_terminal:
            raise MarkupExhausted(looking_for, self._tokens.error)
        return token

    def find_tag(self, name: str, attr: str | None = None, value: str | None = None) -> Token:
        """Advance past the next opening ``name`` tag whose ``attr`` equals ``value``."""
        looking_for = _describe(name, attr, value)
        while True:
            token = self._next_or_raise(looking_for)
            if not token.is_open or token.name != name:
                continue
            if attr is None or token.attrs.get(attr) == value:
                return token

    def read_text(self) -> str:
        """Concatenate text tokens up to the next non-text token, trimmed."""
        parts = []
        while True:
            token = self._next_or_raise("end of text")
            if token.type is not TokenType.TEXT:
                self.unread(token)
                return "".join(parts).strip()
            parts.append(token.data)

    def read_text_from(self, name: str, attr: str, value: str) -> str:
        self.find_tag(name, attr, value)
        return self.read_text()

    def read_element_text(self, name: str, implied_end: frozenset[str] = frozenset()) -> str:
        """Collect all text inside the element just opened, up to its close tag.

        Nested markup is flattened; ``<br>`` becomes a newline. An opening or
        closing tag named in ``implied_end`` also ends the element (HTML lets
        ``</td>`` and friends be left out); that token is pushed back.
        """
        parts = []
        depth = 1
        while True:
            token = self._next_or_raise(f"</{name}>")
            if token.type is TokenType.TEXT:
                parts.append(token.data)
            elif token.is_open and token.name == "br":
                parts.append("\n")
            elif token.type is TokenType.END_TAG and token.name == name:
                depth -= 1
                if depth == 0:
                    return "".join(parts).strip()
            elif token.name in implied_end:
                self.unread(token)
                return "".join(parts).strip()
            elif token.type is TokenType.START_TAG and token.name == name:
                depth += 1


def _describe(name: str, attr: str | None, value: str | None) -> str:
    if attr is None:
        return f"<{name}>"
    return f'<{name} {attr}="{value}">'
