import logging
from typing import Iterator
import requests
from trademe_crawler.config import CRAWL_CONFIG
from trademe_crawler.errors import NetworkError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 16 * 1024


class Fetcher:
    def __init__(self, timeout: float | None = None, user_agent: str | None = None):
        if timeout is None:
            timeout = CRAWL_CONFIG["fetch_timeout"]
        self.timeout = timeout or None
        self.session = requests.Session()
        self.session.headers.update(
            {"User-Agent": user_agent or CRAWL_CONFIG["user_agent"]}
        )

    def fetch(self, url: str) -> Iterator[bytes]:
        """Open ``url`` and return its body as a stream of byte chunks.

        Errors opening the page raise NetworkError here; errors while the
        body is still arriving raise NetworkError from the iterator.
        """
        logger.debug(f"Fetching {url}")
        try:
            resp = self.session.get(url, timeout=self.timeout, stream=True)
        except requests.RequestException as e:
            raise NetworkError(url, e) from e

        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            resp.close()
            raise NetworkError(url, e) from e
        return self._stream(url, resp)

    def _stream(self, url: str, resp: requests.Response) -> Iterator[bytes]:
        with resp:
            try:
                for chunk in resp.iter_content(CHUNK_SIZE):
                    if chunk:
                        yield chunk
            except requests.RequestException as e:
                raise NetworkError(url, e) from e
