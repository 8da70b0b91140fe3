"""Upstream feed download for Feed Enclosure Transformer."""

import codecs
import re

import requests

from .config import FetchConfig
from .logging_config import create_request_logger

XML_DECLARATION_ENCODING = re.compile(
    rb"""^\s*<\?xml\s[^>]*?encoding\s*=\s*["']([A-Za-z][\w.:-]*)["']"""
)
UTF8_BOM = codecs.BOM_UTF8


def declared_encoding(content: bytes) -> str | None:
    """Read the encoding named by a document's XML declaration.

    A UTF-8 byte order mark wins over the declaration. Unknown codec names
    are ignored.
    """
    if content.startswith(UTF8_BOM):
        return "utf-8-sig"

    match = XML_DECLARATION_ENCODING.match(content[:1024])
    if not match:
        return None

    name = match.group(1).decode("ascii")
    try:
        codecs.lookup(name)
    except LookupError:
        return None
    return name


class UpstreamFetchError(Exception):
    """Raised when the upstream feed does not answer with a success status."""

    def __init__(self, feed_url: str, status_code: int):
        super().__init__(f"Upstream feed fetch failed with status {status_code}")
        self.feed_url = feed_url
        self.status_code = status_code


class FeedFetcher:
    """Downloads raw feed XML over HTTP."""

    def __init__(
        self, config: FetchConfig | None = None, execution_id: str | None = None
    ):
        """Initialize FeedFetcher with configuration.

        Args:
            config: Fetch configuration (user agent, timeout)
            execution_id: Execution ID for logging context
        """
        self.config = config or FetchConfig()
        self.logger = create_request_logger("feed_fetcher", execution_id)
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": self.config.user_agent})

        self.logger.info("FeedFetcher initialized", timeout=self.config.timeout)

    def fetch(self, feed_url: str) -> str:
        """Download a feed and return its text, fully buffered.

        Args:
            feed_url: URL of the RSS/Atom feed

        Returns:
            Raw feed text

        Raises:
            UpstreamFetchError: If the upstream status is not 2xx
            requests.RequestException: If the connection itself fails
        """
        self.logger.info("Downloading feed content", feed_url=feed_url)

        response = self.session.get(
            feed_url,
            timeout=self.config.timeout,
            headers={"Cache-Control": "no-store"},
        )

        if not 200 <= response.status_code < 300:
            self.logger.error(
                f"Upstream returned status {response.status_code}",
                feed_url=feed_url,
                status_code=response.status_code,
            )
            raise UpstreamFetchError(feed_url, response.status_code)

        self.logger.info(
            "Feed downloaded successfully",
            feed_url=feed_url,
            status_code=response.status_code,
            content_length=len(response.content),
        )
        # requests falls back to ISO-8859-1 for text/* without a charset
        if "charset" not in response.headers.get("Content-Type", "").lower():
            response.encoding = declared_encoding(response.content) or "utf-8"
        return response.text
