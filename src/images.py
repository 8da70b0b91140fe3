"""Thumbnail discovery for feed entries."""

import re

from bs4 import BeautifulSoup

from .logging_config import create_request_logger
from .text import normalize_url, tag_attributes

# The closing quote matches the opening one; the other quote may occur inside
MEDIA_CONTENT_QUOTED = re.compile(
    r"""<media:content\b[^>]*\surl=(["'])(?P<url>[^>]*?)\1""", re.IGNORECASE
)
MEDIA_CONTENT_UNQUOTED = re.compile(
    r"""<media:content\b[^>]*\surl=(?P<url>[^"'\s>]+?)(?=\s|/?>)""", re.IGNORECASE
)
ENCLOSURE_TAG = re.compile(r"<enclosure\b[^>]*>", re.IGNORECASE)

PNG_URL = re.compile(r"\.png(?:[?#]|$)", re.IGNORECASE)
WEBP_URL = re.compile(r"\.webp(?:[?#]|$)", re.IGNORECASE)


def mime_from_url(url: str) -> str:
    """Guess an image MIME type from the URL's file extension.

    Args:
        url: Decoded image URL

    Returns:
        ``image/png``, ``image/webp`` or ``image/jpeg`` for anything else
    """
    if PNG_URL.search(url or ""):
        return "image/png"
    if WEBP_URL.search(url or ""):
        return "image/webp"
    return "image/jpeg"


class ImageResolver:
    """Picks the single best thumbnail URL for a feed entry.

    Structured metadata is trusted before scraping the body HTML:
    ``media:content`` first, then ``enclosure``, then the first inline
    ``<img>`` of the description/content.
    """

    def __init__(self, execution_id: str | None = None):
        """Initialize ImageResolver.

        Args:
            execution_id: Execution ID for logging context
        """
        self.logger = create_request_logger("image_resolver", execution_id)

    def resolve(self, block: str, body: str) -> str | None:
        """Return the decoded image URL for an entry, or None.

        Args:
            block: Raw markup of the item/entry block
            body: Decoded description or content text of the entry

        Returns:
            Image URL, or None if the entry has no usable image
        """
        for source, finder in (
            ("media:content", lambda: self.media_content_url(block)),
            ("enclosure", lambda: self.enclosure_url(block)),
            ("inline", lambda: self.first_inline_image(body)),
        ):
            url = finder()
            if url:
                self.logger.debug("Resolved entry image", source=source, image_url=url)
                return url

        return None

    def media_content_url(self, block: str) -> str | None:
        """Get the ``url`` attribute of the first ``media:content`` element."""
        match = MEDIA_CONTENT_QUOTED.search(block) or MEDIA_CONTENT_UNQUOTED.search(
            block
        )
        if not match:
            return None
        return normalize_url(match.group("url")) or None

    def enclosure_url(self, block: str) -> str | None:
        """Get the ``url`` of the first image enclosure.

        Enclosures declaring a non-image ``type`` (podcast audio, documents)
        are skipped; an enclosure without ``type`` is accepted.
        """
        for match in ENCLOSURE_TAG.finditer(block):
            attributes = tag_attributes(match.group(0))
            url = normalize_url(attributes.get("url"))
            if not url:
                continue

            mime_type = attributes.get("type", "").strip().lower()
            if mime_type and not mime_type.startswith("image/"):
                self.logger.debug(
                    "Skipping non-image enclosure", enclosure_type=mime_type
                )
                continue

            return url

        return None

    def first_inline_image(self, body: str) -> str | None:
        """Get the ``src`` of the first ``<img>`` inside body HTML."""
        if not body or "<img" not in body.lower():
            return None

        soup = BeautifulSoup(body, "html.parser")
        for img in soup.find_all("img"):
            src = normalize_url(img.get("src"))
            if src:
                return src

        return None
