"""RSS/Atom feed parsing module for Feed Enclosure Transformer."""

import re

from .images import ImageResolver
from .logging_config import create_request_logger
from .models import FeedEntry
from .text import decode, normalize_url, tag_attributes

ATOM = "atom"
RSS = "rss"

FEED_TAG = re.compile(r"<feed\b", re.IGNORECASE)
ENTRY_TAG = re.compile(r"<entry\b", re.IGNORECASE)

# Non-greedy: a block missing its closing tag never swallows the next one
ITEM_BLOCK = re.compile(r"<item(?:\s[^>]*)?>[\s\S]*?</item>", re.IGNORECASE)
ENTRY_BLOCK = re.compile(r"<entry\b[\s\S]*?</entry>", re.IGNORECASE)

LINK_TAG = re.compile(r"<link\b[^>]*>", re.IGNORECASE)


def detect_dialect(xml: str) -> str:
    """Detect whether a document is Atom or RSS.

    Atom requires a ``feed`` element and at least one ``entry``; everything
    else, including an empty Atom feed, is treated as RSS.
    """
    if FEED_TAG.search(xml) and ENTRY_TAG.search(xml):
        return ATOM
    return RSS


def pick_tag(block: str, tag: str) -> str:
    """Get the trimmed, decoded text of the first ``tag`` element in a block.

    Args:
        block: Raw item/entry markup
        tag: Exact tag name, namespace prefix included (e.g. ``dc:date``)

    Returns:
        Decoded inner text, or an empty string if the tag is absent
    """
    name = re.escape(tag)
    match = re.search(
        rf"<{name}(\s[^>]*)?>([\s\S]*?)</{name}>", block, flags=re.IGNORECASE
    )
    if not match:
        return ""
    return decode(match.group(2).strip()).strip()


def pick_first(block: str, *tags: str) -> str:
    """Get the first non-empty value among several tags, in order."""
    for tag in tags:
        value = pick_tag(block, tag)
        if value:
            return value
    return ""


def pick_atom_link(block: str) -> str:
    """Get the entry link, preferring ``rel="alternate"``.

    Falls back to the first ``link`` element carrying an ``href``.
    """
    first_href = ""
    for match in LINK_TAG.finditer(block):
        attributes = tag_attributes(match.group(0))
        href = normalize_url(attributes.get("href"))
        if not href:
            continue
        if attributes.get("rel", "").strip().lower() == "alternate":
            return href
        if not first_href:
            first_href = href
    return first_href


class FeedParser:
    """Extracts entries from loosely structured RSS and Atom documents."""

    def __init__(
        self,
        image_resolver: ImageResolver | None = None,
        execution_id: str | None = None,
    ):
        """Initialize FeedParser.

        Args:
            image_resolver: Resolver used to pick each entry's thumbnail
            execution_id: Execution ID for logging context
        """
        self.image_resolver = image_resolver or ImageResolver(execution_id)
        self.logger = create_request_logger("feed_parser", execution_id)

    def parse(self, xml: str, dialect: str | None = None) -> list[FeedEntry]:
        """Parse a feed document of either dialect.

        Args:
            xml: Raw feed text
            dialect: ``atom`` or ``rss`` when already known; detected otherwise

        Returns:
            Entries in order of appearance; entries without an image keep
            ``image_url`` set to None
        """
        if dialect is None:
            dialect = detect_dialect(xml)
            self.logger.debug("Detected feed dialect", dialect=dialect)
        if dialect == ATOM:
            return self.parse_atom(xml)
        return self.parse_rss(xml)

    def parse_rss(self, xml: str) -> list[FeedEntry]:
        """Parse ``<item>`` blocks of an RSS document."""
        entries = []
        for block in ITEM_BLOCK.findall(xml):
            description = pick_first(block, "description", "content:encoded")
            entries.append(
                FeedEntry(
                    title=pick_tag(block, "title"),
                    link=normalize_url(pick_tag(block, "link")),
                    published=pick_first(block, "pubDate", "dc:date"),
                    description=description,
                    image_url=self.image_resolver.resolve(block, description),
                )
            )
        return entries

    def parse_atom(self, xml: str) -> list[FeedEntry]:
        """Parse ``<entry>`` blocks of an Atom document."""
        entries = []
        for block in ENTRY_BLOCK.findall(xml):
            content = pick_first(block, "content", "summary")
            entries.append(
                FeedEntry(
                    title=pick_tag(block, "title"),
                    link=pick_atom_link(block),
                    published=pick_first(block, "updated", "published"),
                    description=content,
                    image_url=self.image_resolver.resolve(block, content),
                )
            )
        return entries
