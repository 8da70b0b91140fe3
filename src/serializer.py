"""RSS 2.0 document generation for Feed Enclosure Transformer."""

from datetime import UTC, datetime
from email.utils import format_datetime

from .images import mime_from_url
from .logging_config import create_request_logger
from .models import ChannelInfo, FeedEntry
from .text import cdata, escape, normalize_url

MEDIA_NAMESPACE = "http://search.yahoo.com/mrss/"


def format_rfc822(moment: datetime) -> str:
    """Format a datetime per RSS date convention (RFC 822, GMT)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return format_datetime(moment.astimezone(UTC), usegmt=True)


class RssSerializer:
    """Builds RSS 2.0 documents with media and enclosure tags."""

    def __init__(self, channel: ChannelInfo, execution_id: str | None = None):
        """Initialize RssSerializer.

        Args:
            channel: Fixed channel metadata
            execution_id: Execution ID for logging context
        """
        self.channel = channel
        self.logger = create_request_logger("serializer", execution_id)

    def serialize(self, entries: list[FeedEntry], now: datetime | None = None) -> str:
        """Render a complete RSS 2.0 document.

        Args:
            entries: Entries to emit, all with an image URL, already capped
            now: Build time, defaults to the current UTC time

        Returns:
            The XML document as a string
        """
        build_date = format_rfc822(now or datetime.now(UTC))

        header = (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            f'<rss version="2.0" xmlns:media="{MEDIA_NAMESPACE}">\n'
            "<channel>\n"
            f"<title>{escape(self.channel.title)}</title>\n"
            f"<link>{escape(self.channel.link)}</link>\n"
            f"<description>{escape(self.channel.description)}</description>\n"
            f"<lastBuildDate>{build_date}</lastBuildDate>\n"
        )
        body = "".join(self.serialize_entry(entry, build_date) for entry in entries)
        footer = "</channel>\n</rss>\n"

        self.logger.info("Serialized feed document", items_count=len(entries))
        return header + body + footer

    def serialize_entry(self, entry: FeedEntry, build_date: str) -> str:
        """Render one ``<item>`` element.

        Args:
            entry: Entry with a resolved image URL
            build_date: Document build timestamp, last resort for the guid

        Returns:
            The item markup
        """
        image_url = normalize_url(entry.image_url)
        if not image_url:
            raise ValueError(f"Entry has no image URL: {entry.title!r}")

        guid = entry.link or image_url or entry.title or build_date

        lines = ["<item>"]
        if entry.title:
            lines.append(f"<title>{escape(entry.title)}</title>")
        if entry.link:
            lines.append(f"<link>{escape(entry.link)}</link>")
        if entry.published:
            lines.append(f"<pubDate>{escape(entry.published)}</pubDate>")
        if entry.description:
            lines.append(f"<description>{cdata(entry.description)}</description>")
        lines.extend(
            [
                f'<media:content url="{escape(image_url)}" medium="image" />',
                f'<media:thumbnail url="{escape(image_url)}" />',
                f'<enclosure url="{escape(image_url)}" '
                f'type="{mime_from_url(image_url)}" />',
                f'<guid isPermaLink="false">{escape(guid)}</guid>',
                "</item>",
            ]
        )
        return "\n".join(lines) + "\n"
