"""Feed transformation pipeline for Feed Enclosure Transformer."""

from dataclasses import dataclass
from datetime import datetime

from .config import Config
from .images import ImageResolver
from .logging_config import create_request_logger
from .rss import FeedParser, detect_dialect
from .serializer import RssSerializer


@dataclass
class TransformResult:
    """Generated document plus counters for logging and metrics."""

    document: str
    dialect: str
    entries_found: int
    entries_without_image: int
    entries_emitted: int


class FeedTransformer:
    """Turns raw RSS/Atom text into RSS 2.0 with image enclosures."""

    def __init__(self, config: Config, execution_id: str | None = None):
        """Initialize FeedTransformer with configuration.

        Args:
            config: Configuration providing channel metadata
            execution_id: Execution ID for logging context
        """
        self.config = config
        self.logger = create_request_logger("pipeline", execution_id)
        self.parser = FeedParser(ImageResolver(execution_id), execution_id)
        self.serializer = RssSerializer(config.get_channel_info(), execution_id)

    def transform(
        self, xml: str, limit: int, now: datetime | None = None
    ) -> TransformResult:
        """Parse, filter, cap and serialize a feed.

        Entries without an image are dropped before the limit is applied.

        Args:
            xml: Raw upstream feed text
            limit: Maximum number of items to emit
            now: Build time for the document

        Returns:
            TransformResult with the RSS document
        """
        dialect = detect_dialect(xml)
        entries = self.parser.parse(xml, dialect)

        with_image = []
        for entry in entries:
            if entry.image_url:
                with_image.append(entry)
            else:
                self.logger.log_entry_skipped(entry.title, "no_image")

        if entries and not with_image:
            self.logger.warning(
                f"None of the {len(entries)} entries has an image",
                dialect=dialect,
            )

        emitted = with_image[: max(limit, 0)]
        document = self.serializer.serialize(emitted, now=now)

        result = TransformResult(
            document=document,
            dialect=dialect,
            entries_found=len(entries),
            entries_without_image=len(entries) - len(with_image),
            entries_emitted=len(emitted),
        )
        self.logger.info(
            f"Transformed {result.entries_emitted} of {result.entries_found} entries",
            dialect=dialect,
            entries_found=result.entries_found,
            entries_without_image=result.entries_without_image,
            entries_emitted=result.entries_emitted,
        )
        return result
