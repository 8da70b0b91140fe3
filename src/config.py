"""Configuration management for Feed Enclosure Transformer."""

import os
import re
from dataclasses import dataclass
from typing import Any

from .models import ChannelInfo, FeedRequest

# Leading integer of a query value, e.g. "12abc" -> 12
LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass
class FetchConfig:
    """Configuration for upstream feed downloads."""

    user_agent: str = "CN-Feed-Transformer/1.0 (+lambda)"
    timeout: int = 30


class Config:
    """Main configuration manager."""

    DEFAULT_FEED_URL = "https://fetchrss.com/feed/aK_GoGujlyOCaLDImjNCpSKk.rss"

    MIN_COUNT = 1
    MAX_COUNT = 30
    DEFAULT_COUNT = 10

    CONTENT_TYPE = "application/rss+xml; charset=utf-8"
    CACHE_HEADERS = {
        "no-store": "no-store",
        "shared": "s-maxage=300, stale-while-revalidate=600",
    }

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.default_feed_url = os.getenv("FEED_URL", self.DEFAULT_FEED_URL).strip()
        self.cache_mode = os.getenv("CACHE_MODE", "no-store").strip().lower()
        self.channel_title = os.getenv(
            "CHANNEL_TITLE", "Feed Thumbnails (Transformed)"
        )
        self.channel_link = os.getenv("CHANNEL_LINK", "https://example.com/")
        self.channel_description = os.getenv(
            "CHANNEL_DESCRIPTION", "Adds <enclosure> so widgets show thumbnails"
        )
        self.metrics_enabled = os.getenv("CLOUDWATCH_METRICS", "false").lower() in (
            "1",
            "true",
            "yes",
        )
        self.aws_region = os.getenv(
            "CURRENT_AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "us-east-1")
        )

    def get_fetch_config(self) -> FetchConfig:
        """Get upstream fetch configuration."""
        return FetchConfig()

    def get_channel_info(self) -> ChannelInfo:
        """Get channel metadata for the generated feed."""
        return ChannelInfo(
            title=self.channel_title,
            link=self.channel_link,
            description=self.channel_description,
        )

    def get_cache_control(self) -> str:
        """Get the Cache-Control header value for successful responses."""
        return self.CACHE_HEADERS.get(self.cache_mode, self.CACHE_HEADERS["no-store"])

    def parse_count(self, raw_count: Any) -> int:
        """Parse the ``count`` query value and clamp it.

        Args:
            raw_count: Raw query value, may be None or non-numeric

        Returns:
            Item limit within [MIN_COUNT, MAX_COUNT]
        """
        if raw_count is None or str(raw_count).strip() == "":
            count = self.DEFAULT_COUNT
        else:
            match = LEADING_INT.match(str(raw_count))
            count = int(match.group(1)) if match else self.DEFAULT_COUNT

        return max(self.MIN_COUNT, min(self.MAX_COUNT, count))

    def resolve_request(self, query: dict[str, Any] | None) -> FeedRequest:
        """Resolve feed URL and item limit from query parameters.

        Args:
            query: Query string parameters of the incoming request

        Returns:
            FeedRequest with the upstream URL and clamped limit

        Raises:
            ValueError: If no feed URL is given and none is configured
        """
        query = query or {}

        feed_url = str(query.get("url") or "").strip() or self.default_feed_url
        if not feed_url:
            raise ValueError("No feed URL given and FEED_URL is not configured")

        return FeedRequest(feed_url=feed_url, limit=self.parse_count(query.get("count")))
