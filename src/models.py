"""Data models for Feed Enclosure Transformer."""

from dataclasses import dataclass


@dataclass
class FeedEntry:
    """Represents a single RSS item or Atom entry."""

    title: str
    link: str
    published: str  # Raw source date string, never parsed
    description: str
    image_url: str | None = None


@dataclass
class FeedRequest:
    """Resolved upstream feed and item limit for one invocation."""

    feed_url: str
    limit: int


@dataclass
class ChannelInfo:
    """Channel metadata written into the generated document."""

    title: str
    link: str
    description: str
