"""Property-based tests for Lambda Handler."""

import os
import xml.etree.ElementTree as ET
from unittest.mock import Mock, patch

from hypothesis import given, settings
from hypothesis import strategies as st

from src.lambda_handler import lambda_handler
from src.text import escape


def build_feed(items: list[str]) -> str:
    """Wrap raw item blocks in an RSS document."""
    return (
        '<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/"><channel>'
        + "".join(items)
        + "</channel></rss>"
    )


def run_handler(xml: str, query: dict | None = None) -> dict:
    """Run the handler against a mocked upstream feed."""
    with (
        patch.dict(os.environ, {"FEED_URL": "https://default.example.com/feed"}),
        patch("src.lambda_handler.FeedFetcher") as mock_fetcher_class,
    ):
        mock_fetcher = Mock()
        mock_fetcher.fetch.return_value = xml
        mock_fetcher_class.return_value = mock_fetcher
        return lambda_handler({"httpMethod": "GET", "queryStringParameters": query}, Mock())


def item_titles(document: str) -> list[str]:
    """Titles of the items in a generated document."""
    root = ET.fromstring(document.encode("utf-8"))
    return [item.findtext("title") for item in root.iter("item")]


class TestLambdaHandlerProperties:
    """Property-based tests for Lambda Handler."""

    @settings(max_examples=50, deadline=None)
    @given(st.integers(min_value=-100, max_value=100))
    def test_count_clamping_property(self, count):
        """
        Feature: feed-enclosure-transformer, Property: Output cap

        For any count, the number of emitted items is clamped to [1, 30].
        """
        items = [
            f"<item><title>Item {i}</title>"
            f'<media:content url="https://cdn.example.com/{i}.jpg"/></item>'
            for i in range(35)
        ]

        result = run_handler(build_feed(items), {"count": str(count)})

        assert result["statusCode"] == 200
        assert len(item_titles(result["body"])) == max(1, min(30, count))

    @settings(max_examples=50, deadline=None)
    @given(st.lists(st.booleans(), max_size=12))
    def test_entries_without_image_never_appear_property(self, has_image):
        """
        Feature: feed-enclosure-transformer, Property: No image, no item

        For any mix of entries, exactly those with an image are emitted, in order.
        """
        items = []
        for i, flag in enumerate(has_image):
            media = f'<media:content url="https://cdn.example.com/{i}.png"/>' if flag else ""
            items.append(f"<item><title>Item {i}</title>{media}</item>")

        result = run_handler(build_feed(items), {"count": "30"})

        expected = [f"Item {i}" for i, flag in enumerate(has_image) if flag]
        assert item_titles(result["body"]) == expected

    @settings(max_examples=50, deadline=None)
    @given(
        st.text(alphabet="abcdefghij0123456789-_/", min_size=1, max_size=40),
        st.booleans(),
    )
    def test_media_content_url_wins_property(self, path, double_escaped):
        """
        Feature: feed-enclosure-transformer, Property: media:content priority

        For any entry with a media:content url, the enclosure and thumbnail use
        that url, escaped exactly once, even when inline images exist.
        """
        image_url = f"https://cdn.example.com/{path}.jpg?w=1&h=2"
        source_url = escape(image_url)
        if double_escaped:
            source_url = escape(source_url)
        item = (
            "<item><title>Post</title>"
            f'<description><![CDATA[<img src="https://other.example.com/inline.png">]]></description>'
            f'<media:content url="{source_url}" medium="image"/>'
            "</item>"
        )

        result = run_handler(build_feed([item]))

        body = result["body"]
        assert f'<enclosure url="{escape(image_url)}" type="image/jpeg" />' in body
        assert f'<media:thumbnail url="{escape(image_url)}" />' in body
        assert "inline.png" not in body.split("</description>")[-1]
        assert "&amp;amp;" not in body

    @settings(max_examples=50, deadline=None)
    @given(
        st.text(alphabet="ab &<>\"'", min_size=1, max_size=30).filter(
            lambda x: x.strip() == x
        )
    )
    def test_title_escaped_exactly_once_property(self, title):
        """
        Feature: feed-enclosure-transformer, Property: Single escaping

        For any title with XML special characters, the output carries it
        escaped exactly once and it parses back to the original text.
        """
        item = (
            f"<item><title>{escape(title)}</title>"
            '<media:content url="https://cdn.example.com/a.jpg"/></item>'
        )

        result = run_handler(build_feed([item]))

        assert f"<item>\n<title>{escape(title)}</title>" in result["body"]
        assert item_titles(result["body"]) == [title]
