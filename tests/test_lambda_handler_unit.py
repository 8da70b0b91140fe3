"""Unit tests for the Lambda HTTP handler."""

import os
import xml.etree.ElementTree as ET
from unittest.mock import Mock, patch

import requests

from src.config import Config
from src.fetcher import UpstreamFetchError
from src.lambda_handler import build_response, get_http_method, lambda_handler

RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
<channel>
  <title>Upstream</title>
  <item>
    <title>With media</title>
    <link>https://example.com/1</link>
    <media:content url="https://x/a.png?x=1&amp;y=2" medium="image"/>
  </item>
  <item>
    <title>Inline only</title>
    <link>https://example.com/2</link>
    <description><![CDATA[<img src="https://x/inline.jpg">]]></description>
  </item>
  <item>
    <title>Without image</title>
    <link>https://example.com/3</link>
  </item>
</channel>
</rss>
"""


def http_event(method: str = "GET", query: dict | None = None) -> dict:
    """Build an API Gateway v1 proxy event."""
    return {"httpMethod": method, "queryStringParameters": query}


class TestLambdaHandlerUnit:
    """Unit tests for lambda_handler."""

    def setup_method(self):
        """Set up a clean environment and mocked upstream."""
        self.env = patch.dict(
            os.environ, {"FEED_URL": "https://default.example.com/feed"}, clear=True
        )
        self.env.start()
        self.fetcher_patch = patch("src.lambda_handler.FeedFetcher")
        mock_fetcher_class = self.fetcher_patch.start()
        self.mock_fetcher = Mock()
        self.mock_fetcher.fetch.return_value = RSS_FEED
        mock_fetcher_class.return_value = self.mock_fetcher
        self.mock_fetcher_class = mock_fetcher_class
        self.context = Mock(aws_request_id="test-request-123", function_name="test-fn")

    def teardown_method(self):
        """Remove patches."""
        self.fetcher_patch.stop()
        self.env.stop()

    def test_get_returns_rss(self):
        """Test a successful GET returns the transformed feed."""
        result = lambda_handler(http_event(), self.context)

        assert result["statusCode"] == 200
        assert result["headers"]["Content-Type"] == "application/rss+xml; charset=utf-8"
        assert result["headers"]["Cache-Control"] == "no-store"
        assert result["isBase64Encoded"] is False

        body = result["body"]
        assert '<enclosure url="https://x/a.png?x=1&amp;y=2" type="image/png" />' in body
        assert '<enclosure url="https://x/inline.jpg" type="image/jpeg" />' in body
        assert "Without image" not in body

        root = ET.fromstring(body.encode("utf-8"))
        assert len(root.find("channel").findall("item")) == 2

    def test_default_feed_url_is_fetched(self):
        """Test the configured feed is used without a url parameter."""
        lambda_handler(http_event(), self.context)

        self.mock_fetcher.fetch.assert_called_once_with(
            "https://default.example.com/feed"
        )

    def test_url_parameter_overrides_default(self):
        """Test the url query parameter selects the upstream feed."""
        lambda_handler(
            http_event(query={"url": "https://override.example.com/rss"}), self.context
        )

        self.mock_fetcher.fetch.assert_called_once_with("https://override.example.com/rss")

    def test_count_parameter_limits_items(self):
        """Test the count query parameter caps the item list."""
        result = lambda_handler(http_event(query={"count": "1"}), self.context)

        root = ET.fromstring(result["body"].encode("utf-8"))
        items = root.find("channel").findall("item")
        assert [item.findtext("title") for item in items] == ["With media"]

    def test_function_url_event(self):
        """Test API Gateway v2 / Function URL events are understood."""
        event = {
            "requestContext": {"http": {"method": "GET"}},
            "queryStringParameters": {"count": "abc"},
        }

        result = lambda_handler(event, self.context)

        assert result["statusCode"] == 200

    def test_head_short_circuit(self):
        """Test HEAD answers with an empty 200 and never fetches."""
        for event in (
            http_event("HEAD"),
            {"requestContext": {"http": {"method": "HEAD"}}},
        ):
            result = lambda_handler(event, self.context)

            assert result["statusCode"] == 200
            assert result["body"] == ""
            assert result["headers"]["Content-Type"] == Config.CONTENT_TYPE

        self.mock_fetcher_class.assert_not_called()
        self.mock_fetcher.fetch.assert_not_called()

    def test_upstream_503_returns_502(self):
        """Test a failed upstream status becomes a plain-text 502."""
        self.mock_fetcher.fetch.side_effect = UpstreamFetchError(
            "https://default.example.com/feed", 503
        )

        result = lambda_handler(http_event(), self.context)

        assert result["statusCode"] == 502
        assert result["headers"]["Content-Type"].startswith("text/plain")
        assert result["body"] == "Upstream feed fetch failed"
        assert "<rss" not in result["body"]

    def test_unexpected_error_returns_500_with_message(self):
        """Test other exceptions become a 500 carrying the error message."""
        self.mock_fetcher.fetch.side_effect = requests.ConnectionError(
            "connection refused"
        )

        result = lambda_handler(http_event(), self.context)

        assert result["statusCode"] == 500
        assert result["body"] == "connection refused"
        assert result["headers"]["Content-Type"].startswith("text/plain")

    def test_transform_error_returns_500(self):
        """Test a failure while transforming aborts with a 500."""
        with patch("src.lambda_handler.FeedTransformer") as mock_transformer_class:
            mock_transformer_class.return_value.transform.side_effect = RuntimeError(
                "boom"
            )

            result = lambda_handler(http_event(), self.context)

        assert result["statusCode"] == 500
        assert result["body"] == "boom"

    def test_missing_feed_url_returns_500(self):
        """Test an unconfigured deployment without url parameter fails cleanly."""
        with patch.dict(os.environ, {"FEED_URL": ""}):
            result = lambda_handler(http_event(), self.context)

        assert result["statusCode"] == 500
        assert "FEED_URL" in result["body"]
        self.mock_fetcher.fetch.assert_not_called()

    def test_shared_cache_mode(self):
        """Test CACHE_MODE=shared enables shared caching."""
        with patch.dict(os.environ, {"CACHE_MODE": "shared"}):
            result = lambda_handler(http_event(), self.context)

        assert (
            result["headers"]["Cache-Control"]
            == "s-maxage=300, stale-while-revalidate=600"
        )

    def test_cloudwatch_metrics_only_when_enabled(self):
        """Test metrics are published only when CLOUDWATCH_METRICS is set."""
        with patch("src.lambda_handler.send_cloudwatch_metrics") as mock_send_metrics:
            lambda_handler(http_event(), self.context)
            mock_send_metrics.assert_not_called()

            with patch.dict(os.environ, {"CLOUDWATCH_METRICS": "true"}):
                lambda_handler(http_event(), self.context)

            mock_send_metrics.assert_called_once()
            metrics = mock_send_metrics.call_args[0][0]
            assert metrics["entries_found"] == 3
            assert metrics["entries_without_image"] == 1
            assert metrics["entries_emitted"] == 2
            assert metrics["errors"] == []

    def test_cloudwatch_metrics_on_upstream_failure(self):
        """Test failed requests still publish metrics when enabled."""
        self.mock_fetcher.fetch.side_effect = UpstreamFetchError(
            "https://default.example.com/feed", 503
        )

        with (
            patch("src.lambda_handler.send_cloudwatch_metrics") as mock_send_metrics,
            patch.dict(os.environ, {"CLOUDWATCH_METRICS": "true"}),
        ):
            result = lambda_handler(http_event(), self.context)

        assert result["statusCode"] == 502
        metrics = mock_send_metrics.call_args[0][0]
        assert metrics["upstream_failures"] == 1
        assert len(metrics["errors"]) == 1

    def test_get_http_method(self):
        """Test method detection across event formats."""
        assert get_http_method({"httpMethod": "head"}) == "HEAD"
        assert get_http_method({"requestContext": {"http": {"method": "POST"}}}) == "POST"
        assert get_http_method({"requestContext": {}}) == "GET"
        assert get_http_method({}) == "GET"

    def test_build_response(self):
        """Test proxy response shape."""
        assert build_response(201, "x", {"A": "b"}) == {
            "statusCode": 201,
            "headers": {"A": "b"},
            "body": "x",
            "isBase64Encoded": False,
        }
