#!/usr/bin/env python3
"""
Preview script: run the transformer against a live feed and print the result.
Usage: python preview_feed.py [feed_url] [count]

Examples:
  python preview_feed.py                                   # Uses FEED_URL or the default feed
  python preview_feed.py https://example.com/feed.xml 5    # Custom feed, 5 items
"""

import sys

from src.config import Config
from src.fetcher import FeedFetcher, UpstreamFetchError
from src.pipeline import FeedTransformer


def preview_feed() -> bool:
    """Fetch, transform and print one feed."""
    config = Config()
    query = {}
    if len(sys.argv) > 1:
        query["url"] = sys.argv[1]
    if len(sys.argv) > 2:
        query["count"] = sys.argv[2]

    feed_request = config.resolve_request(query)

    print(f"\n{'='*70}")
    print(f"Feed: {feed_request.feed_url}")
    print(f"Limit: {feed_request.limit}")
    print(f"{'='*70}\n")

    try:
        xml = FeedFetcher(config.get_fetch_config(), execution_id="preview").fetch(
            feed_request.feed_url
        )
    except UpstreamFetchError as e:
        print(f"Upstream returned HTTP {e.status_code}\n")
        return False

    result = FeedTransformer(config, execution_id="preview").transform(
        xml, feed_request.limit
    )

    print(result.document)
    print(f"{'='*70}")
    print(f"Dialect: {result.dialect}")
    print(f"Entries found: {result.entries_found}")
    print(f"Entries without image: {result.entries_without_image}")
    print(f"Entries emitted: {result.entries_emitted}")
    print(f"{'='*70}\n")

    return True


if __name__ == "__main__":
    sys.exit(0 if preview_feed() else 1)
