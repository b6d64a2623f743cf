"""
RSS/Atom feed collector
Used for note, zenn, indiehackers, producthunt and reddit
"""
import re
from typing import Any, Callable, Dict, List, Optional

import feedparser
import requests
from loguru import logger

from idea_hunter.config.settings import FeedSourceConfig
from idea_hunter.models import CollectedItem, create_item
from idea_hunter.utils.text import clean_content
from idea_hunter.collectors.base import collect_units, finalize

USER_AGENT = "Mozilla/5.0 (compatible; IdeaHunter/1.0; +https://github.com/)"
FEED_TIMEOUT = 15


class FeedError(Exception):
    """Raised when a feed cannot be fetched or parsed"""
    pass


def extract_subreddit(feed_url: str) -> str:
    """https://www.reddit.com/r/Entrepreneur/.rss -> Entrepreneur"""
    match = re.search(r'/r/([^/]+)', feed_url)
    return match.group(1) if match else "unknown"


def reddit_metadata(feed_url: str) -> Dict[str, Any]:
    return {"subreddit": extract_subreddit(feed_url)}


class FeedCollector:
    """Collects entries from a list of feed URLs"""

    def __init__(
        self,
        name: str,
        source_config: FeedSourceConfig,
        max_items: int,
        session: Optional[requests.Session] = None,
        feed_metadata: Optional[Callable[[str], Dict[str, Any]]] = None,
        timeout: float = FEED_TIMEOUT,
    ):
        """
        Initialize feed collector

        Args:
            name: Source tag of the produced items
            source_config: enabled flag, feed URLs and keywords
            max_items: Per-source cap
            session: HTTP session (if None, a new one is created)
            feed_metadata: Extra metadata derived from the feed URL
            timeout: Per-request timeout in seconds
        """
        self.name = name
        self.source_config = source_config
        self.max_items = max_items
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.feed_metadata = feed_metadata
        self.timeout = timeout

    def collect(self) -> List[CollectedItem]:
        if not self.source_config.enabled:
            return []

        items = collect_units(self.name, self.source_config.feeds, self._fetch_feed)
        return finalize(items, self.max_items, self.source_config.keywords)

    def _fetch_feed(self, feed_url: str) -> List[CollectedItem]:
        logger.info(f"[{self.name}] Fetching {feed_url}")
        response = self.session.get(feed_url, timeout=self.timeout)
        response.raise_for_status()

        parsed = feedparser.parse(response.content)
        if parsed.bozo and not parsed.entries:
            raise FeedError(f"Unparsable feed: {parsed.get('bozo_exception')}")

        extra = self.feed_metadata(feed_url) if self.feed_metadata else {}
        items = []
        for entry in parsed.entries[:self.max_items]:
            item = self._to_item(entry, extra)
            if item is not None:
                items.append(item)
        return items

    def _to_item(self, entry, extra: Dict[str, Any]) -> Optional[CollectedItem]:
        link = entry.get("link") or ""
        if not link:
            return None

        body = entry.get("summary") or ""
        if not body and entry.get("content"):
            body = entry["content"][0].get("value", "")

        metadata = {
            "published": entry.get("published") or entry.get("updated"),
            "categories": [tag.get("term") for tag in entry.get("tags", []) if tag.get("term")],
        }
        metadata.update(extra)

        return create_item(
            source=self.name,
            title=clean_content(entry.get("title") or ""),
            content=clean_content(body),
            url=link.strip(),
            author=entry.get("author"),
            metadata=metadata,
        )
