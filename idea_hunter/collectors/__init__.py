"""
Source collectors - feed, API and browser-crawl variants behind one contract
"""
from typing import List, Optional, Sequence

import requests
from loguru import logger

from idea_hunter.config import AppConfig, Settings
from idea_hunter.config.settings import FeedSourceConfig
from idea_hunter.models import Source
from .base import Collector, collect_units, finalize
from .feed import FeedCollector, FeedError, reddit_metadata
from .hackernews import HackerNewsCollector
from .x import build_x_collector
from .instagram import build_instagram_collector
from .tiktok import build_tiktok_collector

FEED_SOURCES = (Source.NOTE, Source.ZENN, Source.INDIEHACKERS, Source.PRODUCTHUNT)

# Collection order of a full run
ALL_SOURCES = [
    Source.NOTE.value,
    Source.ZENN.value,
    Source.INDIEHACKERS.value,
    Source.PRODUCTHUNT.value,
    Source.HACKERNEWS.value,
    Source.REDDIT.value,
    Source.X.value,
    Source.INSTAGRAM.value,
    Source.TIKTOK.value,
]


def build_collectors(
    config: AppConfig,
    settings: Settings,
    sources: Optional[Sequence[str]] = None,
) -> List[Collector]:
    """
    Build collectors in run order

    Args:
        config: Source configuration
        settings: Environment settings (proxy)
        sources: Restrict to these source names (None means all)

    Returns:
        Collector instances; disabled sources are still included and return []
    """
    wanted = ALL_SOURCES
    if sources is not None:
        requested = [s.strip().lower() for s in sources if s.strip()]
        unknown = [s for s in requested if s not in ALL_SOURCES]
        if unknown:
            logger.warning(f"Ignoring unknown sources: {', '.join(unknown)}")
        wanted = [s for s in ALL_SOURCES if s in requested]

    max_items = config.collection.max_items_per_source
    session = requests.Session()
    collectors: List[Collector] = []

    for name in wanted:
        if name in {s.value for s in FEED_SOURCES}:
            collectors.append(FeedCollector(
                name, config.rss.get(name, FeedSourceConfig()), max_items, session=session,
            ))
        elif name == Source.HACKERNEWS.value:
            collectors.append(HackerNewsCollector(config.hackernews, max_items, session=session))
        elif name == Source.REDDIT.value:
            collectors.append(FeedCollector(
                name, config.reddit, max_items, session=session, feed_metadata=reddit_metadata,
            ))
        elif name == Source.X.value:
            collectors.append(build_x_collector(config.x, max_items, settings.proxy_url))
        elif name == Source.INSTAGRAM.value:
            collectors.append(build_instagram_collector(config.instagram, max_items, settings.proxy_url))
        elif name == Source.TIKTOK.value:
            collectors.append(build_tiktok_collector(config.tiktok, max_items, settings.proxy_url))

    return collectors


__all__ = [
    "ALL_SOURCES",
    "Collector",
    "FeedCollector",
    "FeedError",
    "HackerNewsCollector",
    "build_collectors",
    "collect_units",
    "finalize",
]
