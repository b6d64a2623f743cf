"""
X (Twitter) live search crawl
Public pages only; use for personal research within the platform's terms
"""
from functools import partial
from typing import List, Optional
from urllib.parse import quote

from loguru import logger
from playwright.sync_api import Page

from idea_hunter.config.settings import XConfig
from idea_hunter.models import CollectedItem, Source, create_item
from idea_hunter.utils.text import CONTENT_LIMIT, parse_count, shorten, truncate
from idea_hunter.collectors.browser import BrowserCollector, inner_text, navigate, scroll

SEARCH_URL = "https://x.com/search?q={}&src=typed_query&f=live"


def parse_tweet(tweet, query: str) -> Optional[CollectedItem]:
    text = inner_text(tweet, '[data-testid="tweetText"]')
    if not text:
        return None

    url = ""
    time_link = tweet.query_selector('a[href*="/status/"]:has(time)')
    if time_link:
        href = time_link.get_attribute("href")
        url = f"https://x.com{href}" if href else ""
    if not url:
        return None

    engagement = sum(
        parse_count(inner_text(tweet, f'[data-testid="{testid}"]'))
        for testid in ("reply", "retweet", "like")
    )

    return create_item(
        source=Source.X,
        title=shorten(text, 100),
        content=truncate(text, CONTENT_LIMIT),
        url=url,
        author=inner_text(tweet, '[data-testid="User-Name"] span') or None,
        engagement=engagement,
        metadata={"query": query},
    )


def scrape_search(page: Page, query: str, max_scroll: int, limit: int) -> List[CollectedItem]:
    navigate(page, SEARCH_URL.format(quote(query)))
    scroll(page, max_scroll)

    items = []
    for tweet in page.query_selector_all('article[data-testid="tweet"]')[:limit]:
        try:
            item = parse_tweet(tweet, query)
        except Exception as e:
            logger.debug(f"[x] Skipping tweet: {e}")
            continue
        if item:
            items.append(item)
    return items


def build_x_collector(source_config: XConfig, max_items: int, proxy_url: str = "", **kwargs) -> BrowserCollector:
    return BrowserCollector(
        name=Source.X.value,
        enabled=source_config.enabled,
        units=source_config.search_queries,
        scrape_unit=partial(scrape_search, max_scroll=source_config.max_scroll, limit=max_items),
        max_items=max_items,
        proxy_url=proxy_url,
        **kwargs,
    )
