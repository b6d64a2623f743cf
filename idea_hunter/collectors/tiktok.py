"""
TikTok search crawl
"""
from functools import partial
from typing import List, Optional
from urllib.parse import quote

from loguru import logger
from playwright.sync_api import Page

from idea_hunter.config.settings import TikTokConfig
from idea_hunter.models import CollectedItem, Source, create_item
from idea_hunter.utils.text import CONTENT_LIMIT, parse_count, shorten, truncate
from idea_hunter.collectors.browser import BrowserCollector, inner_text, navigate, scroll

SEARCH_URL = "https://www.tiktok.com/search?q={}"


def parse_video_card(card, query: str) -> Optional[CollectedItem]:
    link = card.query_selector('a[href*="/video/"]')
    href = link.get_attribute("href") if link else None
    if not href:
        return None
    url = href if href.startswith("http") else f"https://www.tiktok.com{href}"

    description = inner_text(card, '[data-e2e="search-card-desc"]') or inner_text(card, '[class*="SpanText"]')
    if not description:
        return None

    author = inner_text(card, '[data-e2e="search-card-user-unique-id"]') or inner_text(card, 'a[href^="/@"]')

    engagement = sum(
        parse_count(stat.inner_text())
        for stat in card.query_selector_all('[class*="StrongVideoCount"]')
    )

    return create_item(
        source=Source.TIKTOK,
        title=shorten(description, 100),
        content=truncate(description, CONTENT_LIMIT),
        url=url,
        author=author or None,
        engagement=engagement,
        metadata={"query": query},
    )


def scrape_search(page: Page, query: str, max_videos: int) -> List[CollectedItem]:
    # Search results render slowly
    navigate(page, SEARCH_URL.format(quote(query)), settle_ms=5000)
    scroll(page, 2)

    cards = page.query_selector_all('[data-e2e="search_top-item"]')
    if not cards:
        cards = page.query_selector_all('[class*="DivItemContainerV2"]')

    items = []
    for card in cards[:max_videos]:
        try:
            item = parse_video_card(card, query)
        except Exception as e:
            logger.debug(f"[tiktok] Skipping card: {e}")
            continue
        if item:
            items.append(item)
    return items


def build_tiktok_collector(source_config: TikTokConfig, max_items: int, proxy_url: str = "", **kwargs) -> BrowserCollector:
    return BrowserCollector(
        name=Source.TIKTOK.value,
        enabled=source_config.enabled,
        units=source_config.search_queries,
        scrape_unit=partial(scrape_search, max_videos=source_config.max_videos),
        max_items=max_items,
        proxy_url=proxy_url,
        **kwargs,
    )
