"""
Instagram hashtag crawl
Only public post pages are read; Open Graph meta tags carry the caption
"""
import re
from functools import partial
from typing import List, Optional
from urllib.parse import quote

from loguru import logger
from playwright.sync_api import Page

from idea_hunter.config.settings import InstagramConfig
from idea_hunter.models import CollectedItem, Source, create_item
from idea_hunter.utils.text import CONTENT_LIMIT, parse_count, shorten, truncate
from idea_hunter.collectors.browser import BrowserCollector, inner_text, navigate

TAG_URL = "https://www.instagram.com/explore/tags/{}/"
POST_URL = "https://www.instagram.com{}"


def _meta(page: Page, prop: str) -> str:
    element = page.query_selector(f'meta[property="{prop}"]')
    return (element.get_attribute("content") or "").strip() if element else ""


def parse_post(page: Page, url: str, hashtag: str) -> Optional[CollectedItem]:
    description = _meta(page, "og:description")
    if not description:
        return None

    author = None
    match = re.match(r'(.+?) on Instagram', _meta(page, "og:title"))
    if match:
        author = match.group(1)

    return create_item(
        source=Source.INSTAGRAM,
        title=shorten(description, 100),
        content=truncate(description, CONTENT_LIMIT),
        url=url,
        author=author,
        engagement=parse_count(inner_text(page, "section span")),
        metadata={"hashtag": hashtag},
    )


def scrape_hashtag(page: Page, hashtag: str, max_posts: int) -> List[CollectedItem]:
    navigate(page, TAG_URL.format(quote(hashtag)))

    close_button = page.query_selector('svg[aria-label="Close"]')
    if close_button:
        close_button.click()
        page.wait_for_timeout(1000)

    # Collect hrefs first, navigating away invalidates the handles
    hrefs = []
    for link in page.query_selector_all('a[href^="/p/"]')[:max_posts]:
        href = link.get_attribute("href")
        if href:
            hrefs.append(href)

    items = []
    for href in hrefs:
        post_url = POST_URL.format(href)
        try:
            navigate(page, post_url, settle_ms=2000, timeout=20000)
            item = parse_post(page, post_url, hashtag)
        except Exception as e:
            logger.debug(f"[instagram] Skipping post {post_url}: {e}")
            continue
        if item:
            items.append(item)
    return items


def build_instagram_collector(source_config: InstagramConfig, max_items: int, proxy_url: str = "", **kwargs) -> BrowserCollector:
    return BrowserCollector(
        name=Source.INSTAGRAM.value,
        enabled=source_config.enabled,
        units=source_config.hashtags,
        scrape_unit=partial(scrape_hashtag, max_posts=source_config.max_posts),
        max_items=max_items,
        proxy_url=proxy_url,
        **kwargs,
    )
