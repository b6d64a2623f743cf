"""
Browser-crawl collectors using Playwright
One chromium session per collect() call, one page reused across units
"""
import random
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Sequence

from playwright.sync_api import Page, sync_playwright, TimeoutError as PlaywrightTimeoutError
from playwright_stealth import Stealth
from loguru import logger

from idea_hunter.models import CollectedItem
from idea_hunter.collectors.base import collect_units, finalize

NAVIGATION_TIMEOUT = 30000

# Mainstream desktop browser user agents
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
]

ScrapeUnit = Callable[[Page, str], List[CollectedItem]]


@contextmanager
def browser_page(proxy_url: str = "") -> Iterator[Page]:
    """
    Launch headless chromium and yield a single page

    Args:
        proxy_url: Optional proxy server URL
    """
    with sync_playwright() as p:
        browser = p.chromium.launch(
            headless=True,
            args=[
                '--disable-blink-features=AutomationControlled',
                '--disable-dev-shm-usage',
                '--no-sandbox',
            ],
            proxy={"server": proxy_url} if proxy_url else None,
        )
        try:
            context = browser.new_context(
                user_agent=random.choice(USER_AGENTS),
                viewport={"width": 1280, "height": 720},
            )

            try:
                Stealth().apply_stealth_sync(context)
            except Exception as e:
                logger.warning(f"Failed to apply stealth plugin: {e}")

            yield context.new_page()
        finally:
            browser.close()


def navigate(page: Page, url: str, settle_ms: int = 3000, timeout: int = NAVIGATION_TIMEOUT):
    """Open a URL, falling back to domcontentloaded when the network never idles"""
    try:
        page.goto(url, wait_until="networkidle", timeout=timeout)
    except PlaywrightTimeoutError:
        logger.debug(f"networkidle timeout for {url}, retrying with domcontentloaded")
        page.goto(url, wait_until="domcontentloaded", timeout=timeout)
    page.wait_for_timeout(settle_ms)


def scroll(page: Page, times: int, pause_ms: int = 2000):
    for _ in range(times):
        page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
        page.wait_for_timeout(pause_ms)


def inner_text(handle, selector: str) -> str:
    """Text of the first element matching selector inside handle, or empty"""
    element = handle.query_selector(selector)
    return element.inner_text().strip() if element else ""


class BrowserCollector:
    """
    Generic crawl collector
    Each unit (search query, hashtag) is scraped by a platform-specific function
    """

    def __init__(
        self,
        name: str,
        enabled: bool,
        units: Sequence[str],
        scrape_unit: ScrapeUnit,
        max_items: int,
        proxy_url: str = "",
        page_factory: Optional[Callable] = None,
    ):
        """
        Initialize browser collector

        Args:
            name: Source tag
            enabled: Config switch
            units: Queries or hashtags, processed in order
            scrape_unit: Platform parser (page, unit) -> items
            max_items: Per-source cap
            proxy_url: Optional proxy server
            page_factory: Context manager factory yielding a page (defaults to browser_page)
        """
        self.name = name
        self.enabled = enabled
        self.units = list(units)
        self.scrape_unit = scrape_unit
        self.max_items = max_items
        self.proxy_url = proxy_url
        self.page_factory = page_factory or browser_page

    def collect(self) -> List[CollectedItem]:
        if not self.enabled or not self.units:
            return []

        items: List[CollectedItem] = []
        try:
            with self.page_factory(self.proxy_url) as page:
                items = collect_units(self.name, self.units, lambda unit: self.scrape_unit(page, unit))
        except Exception as e:
            logger.error(f"[{self.name}] Browser session failed: {e}")

        return finalize(items, self.max_items)
