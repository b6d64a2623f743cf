"""
Hacker News collector using the public Firebase JSON API
"""
from datetime import datetime, timezone
from functools import partial
from typing import List, Optional

import requests
from loguru import logger

from idea_hunter.config.settings import HackerNewsConfig
from idea_hunter.models import CollectedItem, Source, create_item
from idea_hunter.utils.text import clean_content
from idea_hunter.collectors.base import collect_units, finalize
from idea_hunter.collectors.feed import FEED_TIMEOUT

BASE_URL = "https://hacker-news.firebaseio.com/v0"
ITEM_PAGE_URL = "https://news.ycombinator.com/item?id={}"


class HackerNewsCollector:
    """Collects Show HN / Ask HN stories"""

    name = Source.HACKERNEWS.value

    def __init__(
        self,
        source_config: HackerNewsConfig,
        max_items: int,
        session: Optional[requests.Session] = None,
        timeout: float = FEED_TIMEOUT,
    ):
        self.source_config = source_config
        self.max_items = max_items
        self.session = session or requests.Session()
        self.timeout = timeout

    def collect(self) -> List[CollectedItem]:
        if not self.source_config.enabled:
            return []

        items = collect_units(self.name, self.source_config.story_types, self._fetch_story_list)
        return finalize(items, self.max_items, self.source_config.keywords)

    def _get_json(self, path: str):
        response = self.session.get(f"{BASE_URL}/{path}", timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _fetch_story_list(self, story_type: str) -> List[CollectedItem]:
        story_ids = self._get_json(f"{story_type}.json") or []
        logger.info(f"[{self.name}] {len(story_ids)} ids in {story_type}")

        # Story failures are isolated individually, not per list
        return collect_units(
            self.name,
            story_ids[:self.max_items],
            partial(self._fetch_story, story_type=story_type),
        )

    def _fetch_story(self, story_id: int, story_type: str) -> List[CollectedItem]:
        story = self._get_json(f"item/{story_id}.json")
        if not story or story.get("deleted") or story.get("dead"):
            return []

        score = story.get("score") or 0
        comments = story.get("descendants") or 0
        created = story.get("time")

        return [create_item(
            source=self.name,
            title=story.get("title") or "",
            content=clean_content(story.get("text") or ""),
            url=story.get("url") or ITEM_PAGE_URL.format(story_id),
            author=story.get("by"),
            engagement=score + comments,
            metadata={
                "type": story_type.replace("stories", ""),
                "score": score,
                "comments": comments,
                "created_utc": datetime.fromtimestamp(created, tz=timezone.utc).isoformat() if created else None,
            },
        )]
