"""
Notion API service for storing business ideas
Converts BusinessIdea models to Notion page properties and answers
"which URLs were stored recently" for deduplication

Reference: https://developers.notion.com/reference
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol, Set

from notion_client import Client
from notion_client.errors import APIResponseError
from loguru import logger

from idea_hunter.models import BusinessIdea
from idea_hunter.config import Settings
from idea_hunter.utils.text import truncate

TITLE_LIMIT = 100
TEXT_LIMIT = 2000
PAGE_SIZE = 100

REASON_HEADING = "ポテンシャル判定理由"


class NotionStorageError(Exception):
    """Custom exception for Notion storage operations"""
    pass


class IdeaStore(Protocol):
    """Persistence contract used by the pipeline"""

    def save_ideas(self, ideas: List[BusinessIdea]) -> List[str]:
        ...

    def get_recent_urls(self, days: int = 7) -> Set[str]:
        ...

    def query(self, filter: Dict[str, Any]) -> List[Dict[str, Any]]:
        ...


class NotionStorageService:
    """Notion API service for creating and querying idea pages"""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[Client] = None):
        """
        Initialize Notion storage service

        Args:
            settings: Application settings (if None, will load from environment)
            client: Notion client (if None, one is created from settings)

        Raises:
            ConfigurationError: If token or database id is missing
            NotionStorageError: If the client cannot be created
        """
        if settings is None:
            from idea_hunter.config import get_settings
            settings = get_settings()

        settings.require('NOTION_TOKEN', 'NOTION_DATABASE_ID')
        self.settings = settings
        self.database_id = settings.notion_database_id
        self._data_source_id: Optional[str] = None

        if client is not None:
            self.client = client
            return

        try:
            self.client = Client(auth=settings.notion_token)
            logger.info("Notion storage service initialized")
        except Exception as e:
            logger.exception(f"Failed to initialize Notion client: {e}")
            raise NotionStorageError(f"Failed to initialize Notion client: {str(e)}")

    def _get_data_source_id(self) -> str:
        """
        Get data source ID from database response
        Since Notion API 2025-09-03, pages live in a data source, not the database

        Raises:
            NotionStorageError: If data source ID cannot be retrieved
        """
        if self._data_source_id is None:
            try:
                database = self.client.databases.retrieve(database_id=self.database_id)
            except APIResponseError as e:
                raise NotionStorageError(f"Failed to fetch data source ID: {str(e)}")

            data_sources = database.get('data_sources', []) if isinstance(database, dict) else []
            if not data_sources or not data_sources[0].get('id'):
                raise NotionStorageError(
                    "No data_sources found in database response. "
                    "This usually means the integration is not connected to the database."
                )

            self._data_source_id = data_sources[0]['id']
            logger.info(f"Found data source ID: {self._data_source_id}")

        return self._data_source_id

    # ========== Property Builders ==========

    def _rich_text(self, content: str) -> List[Dict[str, Any]]:
        if not content:
            return []
        return [{"type": "text", "text": {"content": content}}]

    def _build_properties(self, idea: BusinessIdea) -> Dict[str, Any]:
        """
        Build properties dictionary for a Notion page
        Text is truncated here, at the store boundary, to Notion's limits
        """
        s = self.settings
        return {
            s.notion_property_title: {"title": self._rich_text(truncate(idea.title, TITLE_LIMIT))},
            s.notion_property_source: {"select": {"name": idea.original_source or "unknown"}},
            s.notion_property_category: {"select": {"name": idea.category}},
            s.notion_property_pain_point: {"rich_text": self._rich_text(truncate(idea.pain_point, TEXT_LIMIT))},
            s.notion_property_idea: {"rich_text": self._rich_text(truncate(idea.idea, TEXT_LIMIT))},
            s.notion_property_potential: {"select": {"name": idea.potential}},
            s.notion_property_url: {"url": idea.original_url or None},
            s.notion_property_collected_at: {
                "date": {"start": (idea.collected_at or datetime.now(timezone.utc)).isoformat()}
            },
        }

    def _build_children(self, idea: BusinessIdea) -> List[Dict[str, Any]]:
        if not idea.potential_reason:
            return []
        return [
            {
                "object": "block",
                "type": "heading_3",
                "heading_3": {"rich_text": self._rich_text(REASON_HEADING)},
            },
            {
                "object": "block",
                "type": "paragraph",
                "paragraph": {"rich_text": self._rich_text(truncate(idea.potential_reason, TEXT_LIMIT))},
            },
        ]

    # ========== Public API ==========

    def create_page(self, idea: BusinessIdea) -> str:
        """
        Create a Notion page from a BusinessIdea

        Returns:
            ID of the created page

        Raises:
            NotionStorageError: If page creation fails
        """
        try:
            kwargs: Dict[str, Any] = {
                "parent": {"type": "data_source_id", "data_source_id": self._get_data_source_id()},
                "properties": self._build_properties(idea),
            }
            children = self._build_children(idea)
            if children:
                kwargs["children"] = children

            response = self.client.pages.create(**kwargs)
        except APIResponseError as e:
            raise NotionStorageError(f"Notion API error: {str(e)}")

        if not isinstance(response, dict) or not isinstance(response.get("id"), str):
            raise NotionStorageError("Invalid response from Notion API")
        return response["id"]

    def save_ideas(self, ideas: List[BusinessIdea]) -> List[str]:
        """
        Create one page per idea

        Args:
            ideas: Enriched ideas

        Returns:
            IDs of the pages that were created; failed ideas are logged and skipped
        """
        created_ids = []
        for idea in ideas:
            try:
                page_id = self.create_page(idea)
            except Exception as e:
                logger.error(f"[notion] Error creating page for '{idea.title}': {e}")
                continue
            created_ids.append(page_id)
            logger.info(f"[notion] Created: {idea.title}")
        return created_ids

    def query(self, filter: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Query the idea data source, following pagination

        Args:
            filter: Notion filter object

        Returns:
            All matching page objects

        Raises:
            NotionStorageError: If a query request fails
        """
        data_source_id = self._get_data_source_id()
        pages: List[Dict[str, Any]] = []
        cursor: Optional[str] = None

        while True:
            body: Dict[str, Any] = {"filter": filter, "page_size": PAGE_SIZE}
            if cursor:
                body["start_cursor"] = cursor
            try:
                response = self.client.request(
                    path=f"data_sources/{data_source_id}/query",
                    method="POST",
                    body=body,
                )
            except APIResponseError as e:
                raise NotionStorageError(f"Query failed: {str(e)}")

            pages.extend(response.get("results", []))
            if not response.get("has_more") or not response.get("next_cursor"):
                return pages
            cursor = response["next_cursor"]

    def get_recent_urls(self, days: int = 7) -> Set[str]:
        """
        Original URLs of ideas stored within the last `days` days

        Returns:
            Set of URLs; empty when the query fails
        """
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        prop_url = self.settings.notion_property_url

        try:
            pages = self.query({
                "property": self.settings.notion_property_collected_at,
                "date": {"after": cutoff.isoformat()},
            })
        except Exception as e:
            logger.error(f"[notion] Error fetching recent URLs: {e}")
            return set()

        urls = set()
        for page in pages:
            url = (page.get("properties") or {}).get(prop_url, {}).get("url")
            if isinstance(url, str) and url:
                urls.add(url)
        logger.info(f"[notion] {len(urls)} URLs stored in the last {days} days")
        return urls

    def check_duplicate(self, url: str) -> bool:
        """Whether a page with this original URL exists; False when the query fails"""
        try:
            pages = self.query({
                "property": self.settings.notion_property_url,
                "url": {"equals": url},
            })
        except Exception as e:
            logger.warning(f"[notion] Duplicate check failed for {url}: {e}")
            return False
        return len(pages) > 0
