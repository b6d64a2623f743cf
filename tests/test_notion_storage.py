"""Tests for idea_hunter.services.notion_storage."""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from idea_hunter.config import ConfigurationError
from idea_hunter.models import BusinessIdea
from idea_hunter.services.notion_storage import NotionStorageError, NotionStorageService


def make_idea(**overrides):
    fields = {
        "title": "請求書SaaS",
        "category": "SaaS",
        "pain_point": "請求書作成が面倒",
        "idea": "自動で請求書を作る",
        "potential": "High",
        "potential_reason": "中小企業に需要",
        "source_index": 0,
        "original_url": "https://example.com/1",
        "original_source": "reddit",
        "collected_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return BusinessIdea(**fields)


@pytest.fixture
def client():
    client = MagicMock()
    client.databases.retrieve.return_value = {"data_sources": [{"id": "ds-1"}]}
    client.pages.create.side_effect = lambda **kwargs: {"id": f"page-{client.pages.create.call_count}"}
    return client


@pytest.fixture
def storage(settings, client):
    return NotionStorageService(settings, client=client)


def created_properties(client, call=0):
    return client.pages.create.call_args_list[call].kwargs["properties"]


class TestConstruction:
    def test_missing_credentials_fail_fast(self, bare_settings):
        with pytest.raises(ConfigurationError) as exc:
            NotionStorageService(bare_settings, client=MagicMock())
        assert "NOTION_TOKEN" in str(exc.value)
        assert "NOTION_DATABASE_ID" in str(exc.value)


class TestCreatePage:
    def test_properties_and_parent(self, storage, client):
        page_id = storage.create_page(make_idea())

        assert page_id == "page-1"
        kwargs = client.pages.create.call_args.kwargs
        assert kwargs["parent"] == {"type": "data_source_id", "data_source_id": "ds-1"}
        props = kwargs["properties"]
        assert props["Title"]["title"][0]["text"]["content"] == "請求書SaaS"
        assert props["Source"] == {"select": {"name": "reddit"}}
        assert props["Category"] == {"select": {"name": "SaaS"}}
        assert props["Potential"] == {"select": {"name": "High"}}
        assert props["Original URL"] == {"url": "https://example.com/1"}
        assert props["Collected At"] == {"date": {"start": "2026-01-01T00:00:00+00:00"}}
        assert kwargs["children"][1]["paragraph"]["rich_text"][0]["text"]["content"] == "中小企業に需要"

    def test_text_is_truncated_at_the_boundary(self, storage, client):
        idea = make_idea(title="t" * 150, idea="i" * 3000, pain_point="p" * 2500)

        storage.create_page(idea)

        props = created_properties(client)
        assert len(props["Title"]["title"][0]["text"]["content"]) == 100
        assert len(props["Idea"]["rich_text"][0]["text"]["content"]) == 2000
        assert len(props["Pain Point"]["rich_text"][0]["text"]["content"]) == 2000
        # the model itself keeps the full text
        assert len(idea.title) == 150

    def test_unenriched_idea_uses_fallbacks(self, storage, client):
        storage.create_page(make_idea(original_url=None, original_source=None, collected_at=None, potential_reason=""))

        kwargs = client.pages.create.call_args.kwargs
        assert kwargs["properties"]["Source"] == {"select": {"name": "unknown"}}
        assert kwargs["properties"]["Original URL"] == {"url": None}
        assert kwargs["properties"]["Collected At"]["date"]["start"]
        assert "children" not in kwargs

    def test_custom_property_names(self, settings, client):
        settings.notion_property_title = "Name"
        NotionStorageService(settings, client=client).create_page(make_idea())
        assert "Name" in created_properties(client)

    def test_missing_data_source_raises(self, storage, client):
        client.databases.retrieve.return_value = {"data_sources": []}
        with pytest.raises(NotionStorageError):
            storage.create_page(make_idea())

    def test_data_source_is_looked_up_once(self, storage, client):
        storage.create_page(make_idea())
        storage.create_page(make_idea())
        assert client.databases.retrieve.call_count == 1


class TestSaveIdeas:
    def test_failed_record_does_not_block_the_rest(self, storage, client):
        def create(**kwargs):
            title = kwargs["properties"]["Title"]["title"][0]["text"]["content"]
            if title == "broken":
                raise RuntimeError("validation_error")
            return {"id": f"id-{title}"}

        client.pages.create.side_effect = create
        ideas = [make_idea(title="a"), make_idea(title="broken"), make_idea(title="c")]

        assert storage.save_ideas(ideas) == ["id-a", "id-c"]
        assert client.pages.create.call_count == 3

    def test_same_idea_twice_creates_two_pages(self, storage, client):
        idea = make_idea()
        assert storage.save_ideas([idea, idea]) == ["page-1", "page-2"]

    def test_empty_list(self, storage, client):
        assert storage.save_ideas([]) == []
        client.pages.create.assert_not_called()


class TestQueries:
    def page(self, url):
        return {"id": url, "properties": {"Original URL": {"type": "url", "url": url}}}

    def test_recent_urls_follow_pagination(self, storage, client):
        client.request.side_effect = [
            {"results": [self.page("https://a"), self.page("https://b")], "has_more": True, "next_cursor": "c1"},
            {"results": [self.page("https://a"), self.page(None)], "has_more": False, "next_cursor": None},
        ]

        urls = storage.get_recent_urls(7)

        assert urls == {"https://a", "https://b"}
        first, second = client.request.call_args_list
        assert first.kwargs["path"] == "data_sources/ds-1/query"
        assert first.kwargs["method"] == "POST"
        assert first.kwargs["body"]["filter"]["property"] == "Collected At"
        assert "after" in first.kwargs["body"]["filter"]["date"]
        assert "start_cursor" not in first.kwargs["body"]
        assert second.kwargs["body"]["start_cursor"] == "c1"

    def test_recent_urls_failure_returns_empty_set(self, storage, client):
        client.request.side_effect = RuntimeError("502 Bad Gateway")
        assert storage.get_recent_urls(7) == set()

    def test_recent_urls_when_database_unreachable(self, storage, client):
        client.databases.retrieve.side_effect = RuntimeError("unauthorized")
        assert storage.get_recent_urls(3) == set()

    def test_check_duplicate(self, storage, client):
        client.request.return_value = {"results": [self.page("https://a")], "has_more": False}
        assert storage.check_duplicate("https://a") is True
        assert client.request.call_args.kwargs["body"]["filter"] == {
            "property": "Original URL",
            "url": {"equals": "https://a"},
        }

    def test_check_duplicate_failure_is_false(self, storage, client):
        client.request.side_effect = RuntimeError("timeout")
        assert storage.check_duplicate("https://a") is False
