"""Item builders and fake clients shared by the test modules."""
from contextlib import contextmanager
from datetime import datetime, timezone
from types import SimpleNamespace

from idea_hunter.models import create_item


def make_item(index=0, source="reddit", engagement=0, url=None, title=None, content="body"):
    return create_item(
        source=source,
        title=title or f"title {index}",
        content=content,
        url=url or f"https://example.com/{source}/{index}",
        engagement=engagement,
        collected_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


def make_items(count, source="reddit"):
    return [make_item(i, source=source) for i in range(count)]


def completion(text):
    """Shape of an OpenAI chat completion response."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


class FakeAPIError(Exception):
    """Mimics the status/code attributes of openai.APIStatusError."""

    def __init__(self, status_code, code=None, type=None):
        super().__init__(f"HTTP {status_code} {code or ''}".strip())
        self.status_code = status_code
        self.code = code
        self.type = type


class ScriptedCompletions:
    """Returns (or raises) scripted results in order and records prompts."""

    def __init__(self, script):
        self.script = list(script)
        self.prompts = []

    def create(self, **kwargs):
        self.prompts.append(kwargs["messages"][-1]["content"])
        result = self.script.pop(0)
        if isinstance(result, Exception):
            raise result
        return completion(result)


def fake_openai(script):
    completions = ScriptedCompletions(script)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


class FakeCollector:
    def __init__(self, name, items=None, error=None):
        self.name = name
        self.items = items or []
        self.error = error
        self.calls = 0

    def collect(self):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.items)


def fake_page_factory(page=None):
    @contextmanager
    def factory(proxy_url=""):
        yield page if page is not None else object()
    return factory
