"""
Order-preserving item filters
Building blocks that collectors and the pipeline compose as they need
"""
from typing import Iterable, List, Sequence

from idea_hunter.models import CollectedItem


def _lowered(keywords: Sequence[str]) -> List[str]:
    # A blank keyword would match every item
    return [kw.strip().lower() for kw in keywords if kw and kw.strip()]


def _haystack(item: CollectedItem) -> str:
    return f"{item.title} {item.content}".lower()


def filter_by_keywords(items: List[CollectedItem], keywords: Sequence[str]) -> List[CollectedItem]:
    """Keep items mentioning any keyword; an empty keyword list keeps everything"""
    lowered = _lowered(keywords)
    if not lowered:
        return items

    return [item for item in items if any(kw in _haystack(item) for kw in lowered)]


def exclude_keywords(items: List[CollectedItem], exclude: Sequence[str]) -> List[CollectedItem]:
    """Drop items mentioning any excluded keyword; an empty list drops nothing"""
    lowered = _lowered(exclude)
    if not lowered:
        return items

    return [item for item in items if not any(kw in _haystack(item) for kw in lowered)]


def filter_by_engagement(items: List[CollectedItem], minimum: int, exempt_zero: bool = False) -> List[CollectedItem]:
    """Keep items at or above the floor; with exempt_zero, items reporting 0 (unknown) pass too"""
    return [
        item for item in items
        if item.engagement >= minimum or (exempt_zero and item.engagement == 0)
    ]


def dedupe_by_url(items: Iterable[CollectedItem]) -> List[CollectedItem]:
    """First occurrence of each URL wins; items without a URL are dropped"""
    seen = set()
    unique = []
    for item in items:
        if not item.url or item.url in seen:
            continue
        seen.add(item.url)
        unique.append(item)
    return unique
