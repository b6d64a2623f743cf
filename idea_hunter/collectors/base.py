"""
Collector contract and the per-unit collection loop shared by all variants
"""
from typing import Callable, Iterable, List, Protocol, Sequence, TypeVar, runtime_checkable
from loguru import logger

from idea_hunter.models import CollectedItem
from idea_hunter.utils.filters import dedupe_by_url, filter_by_keywords

Unit = TypeVar("Unit")


@runtime_checkable
class Collector(Protocol):
    """Anything with a name that returns normalized items and never raises"""
    name: str

    def collect(self) -> List[CollectedItem]:
        ...


def collect_units(
    name: str,
    units: Iterable[Unit],
    fetch: Callable[[Unit], List[CollectedItem]],
) -> List[CollectedItem]:
    """
    Run `fetch` for every unit of work in order, isolating failures

    Args:
        name: Collector name used as log context
        units: Feed URLs, story ids, queries, hashtags...
        fetch: Callable returning the items of one unit

    Returns:
        Items of all units that succeeded, in unit order
    """
    items: List[CollectedItem] = []
    for unit in units:
        try:
            fetched = fetch(unit)
            logger.debug(f"[{name}] {len(fetched)} items from {unit}")
            items.extend(fetched)
        except Exception as e:
            logger.warning(f"[{name}] Error fetching {unit}: {e}")
    return items


def finalize(
    items: List[CollectedItem],
    max_items: int,
    keywords: Sequence[str] = (),
    dedupe: bool = True,
) -> List[CollectedItem]:
    """Keyword filter, URL dedup and the per-source cap, in that order"""
    items = filter_by_keywords(items, keywords)
    if dedupe:
        items = dedupe_by_url(items)
    return items[:max_items]
