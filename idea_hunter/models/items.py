"""
Collected item model
Every collector normalizes its source data into CollectedItem
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


class Source(str, Enum):
    """Origin tag of a collected item"""
    NOTE = "note"
    ZENN = "zenn"
    INDIEHACKERS = "indiehackers"
    PRODUCTHUNT = "producthunt"
    HACKERNEWS = "hackernews"
    REDDIT = "reddit"
    X = "x"
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CollectedItem(BaseModel):
    """
    Normalized content item
    Read-only once created; downstream stages only filter and pass it along
    """
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    source: Source
    title: str
    content: str
    url: str
    author: Optional[str] = None
    engagement: int = Field(default=0, ge=0)
    collected_at: datetime = Field(default_factory=_utcnow)
    metadata: Dict[str, Any] = Field(default_factory=dict)


def create_item(source: str, title: str, content: str, url: str, **fields: Any) -> CollectedItem:
    """
    Build a CollectedItem, filling defaults for optional fields

    Args:
        source: Source tag
        title: Item title
        content: Item body (already truncated by the collector)
        url: Canonical URL
        fields: author, engagement, collected_at, metadata

    Returns:
        CollectedItem
    """
    # None means "not reported" for optional fields
    fields = {key: value for key, value in fields.items() if value is not None}
    return CollectedItem(source=source, title=title, content=content, url=url, **fields)
