"""
Business idea model
Parsed from the LLM's JSON output; enrichment fields are set afterwards
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


CATEGORIES = ("SaaS", "EC", "マーケットプレイス", "コミュニティ", "ツール", "コンテンツ", "その他")
DEFAULT_CATEGORY = "その他"

Potential = Literal["High", "Medium", "Low"]


class BusinessIdea(BaseModel):
    """
    Structured business idea extracted from one collected item
    Field aliases match the camelCase keys the model is asked to produce
    """
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(description="Idea title (20 display units or less)")
    category: str = Field(default=DEFAULT_CATEGORY, description="One of CATEGORIES")
    pain_point: str = Field(default="", alias="painPoint", description="Discovered pain point (100 or less)")
    idea: str = Field(default="", description="Idea summary (200 or less)")
    potential: Potential = Field(default="Medium")
    potential_reason: str = Field(default="", alias="potentialReason", description="Reason for potential (50 or less)")
    source_index: Optional[int] = Field(default=None, alias="sourceIndex")

    # Enrichment, copied from the originating CollectedItem
    original_url: Optional[str] = Field(default=None, alias="originalUrl")
    original_source: Optional[str] = Field(default=None, alias="originalSource")
    collected_at: Optional[datetime] = Field(default=None, alias="collectedAt")

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, value):
        if not isinstance(value, str):
            return DEFAULT_CATEGORY
        value = value.strip()
        for category in CATEGORIES:
            if value.lower() == category.lower():
                return category
        return DEFAULT_CATEGORY

    @field_validator("potential", mode="before")
    @classmethod
    def _normalize_potential(cls, value):
        if isinstance(value, str):
            return value.strip().capitalize()
        return value

    @property
    def is_enriched(self) -> bool:
        return self.original_url is not None
