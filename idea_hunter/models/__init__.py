"""
Data models module
"""
from .items import CollectedItem, Source, create_item
from .idea import CATEGORIES, BusinessIdea

__all__ = ["CATEGORIES", "BusinessIdea", "CollectedItem", "Source", "create_item"]
