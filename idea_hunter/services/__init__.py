"""
Services module - Business logic and external integrations
"""
from .analyzer import IdeaAnalyzerService
from .notion_storage import NotionStorageService
from .pipeline import PipelineService, RunSummary

__all__ = [
    "IdeaAnalyzerService",
    "NotionStorageService",
    "PipelineService",
    "RunSummary",
]
