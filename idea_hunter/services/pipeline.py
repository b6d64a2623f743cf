"""
Pipeline service - orchestrates one collection run
collect -> filter -> dedup -> analyze -> save -> summary
"""
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from loguru import logger

from idea_hunter.collectors import Collector, build_collectors
from idea_hunter.config import AppConfig, Settings
from idea_hunter.models import BusinessIdea, CollectedItem
from idea_hunter.services.analyzer import IdeaAnalyzerService
from idea_hunter.services.notion_storage import IdeaStore, NotionStorageService
from idea_hunter.utils.filters import exclude_keywords, filter_by_engagement


@dataclass
class StageError:
    stage: str
    unit: str
    message: str


@dataclass
class RunSummary:
    """Statistics of one pipeline run"""
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    dry_run: bool = False
    skip_analysis: bool = False
    per_source: Dict[str, int] = field(default_factory=dict)
    total_collected: int = 0
    after_filter: int = 0
    after_dedup: int = 0
    ideas: List[BusinessIdea] = field(default_factory=list)
    saved: int = 0
    errors: List[StageError] = field(default_factory=list)

    @property
    def potential_counts(self) -> Dict[str, int]:
        counts = Counter(idea.potential for idea in self.ideas)
        return {level: counts.get(level, 0) for level in ("High", "Medium", "Low")}

    @property
    def partial_failure(self) -> bool:
        return bool(self.errors)

    def record_error(self, stage: str, unit: str, error: Exception):
        self.errors.append(StageError(stage=stage, unit=unit, message=str(error)))

    def exit_code(self, fail_on_partial_failure: bool = False) -> int:
        return 1 if fail_on_partial_failure and self.partial_failure else 0

    def format(self) -> str:
        lines = ["", "Collection Summary", "", "Items by Source:"]
        for source, count in sorted(self.per_source.items()):
            lines.append(f"  {source}: {count}")
        lines.append(f"  Total: {self.total_collected}")
        lines.append(f"  After filtering: {self.after_filter}")
        lines.append(f"  After deduplication: {self.after_dedup}")

        if self.ideas:
            counts = self.potential_counts
            lines.append("")
            lines.append(f"{len(self.ideas)} Business Ideas Extracted")
            lines.append(f"   High: {counts['High']}, Medium: {counts['Medium']}, Low: {counts['Low']}")
        if not self.dry_run and not self.skip_analysis:
            lines.append(f"   Saved: {self.saved}")

        if self.errors:
            lines.append("")
            lines.append(f"{len(self.errors)} stage error(s):")
            for error in self.errors:
                lines.append(f"  [{error.stage}] {error.unit}: {error.message}")
        return "\n".join(lines)


def apply_filters(items: List[CollectedItem], config: AppConfig) -> List[CollectedItem]:
    """
    Run-level filters: excluded keywords, then the engagement floor
    Items reporting 0 engagement are exempt from a positive floor when configured
    """
    filters = config.filters
    filtered = exclude_keywords(items, filters.exclude_keywords)

    if filters.min_engagement > 0:
        filtered = filter_by_engagement(
            filtered, filters.min_engagement, exempt_zero=filters.exempt_unknown_engagement,
        )
    return filtered


def deduplicate(items: List[CollectedItem], existing_urls: Optional[set] = None) -> List[CollectedItem]:
    """Drop repeats of (source, url) within the run and URLs already stored"""
    existing_urls = existing_urls or set()
    seen = set()
    unique = []
    for item in items:
        key = (item.source, item.url)
        if not item.url or key in seen or item.url in existing_urls:
            continue
        seen.add(key)
        unique.append(item)
    return unique


class PipelineService:
    """Service sequencing collection, analysis and storage for one run"""

    def __init__(
        self,
        config: AppConfig,
        settings: Optional[Settings] = None,
        collectors: Optional[List[Collector]] = None,
        analyzer: Optional[IdeaAnalyzerService] = None,
        storage: Optional[IdeaStore] = None,
    ):
        """
        Initialize pipeline service

        Args:
            config: Source/filter/analysis configuration
            settings: Application settings (if None, will load from environment)
            collectors: Collector instances (if None, built from config per run)
            analyzer: Analyzer instance (if None, created when the run needs it)
            storage: Idea store (if None, Notion storage is created when the run needs it)
        """
        if settings is None:
            from idea_hunter.config import get_settings
            settings = get_settings()

        self.config = config
        self.settings = settings
        self.collectors = collectors
        self.analyzer = analyzer
        self.storage = storage

    def _prepare(self, dry_run: bool, skip_analysis: bool):
        """Create the services the mode needs; missing credentials fail here, before any work"""
        if not skip_analysis and self.analyzer is None:
            self.analyzer = IdeaAnalyzerService(self.config, self.settings)
        if not dry_run and self.storage is None:
            self.storage = NotionStorageService(self.settings)

    def run(
        self,
        sources: Optional[Sequence[str]] = None,
        dry_run: bool = False,
        skip_analysis: bool = False,
    ) -> RunSummary:
        """
        Execute one run

        Args:
            sources: Restrict to these collectors (None means all)
            dry_run: Skip the dedup lookup and persistence
            skip_analysis: Skip extraction and persistence

        Returns:
            RunSummary

        Raises:
            ConfigurationError: If a required credential is missing
        """
        self._prepare(dry_run, skip_analysis)
        summary = RunSummary(dry_run=dry_run, skip_analysis=skip_analysis)
        logger.info(f"Run started at {summary.started_at.isoformat()} (dry_run={dry_run}, skip_analysis={skip_analysis})")

        items = self._collect(sources, summary)

        logger.info("Filtering...")
        items = apply_filters(items, self.config)
        summary.after_filter = len(items)
        logger.info(f"{len(items)} items after filtering")

        existing_urls: set = set()
        if not dry_run and items:
            try:
                existing_urls = self.storage.get_recent_urls(self.config.collection.dedup_days)
            except Exception as e:
                logger.warning(f"Could not check duplicates: {e}")
                summary.record_error("dedup", "recent-urls", e)
        items = deduplicate(items, existing_urls)
        summary.after_dedup = len(items)
        logger.info(f"{len(items)} items after deduplication")

        if not items:
            logger.info("No new items to analyze")
        elif not skip_analysis:
            logger.info("Analyzing...")
            try:
                summary.ideas = self.analyzer.analyze(items)
                logger.info(f"{len(summary.ideas)} ideas extracted")
            except Exception as e:
                logger.exception(f"Analysis error: {e}")
                summary.record_error("analysis", "analyze", e)

        if not dry_run and not skip_analysis and summary.ideas:
            logger.info("Saving to Notion...")
            try:
                created = self.storage.save_ideas(summary.ideas)
                summary.saved = len(created)
                logger.info(f"{summary.saved} ideas saved")
                if summary.saved < len(summary.ideas):
                    summary.errors.append(StageError(
                        "persistence", "save-ideas",
                        f"{len(summary.ideas) - summary.saved} of {len(summary.ideas)} ideas failed to save",
                    ))
            except Exception as e:
                logger.exception(f"Save error: {e}")
                summary.record_error("persistence", "save-ideas", e)

        summary.finished_at = datetime.now(timezone.utc)
        logger.info(f"Run completed at {summary.finished_at.isoformat()}")
        return summary

    def _collect(self, sources: Optional[Sequence[str]], summary: RunSummary) -> List[CollectedItem]:
        collectors = self.collectors
        if collectors is None:
            collectors = build_collectors(self.config, self.settings, sources)
        elif sources is not None:
            wanted = {s.strip().lower() for s in sources}
            collectors = [c for c in collectors if c.name in wanted]

        all_items: List[CollectedItem] = []
        for collector in collectors:
            logger.info(f"Collecting from {collector.name}...")
            try:
                items = collector.collect()
            except Exception as e:
                logger.error(f"[{collector.name}] Collection failed: {e}")
                summary.record_error("collection", collector.name, e)
                items = []
            summary.per_source[collector.name] = summary.per_source.get(collector.name, 0) + len(items)
            logger.info(f"[{collector.name}] {len(items)} items collected")
            all_items.extend(items)

        summary.total_collected = len(all_items)
        return all_items
