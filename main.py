"""
Main entry point for a collection run

Usage:
    python main.py                            # all sources
    python main.py --sources note,reddit      # selected sources only
    python main.py --dry-run                  # no dedup lookup, nothing saved
    python main.py --skip-analysis            # collect and filter only
"""
import argparse
import sys

from loguru import logger

from idea_hunter.utils.logger import setup_logger
from idea_hunter.config import ConfigurationError, get_settings, load_config
from idea_hunter.services.pipeline import PipelineService


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Collect posts and extract business ideas")
    parser.add_argument("--sources", help="Comma-separated list of sources")
    parser.add_argument("--dry-run", action="store_true", help="Don't check duplicates or save to Notion")
    parser.add_argument("--skip-analysis", action="store_true", help="Skip LLM analysis and saving")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point"""
    args = parse_args(argv)
    sources = args.sources.split(",") if args.sources else None

    try:
        settings = get_settings()
        setup_logger(settings.log_level, settings.log_file or None)
        config = load_config(settings=settings)
        pipeline = PipelineService(config, settings)
        summary = pipeline.run(sources=sources, dry_run=args.dry_run, skip_analysis=args.skip_analysis)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        logger.info("Please check your .env file, environment variables and config.yaml")
        return 2
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1

    print(summary.format())
    return summary.exit_code(config.run.fail_on_partial_failure)


if __name__ == "__main__":
    sys.exit(main())
