#!/usr/bin/env python3
"""
Job Aggregator Crawl Script

Crawls the job aggregator's result pages for the configured keywords with a
headless browser, matches employers against the company registry and
upserts intent signals and per-company intent levels.

Run via cron (daily is enough, the crawl takes a while):
    0 3 * * * cd /path/to/company-intent-signals && .venv/bin/python scripts/crawl_intents.py

Or manually for testing:
    python scripts/crawl_intents.py --dry-run -v

Exit codes:
    0: Run completed (including per-page or per-company failures)
    1: Setup failure (missing configuration, registry unreachable, browser launch)
       or no intent row could be written
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment before other imports
load_dotenv()

from src.common.config import Config
from src.common.error_handling import SetupError
from src.common.intent_config import IntentConfig
from src.common.logger import set_global_debug_mode, setup_logging
from src.services.intent_pipeline_service import IntentPipelineService, IntentRunResult
from src.services.signal_sources import BrowserCrawlerSource

logger = logging.getLogger("crawl_intents")


async def run_crawl(config: IntentConfig, dry_run: bool = False) -> IntentRunResult:
    """Run one crawl pipeline with a fresh browser."""
    service = IntentPipelineService(config, dry_run=dry_run)
    async with BrowserCrawlerSource(config) as source:
        return await service.run_crawl(source)


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Crawl the job aggregator for company hiring-intent signals"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Crawl, match and score without writing to the database",
    )
    args = parser.parse_args()

    setup_logging(level="DEBUG" if args.verbose else Config.LOG_LEVEL, format=Config.LOG_FORMAT)
    if args.verbose:
        set_global_debug_mode(True)
    logger.debug(Config.summary())

    config = IntentConfig.from_env()
    logger.info("=== Job aggregator intent crawl ===")
    logger.info(f"Department type: {config.department_type}")
    logger.info(f"Keywords: {', '.join(config.crawl_keywords)}")
    logger.info(f"Max pages per keyword: {config.crawl_max_pages}")

    try:
        Config.validate_for("crawl")
        result = asyncio.run(run_crawl(config, dry_run=args.dry_run))
    except (SetupError, ValueError) as e:
        logger.error(f"Setup failed: {e}")
        return 1

    if not result.success:
        logger.error(f"Run failed: {result.error_message}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
