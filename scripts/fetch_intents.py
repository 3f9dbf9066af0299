#!/usr/bin/env python3
"""
Web Search Intent Fetch Script

For every registry company, runs the configured search queries against the
web search API, keeps job-like results and upserts intent signals and the
company's intent level.

Run via cron:
    0 4 * * 0 cd /path/to/company-intent-signals && .venv/bin/python scripts/fetch_intents.py

Or manually for testing:
    python scripts/fetch_intents.py --dry-run -v

Exit codes:
    0: Run completed (including per-query or per-company failures)
    1: Setup failure (missing SERPER_API_KEY/MONGODB_URI, registry unreachable)
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
from src.services.signal_sources import SearchApiSource

logger = logging.getLogger("fetch_intents")


async def run_fetch(config: IntentConfig, api_key: str, dry_run: bool = False) -> IntentRunResult:
    """Run one search pipeline over the whole registry."""
    service = IntentPipelineService(config, dry_run=dry_run)
    source = SearchApiSource(config, api_key=api_key)
    return await service.run_search(source)


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Fetch company hiring-intent signals via web search"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Search, score and aggregate without writing to the database",
    )
    args = parser.parse_args()

    setup_logging(level="DEBUG" if args.verbose else Config.LOG_LEVEL, format=Config.LOG_FORMAT)
    if args.verbose:
        set_global_debug_mode(True)
    logger.debug(Config.summary())

    config = IntentConfig.from_env()
    logger.info("=== Web search intent fetch ===")
    logger.info(f"Department type: {config.department_type}")
    logger.info(f"Query templates: {', '.join(config.search_query_templates)}")

    try:
        Config.validate_for("fetch")
        result = asyncio.run(run_fetch(config, Config.SERPER_API_KEY, dry_run=args.dry_run))
    except (SetupError, ValueError) as e:
        logger.error(f"Setup failed: {e}")
        return 1

    if not result.success:
        logger.error(f"Run failed: {result.error_message}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
