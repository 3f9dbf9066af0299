#!/usr/bin/env python3
"""
Print intent data statistics (read-only).

Usage:
    python scripts/check_intent_stats.py
    python scripts/check_intent_stats.py --department it --json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

load_dotenv()

from pymongo.errors import PyMongoError

from src.common.config import Config
from src.common.logger import setup_logging
from src.services.intent_maintenance_service import IntentMaintenanceService

logger = logging.getLogger("check_intent_stats")


def main() -> int:
    parser = argparse.ArgumentParser(description="Show intent data statistics")
    parser.add_argument("--department", help="Limit to one department type")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of text")
    args = parser.parse_args()

    setup_logging(level=Config.LOG_LEVEL, format=Config.LOG_FORMAT)

    try:
        Config.validate_for("maintenance")
        stats = IntentMaintenanceService().collect_stats(args.department)
    except (ValueError, PyMongoError) as e:
        logger.error(f"Stats failed: {e}")
        return 1

    if args.json:
        print(json.dumps(stats.to_dict(), indent=2))
        return 0

    print("=== Intent Data Stats ===")
    print(f"Total companies: {stats.companies_total}")
    print(f"Companies with intent data: {stats.intents_total}")
    print(f"Total signals: {stats.signals_total}")
    print(f"Hot: {stats.by_level.get('hot', 0)}")
    print(f"Middle: {stats.by_level.get('middle', 0)}")
    print(f"Low: {stats.by_level.get('low', 0)}")
    print(f"None: {stats.by_level.get('none', 0)}")
    print(f"None with 0 signals (likely errored): {stats.errored_none}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
