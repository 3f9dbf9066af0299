#!/usr/bin/env python3
"""
Purge errored intent rows.

Deletes company_intents rows with intent_level "none" and signal_count 0
(written for companies whose search failed) so the next fetch run
processes them again, then reports how many rows remain.

Usage:
    python scripts/fix_errored_intents.py
"""

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

logger = logging.getLogger("fix_errored_intents")


def main() -> int:
    setup_logging(level=Config.LOG_LEVEL, format=Config.LOG_FORMAT)

    try:
        Config.validate_for("maintenance")
        result = IntentMaintenanceService().purge_errored_intents()
    except (ValueError, PyMongoError) as e:
        logger.error(f"Purge failed: {e}")
        return 1

    print(f"Deleted {result.deleted} errored intent records (none with 0 signals)")
    print(f"Remaining intent records: {result.remaining}/{result.companies_total} companies")
    return 0


if __name__ == "__main__":
    sys.exit(main())
