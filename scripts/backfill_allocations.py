"""Fill in allocated_hours / allocated_percentage for rows that carry only one.

Run once after migrating data from the hours-only schema. Safe to re-run:
complete rows are never selected.
"""
from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.resource_allocation.resource_allocation.common.logging_config import setup_logging
from src.resource_allocation.resource_allocation.container import build_container

logger = logging.getLogger("backfill_allocations")


def main() -> int:
    settings = importlib.import_module(get_settings_module())
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    container = build_container(db_config=dict(settings.DB_CONFIG))
    report = container.allocation_service.backfill_amounts()
    logger.info("updated=%s skipped=%s errors=%s", report.updated, report.skipped, report.errors)
    return 1 if report.errors else 0


if __name__ == "__main__":
    sys.exit(main())
