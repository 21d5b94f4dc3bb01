#!/usr/bin/env python3
"""
Rebuild Rating Aggregates

Recomputes rating_aggregates for every bike from the raw review scores.
Run it after restoring a backup, importing reviews directly into the
database, or any manual fix to review_ratings.

USAGE:
    python scripts/recompute_aggregates.py
"""

import logging
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from rottenbikes.database import SessionLocal
from rottenbikes.services.ratings import recompute_all_aggregates

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> int:
    db = SessionLocal()
    try:
        count = recompute_all_aggregates(db)
    except Exception as e:
        logger.error(f"Recompute failed: {e}")
        return 1
    finally:
        db.close()

    logger.info(f"Done: {count} bikes recomputed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
