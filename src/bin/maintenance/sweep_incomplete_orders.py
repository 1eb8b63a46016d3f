"""
Cancel pending orders that never got billable items.
Can be run via `python3 -m bin.maintenance.sweep_incomplete_orders [--max-age-minutes N]`
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).resolve().parents[2]))

from tableflow.config import load_config
from tableflow.db import init_engine
from tableflow.logging_config import configure_logging
from tableflow.services.order_service import sweep_incomplete_orders


def main(argv: list[str] | None = None) -> int:
    config = load_config("tableflow-maintenance")
    logger = configure_logging(config.app_name, config.log_level)

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--max-age-minutes",
        type=int,
        default=config.incomplete_order_max_age_minutes,
        help="Only cancel orders started longer ago than this",
    )
    args = parser.parse_args(argv)

    try:
        init_engine(config)
        cancelled = sweep_incomplete_orders(args.max_age_minutes)
    except Exception as e:
        logger.error(f"Error sweeping incomplete orders: {e}")
        return 1

    logger.info(f"Cancelled {len(cancelled)} incomplete order(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
