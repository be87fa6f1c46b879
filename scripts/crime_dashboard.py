"""
Crime Dashboard Script
Loads one dashboard view for a configured dataset and prints the result as JSON
"""

from __future__ import annotations

import argparse
import json
import logging

from crime_pulse.session import DashboardSession, ViewMode
from crime_pulse.shared.config import get_config
from crime_pulse.shared.logging_utils import configure_logging

logger = logging.getLogger(__name__)


def main() -> int:
    config = get_config()
    configure_logging(config)

    parser = argparse.ArgumentParser(description="Load a crime dashboard view.")
    parser.add_argument(
        "--dataset",
        default=config.default_dataset,
        choices=config.datasets,
        help="Dataset id to query.",
    )
    parser.add_argument(
        "--view",
        default=ViewMode.STATS.value,
        choices=[mode.value for mode in ViewMode],
        help="View to load.",
    )
    parser.add_argument("--token", default=None, help="Optional app token for the dataset.")
    parser.add_argument("--search", default="", help="Row view search text.")
    parser.add_argument("--limit", default=None, help="Row view limit.")
    parser.add_argument("--csv", default=None, help="Write the loaded rows to this CSV file.")
    args = parser.parse_args()

    session = DashboardSession(config)
    session.select_dataset(args.dataset)
    session.set_token(args.dataset, args.token)
    session.filter_rows(search=args.search, limit=args.limit)

    result = session.load(args.view)
    logger.info(result.status)
    print(json.dumps(result.to_dict(), indent=2, default=str))
    if args.csv and not result.is_error and result.view == ViewMode.ROWS:
        session.export_rows(args.csv)
    return 1 if result.is_error else 0


if __name__ == "__main__":
    raise SystemExit(main())
