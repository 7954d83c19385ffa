# khoj/scripts/backfill_statistics.py
"""
Recompute statistics for every area that has alerts or reports.

    python -m khoj.scripts.backfill_statistics [--seed-breakdown] [--dry-run]
"""
import argparse
import logging
import random
import time

from botocore.exceptions import ClientError

from khoj.db.dynamo import get_store
from khoj.models.area_statistics import AreaStatistics
from khoj.services.danger import estimate_incident_breakdown
from khoj.services.statistics import recompute_area_statistics

log = logging.getLogger(__name__)

MAX_RETRIES = 5
_THROTTLED = ("ProvisionedThroughputExceededException", "ThrottlingException")


def _sleep_backoff(attempt: int):
    # capped exponential backoff + jitter
    base = min(1.0 * (2 ** attempt), 8.0)
    time.sleep(base * (0.5 + random.random() * 0.5))


def _recompute_with_retry(store, district: str, upazila: str) -> AreaStatistics:
    for attempt in range(MAX_RETRIES):
        try:
            return recompute_area_statistics(store, district, upazila)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") not in _THROTTLED:
                raise
            _sleep_backoff(attempt)
    # last try
    return recompute_area_statistics(store, district, upazila)


def collect_areas(store) -> list:
    areas = set()
    for item in store.list_alerts() + store.list_reports():
        if item.get("district") and item.get("upazila"):
            areas.add((item["district"], item["upazila"]))
    return sorted(areas)


def seed_breakdown(store, stats: AreaStatistics) -> AreaStatistics:
    """Fill the category counters from fixed ratios of the fresh totals."""
    counters = stats.statistics
    stats.statistics = counters.model_copy(update=estimate_incident_breakdown(
        counters.total_alerts, counters.total_reports
    ))
    store.put_area_statistics(stats.to_item())
    return stats


def backfill(store, *, seed: bool = False, dry_run: bool = False) -> int:
    updated = 0
    for district, upazila in collect_areas(store):
        if dry_run:
            log.info("Would recompute %s/%s", district, upazila)
            continue
        stats = _recompute_with_retry(store, district, upazila)
        if seed:
            seed_breakdown(store, stats)
        updated += 1
    return updated


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--seed-breakdown", action="store_true",
                        help="also set incident category counters from the totals")
    parser.add_argument("--dry-run", action="store_true", help="only list the areas")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    updated = backfill(get_store(), seed=args.seed_breakdown, dry_run=args.dry_run)
    log.info("Updated statistics for %d areas.", updated)
    return updated


if __name__ == "__main__":
    main()
