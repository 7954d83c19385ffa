# khoj/services/statistics.py
"""
Area danger statistics: recompute on writes, and the read-side aggregates
served under /statistics.

`store` is anything exposing the DynamoStore methods used here
(see khoj.db.dynamo.DynamoStore).
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from khoj.config import RECOMPUTE_WORKERS
from khoj.models.area_statistics import AreaStatistics
from khoj.services.danger import (
    DANGER_LEVELS,
    apply_counts,
    calculate_danger,
    current_period,
    round_half_up,
    update_monthly_trends,
)

log = logging.getLogger(__name__)

DANGEROUS_LEVELS = ("high", "critical")
MOST_DANGEROUS_PER_DISTRICT = 5

_executor = ThreadPoolExecutor(max_workers=RECOMPUTE_WORKERS, thread_name_prefix="recompute")


class RecomputePolicy(str, Enum):
    WAIT = "wait"      # run inline, before the response goes out
    DETACH = "detach"  # schedule and continue; the caller never sees the outcome


def recompute_area_statistics(store, district: str, upazila: str,
                              now: Optional[datetime] = None) -> AreaStatistics:
    """
    Recount alerts/reports for the area, rescore it, roll the monthly trend and
    persist the whole document. Creates the document on first use.
    Raises whatever the store raises.
    """
    now = now or datetime.now(timezone.utc)
    total, active, resolved = store.count_area_alerts(district, upazila)
    reports = store.count_area_reports(district, upazila)

    existing = store.get_area_statistics(district, upazila)
    stats = (AreaStatistics.model_validate(existing) if existing
             else AreaStatistics(district=district, upazila=upazila))

    stats.statistics = apply_counts(
        stats.statistics, total=total, active=active, resolved=resolved, reports=reports
    )
    stats.danger_score, stats.danger_level = calculate_danger(total, active, reports)
    stats.last_updated = now

    month, year = current_period(now)
    stats.monthly_trends = update_monthly_trends(
        stats.monthly_trends,
        month,
        year,
        alert_count=total,
        report_count=reports,
        danger_score=stats.danger_score,
    )

    store.put_area_statistics(stats.to_item())
    log.debug("Area %s/%s rescored: %s (%s)", district, upazila, stats.danger_score, stats.danger_level)
    return stats


def _recompute_quietly(store, district: str, upazila: str) -> Optional[AreaStatistics]:
    try:
        return recompute_area_statistics(store, district, upazila)
    except Exception:
        log.exception("Error updating area statistics for %s/%s", district, upazila)
        return None


def refresh_area_statistics(store, district: str, upazila: str,
                            policy: RecomputePolicy = RecomputePolicy.WAIT,
                            background=None) -> Optional[AreaStatistics]:
    """
    Side-effect recompute after an alert/report write. Never raises.

    WAIT returns the new document (None on failure). DETACH returns None right
    away; with a FastAPI BackgroundTasks it runs after the response is sent,
    otherwise on the shared thread pool.
    """
    if not district or not upazila:
        return None
    if policy is RecomputePolicy.WAIT:
        return _recompute_quietly(store, district, upazila)
    if background is not None:
        background.add_task(_recompute_quietly, store, district, upazila)
    else:
        _executor.submit(_recompute_quietly, store, district, upazila)
    return None


def refresh_moved_area(store, old: Tuple[str, str], new: Tuple[str, str],
                       policy: RecomputePolicy = RecomputePolicy.DETACH,
                       background=None) -> None:
    """An edited alert/report may have changed area: rescore the old one, and the new one if different."""
    refresh_area_statistics(store, *old, policy=policy, background=background)
    if tuple(new) != tuple(old):
        refresh_area_statistics(store, *new, policy=policy, background=background)


# ---------- read side ----------
def get_area(store, district: str, upazila: str) -> Dict[str, Any]:
    """Stored document, materialised on first access."""
    item = store.get_area_statistics(district, upazila)
    if item is None:
        return recompute_area_statistics(store, district, upazila).to_item()
    return AreaStatistics.model_validate(item).to_item()


def get_district(store, district: str) -> Dict[str, Any]:
    areas = [AreaStatistics.model_validate(it).to_item()
             for it in store.list_area_statistics(district=district)]

    aggregate: Dict[str, Any] = {
        "totalAlerts": 0,
        "activeAlerts": 0,
        "totalReports": 0,
        "averageDangerScore": 0,
        "mostDangerousAreas": [],
    }
    for area in areas:
        aggregate["totalAlerts"] += area["statistics"]["totalAlerts"]
        aggregate["activeAlerts"] += area["statistics"]["activeAlerts"]
        aggregate["totalReports"] += area["statistics"]["totalReports"]

    if areas:
        aggregate["averageDangerScore"] = round_half_up(
            sum(a["dangerScore"] for a in areas) / len(areas)
        )
        # store already returns them by dangerScore, highest first
        aggregate["mostDangerousAreas"] = [
            {"upazila": a["upazila"], "dangerLevel": a["dangerLevel"], "dangerScore": a["dangerScore"]}
            for a in areas if a["dangerLevel"] != "safe"
        ][:MOST_DANGEROUS_PER_DISTRICT]

    return {"district": district, "areas": areas, "aggregate": aggregate}


def get_dangerous_areas(store, limit: int = 10) -> List[Dict[str, Any]]:
    areas = [it for it in store.list_area_statistics() if it.get("dangerLevel") in DANGEROUS_LEVELS]
    areas.sort(key=lambda it: it.get("dangerScore", 0), reverse=True)
    return [AreaStatistics.model_validate(it).to_item() for it in areas[:limit]]


def get_overall(store) -> Dict[str, Any]:
    total_alerts = store.count_alerts()
    active_alerts = store.count_alerts(status="active")
    total_reports = store.count_reports()
    areas = store.list_area_statistics()

    level_counts = {level: 0 for level in DANGER_LEVELS}
    for it in areas:
        level = it.get("dangerLevel", "safe")
        level_counts[level] = level_counts.get(level, 0) + 1

    return {
        "totalAlerts": total_alerts,
        "activeAlerts": active_alerts,
        # anything not active (resolved or archived)
        "resolvedAlerts": total_alerts - active_alerts,
        "totalReports": total_reports,
        "totalAreas": len(areas),
        "dangerLevelCounts": level_counts,
        "criticalAreas": level_counts["critical"],
        "highDangerAreas": level_counts["high"],
    }


def get_trends(store, district: Optional[str] = None, upazila: Optional[str] = None,
               months: int = 6) -> List[Dict[str, Any]]:
    """
    Merge the last `months` trend entries of every matching area by (year, month).
    Counts are summed, dangerScore averaged. Keys keep first-seen order.
    """
    merged: Dict[str, Dict[str, Any]] = {}
    for it in store.list_area_statistics(district=district, upazila=upazila):
        trends = AreaStatistics.model_validate(it).monthly_trends
        for trend in trends[-months:]:
            key = f"{trend.year}-{trend.month}"
            bucket = merged.setdefault(key, {
                "month": trend.month,
                "year": trend.year,
                "alertCount": 0,
                "reportCount": 0,
                "avgDangerScore": 0,
                "count": 0,
            })
            bucket["alertCount"] += trend.alert_count
            bucket["reportCount"] += trend.report_count
            bucket["avgDangerScore"] += trend.danger_score
            bucket["count"] += 1

    return [
        {**b, "avgDangerScore": round_half_up(b["avgDangerScore"] / b["count"])}
        for b in merged.values()
    ]
