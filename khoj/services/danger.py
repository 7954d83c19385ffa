# khoj/services/danger.py
"""
Danger scoring for an area (district, upazila).

The weights and thresholds are shared with the existing frontend and seed data,
so they must stay exactly as they are.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from khoj.config import TREND_HISTORY_MONTHS
from khoj.models.area_statistics import AreaCounters, DangerLevel, TrendEntry

SCORE_CAP = 100

# Lower bound (inclusive) of each level, highest first
LEVEL_THRESHOLDS: Tuple[Tuple[int, DangerLevel], ...] = (
    (75, "critical"),
    (50, "high"),
    (30, "moderate"),
    (10, "low"),
)
DANGER_LEVELS: Tuple[DangerLevel, ...] = ("safe", "low", "moderate", "high", "critical")


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (built-in round() is banker's)."""
    return int(math.floor(value + 0.5))


def raw_score(total_alerts: int, active_alerts: int, total_reports: int) -> float:
    # active alerts 40%, all alerts 30%, reports 30%
    return (
        active_alerts * 10 * 0.4
        + total_alerts * 2 * 0.3
        + total_reports * 1.5 * 0.3
    )


def danger_level(score: int) -> DangerLevel:
    for lower, level in LEVEL_THRESHOLDS:
        if score >= lower:
            return level
    return "safe"


def calculate_danger(total_alerts: int, active_alerts: int, total_reports: int) -> Tuple[int, DangerLevel]:
    """
    Return (dangerScore 0..100, dangerLevel). Pure; the caller assigns and saves.
    """
    score = min(round_half_up(raw_score(total_alerts, active_alerts, total_reports)), SCORE_CAP)
    score = max(score, 0)
    return score, danger_level(score)


def current_period(now: Optional[datetime] = None) -> Tuple[str, int]:
    """(long month name, 4-digit year) for the trend entry of `now`."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%B"), now.year


def update_monthly_trends(
    trends: List[TrendEntry],
    month: str,
    year: int,
    *,
    alert_count: int,
    report_count: int,
    danger_score: int,
    cap: int = TREND_HISTORY_MONTHS,
) -> List[TrendEntry]:
    """
    Overwrite the (month, year) entry in place, or append a new one at the end.
    Entries are kept in append order, never re-sorted; oldest are dropped past `cap`.
    """
    out = list(trends)
    for i, entry in enumerate(out):
        if entry.month == month and entry.year == year:
            out[i] = TrendEntry(
                month=month,
                year=year,
                alert_count=alert_count,
                report_count=report_count,
                danger_score=danger_score,
            )
            break
    else:
        out.append(TrendEntry(
            month=month,
            year=year,
            alert_count=alert_count,
            report_count=report_count,
            danger_score=danger_score,
        ))

    if len(out) > cap:
        out = out[-cap:]
    return out


def estimate_incident_breakdown(total_alerts: int, total_reports: int) -> dict:
    """
    Fixed-ratio split of the totals into incident categories.
    Only applied when seeding/backfilling; it is not a real categorisation.
    """
    return {
        "missing_persons": int(total_alerts * 0.4),
        "theft_incidents": int(total_reports * 0.3),
        "violence_incidents": int(total_reports * 0.2),
        "other_incidents": int(total_reports * 0.5),
    }


def apply_counts(counters: AreaCounters, *, total: int, active: int, resolved: int, reports: int) -> AreaCounters:
    # category counters are carried over untouched
    return counters.model_copy(update={
        "total_alerts": total,
        "active_alerts": active,
        "resolved_alerts": resolved,
        "total_reports": reports,
    })
