# khoj/models/area_statistics.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DangerLevel = Literal["safe", "low", "moderate", "high", "critical"]


class _CamelModel(BaseModel):
    # Stored items and API payloads use the camelCase names (totalAlerts, dangerScore, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AreaCounters(_CamelModel):
    total_alerts: int = Field(0, ge=0)
    active_alerts: int = Field(0, ge=0)
    resolved_alerts: int = Field(0, ge=0)
    total_reports: int = Field(0, ge=0)
    # Seeded from fixed ratios of the totals; recompute leaves them alone
    missing_persons: int = Field(0, ge=0)
    theft_incidents: int = Field(0, ge=0)
    violence_incidents: int = Field(0, ge=0)
    other_incidents: int = Field(0, ge=0)


class TrendEntry(_CamelModel):
    month: str = Field(..., description="Long month name, e.g. 'October'")
    year: int
    alert_count: int = 0
    report_count: int = 0
    danger_score: int = 0


class AreaStatistics(_CamelModel):
    """
    One document per (district, upazila). dangerScore/dangerLevel are derived
    by services.danger and are never set directly by API callers.
    """
    district: str
    upazila: str
    location: str | None = None
    statistics: AreaCounters = Field(default_factory=AreaCounters)
    danger_score: int = Field(0, ge=0, le=100)
    danger_level: DangerLevel = "safe"
    monthly_trends: List[TrendEntry] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_item(self) -> dict:
        """Serialise for DynamoDB / JSON responses (camelCase, ISO timestamps)."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class AreaRef(BaseModel):
    district: str | None = None
    upazila: str | None = None
