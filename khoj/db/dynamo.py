# khoj/db/dynamo.py
from __future__ import annotations

import logging
from decimal import Decimal
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Tuple

import boto3
from boto3.dynamodb.conditions import Attr, Key

from khoj.config import (
    ALERTS_TABLE,
    AREA_INDEX,
    AREA_STATISTICS_TABLE,
    NOTIFICATIONS_TABLE,
    REGION,
    REPORTS_TABLE,
    USERS_TABLE,
)

log = logging.getLogger(__name__)


def area_key(district: str, upazila: str) -> str:
    """GSI partition value shared by Alerts and Reports."""
    return f"{district}#{upazila}"


def from_dynamo(value: Any) -> Any:
    """
    boto3 hands numbers back as Decimal. Convert recursively so items
    can go straight into pydantic / JSON.
    """
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value


def to_dynamo(value: Any) -> Any:
    """Floats are not accepted by boto3; store them as Decimal(str(x))."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_dynamo(v) for v in value]
    return value


def _paginate(call, **kwargs) -> Iterable[Dict[str, Any]]:
    """Yield every page of a query/scan, following LastEvaluatedKey."""
    lek: Optional[Dict[str, Any]] = None
    while True:
        if lek:
            kwargs["ExclusiveStartKey"] = lek
        resp = call(**kwargs)
        yield resp
        lek = resp.get("LastEvaluatedKey")
        if not lek:
            break


def _all_items(call, **kwargs) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    for page in _paginate(call, **kwargs):
        items.extend(page.get("Items", []))
    return [from_dynamo(it) for it in items]


def _count(call, **kwargs) -> int:
    return sum(int(page.get("Count", 0)) for page in _paginate(call, Select="COUNT", **kwargs))


class DynamoStore:
    """
    The only component that talks to DynamoDB.

    Tables:
      - Alerts            PK alert_id,   GSI `area_key`
      - Reports           PK report_id,  GSI `area_key`
      - AreaStatistics    PK district,   SK upazila
      - Notifications     PK recipient_id, SK created_at
      - Users             PK user_id (read only: notification recipients)
    """

    def __init__(self, alerts_table, reports_table, area_statistics_table, notifications_table,
                 users_table, *, area_index: str = AREA_INDEX):
        self.alerts = alerts_table
        self.reports = reports_table
        self.area_statistics = area_statistics_table
        self.notifications = notifications_table
        self.users = users_table
        self.area_index = area_index

    # ---------- counts ----------
    def count_area_alerts(self, district: str, upazila: str) -> Tuple[int, int, int]:
        """(total, active, resolved) alerts for an area from one GSI query."""
        total = active = resolved = 0
        for page in _paginate(
            self.alerts.query,
            IndexName=self.area_index,
            KeyConditionExpression=Key("area_key").eq(area_key(district, upazila)),
            ProjectionExpression="#s",
            ExpressionAttributeNames={"#s": "status"},  # reserved word
        ):
            for it in page.get("Items", []):
                total += 1
                status = it.get("status")
                if status == "active":
                    active += 1
                elif status == "resolved":
                    resolved += 1
        return total, active, resolved

    def count_area_reports(self, district: str, upazila: str) -> int:
        return _count(
            self.reports.query,
            IndexName=self.area_index,
            KeyConditionExpression=Key("area_key").eq(area_key(district, upazila)),
        )

    def count_alerts(self, status: Optional[str] = None) -> int:
        kwargs: Dict[str, Any] = {}
        if status:
            kwargs["FilterExpression"] = Attr("status").eq(status)
        return _count(self.alerts.scan, **kwargs)

    def count_reports(self) -> int:
        return _count(self.reports.scan)

    # ---------- area statistics ----------
    def get_area_statistics(self, district: str, upazila: str) -> Optional[Dict[str, Any]]:
        resp = self.area_statistics.get_item(Key={"district": district, "upazila": upazila})
        item = resp.get("Item")
        return from_dynamo(item) if item else None

    def put_area_statistics(self, item: Dict[str, Any]) -> None:
        """Whole-document replace (last write wins)."""
        self.area_statistics.put_item(Item=to_dynamo(item))

    def list_area_statistics(self, district: Optional[str] = None,
                             upazila: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Area documents, optionally narrowed to a district / upazila.
        Sorted by dangerScore descending.
        """
        if district:
            cond = Key("district").eq(district)
            if upazila:
                cond = cond & Key("upazila").eq(upazila)
            items = _all_items(self.area_statistics.query, KeyConditionExpression=cond)
        elif upazila:
            items = _all_items(self.area_statistics.scan, FilterExpression=Attr("upazila").eq(upazila))
        else:
            items = _all_items(self.area_statistics.scan)
        items.sort(key=lambda it: it.get("dangerScore", 0), reverse=True)
        return items

    # ---------- alerts ----------
    def put_alert(self, item: Dict[str, Any]) -> None:
        self.alerts.put_item(Item=to_dynamo(item))

    def get_alert(self, alert_id: str) -> Optional[Dict[str, Any]]:
        item = self.alerts.get_item(Key={"alert_id": alert_id}).get("Item")
        return from_dynamo(item) if item else None

    def delete_alert(self, alert_id: str) -> None:
        self.alerts.delete_item(Key={"alert_id": alert_id})

    def list_alerts(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        kwargs: Dict[str, Any] = {}
        if status:
            kwargs["FilterExpression"] = Attr("status").eq(status)
        items = _all_items(self.alerts.scan, **kwargs)
        items.sort(key=lambda it: it.get("created_at", ""), reverse=True)
        return items

    # ---------- reports ----------
    def put_report(self, item: Dict[str, Any]) -> None:
        self.reports.put_item(Item=to_dynamo(item))

    def get_report(self, report_id: str) -> Optional[Dict[str, Any]]:
        item = self.reports.get_item(Key={"report_id": report_id}).get("Item")
        return from_dynamo(item) if item else None

    def delete_report(self, report_id: str) -> None:
        self.reports.delete_item(Key={"report_id": report_id})

    def list_reports(self) -> List[Dict[str, Any]]:
        items = _all_items(self.reports.scan)
        items.sort(key=lambda it: it.get("created_at", ""), reverse=True)
        return items

    # ---------- users ----------
    def list_users(self, limit: int = 200) -> List[Dict[str, Any]]:
        """Citizens (user_type == citizen), at most `limit`."""
        items = _all_items(
            self.users.scan,
            FilterExpression=Attr("user_type").eq("citizen"),
            ProjectionExpression="user_id, user_type, district",
        )
        return items[:limit]

    def list_police(self, district: str, limit: int = 200) -> List[Dict[str, Any]]:
        """Police officers posted to `district`."""
        items = _all_items(
            self.users.scan,
            FilterExpression=Attr("user_type").eq("police") & Attr("district").eq(district),
            ProjectionExpression="user_id, user_type, district",
        )
        return items[:limit]

    # ---------- notifications ----------
    def put_notifications(self, items: List[Dict[str, Any]]) -> int:
        with self.notifications.batch_writer() as batch:
            for it in items:
                batch.put_item(Item=to_dynamo(it))
        return len(items)

    def list_notifications(self, user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        resp = self.notifications.query(
            KeyConditionExpression=Key("recipient_id").eq(user_id),
            Limit=limit,
            ScanIndexForward=False,  # newest first
        )
        return [from_dynamo(it) for it in resp.get("Items", [])]

    def mark_notification_read(self, user_id: str, notification_id: str) -> bool:
        """Return False when the user has no such notification."""
        items = _all_items(
            self.notifications.query,
            KeyConditionExpression=Key("recipient_id").eq(user_id),
            FilterExpression=Attr("notification_id").eq(notification_id),
        )
        if not items:
            return False
        self.notifications.update_item(
            Key={"recipient_id": user_id, "created_at": items[0]["created_at"]},
            UpdateExpression="SET is_read = :r",
            ExpressionAttributeValues={":r": True},
        )
        return True


@lru_cache(maxsize=1)
def get_store() -> DynamoStore:
    """Process-wide store over the configured tables (FastAPI dependency)."""
    dynamodb = boto3.resource("dynamodb", region_name=REGION)
    log.info("DynamoDB store bound to region %s", REGION)
    return DynamoStore(
        dynamodb.Table(ALERTS_TABLE),
        dynamodb.Table(REPORTS_TABLE),
        dynamodb.Table(AREA_STATISTICS_TABLE),
        dynamodb.Table(NOTIFICATIONS_TABLE),
        dynamodb.Table(USERS_TABLE),
    )
