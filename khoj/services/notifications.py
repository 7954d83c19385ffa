# khoj/services/notifications.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from khoj.services.connections import ConnectionRegistry

log = logging.getLogger(__name__)

RECIPIENT_LIMIT = 200

TITLE_NEW_ALERT = "New Alert Posted"
TITLE_DISTRICT_ALERT = "New Alert in Your District"


def build_alert_message(alert: Dict[str, Any]) -> str:
    return f"{alert.get('title', '')} - {alert.get('location', '')}, {alert.get('district', '')}"


def build_alert_notifications(alert: Dict[str, Any], recipient_ids: List[str],
                              now: Optional[datetime] = None,
                              title: str = TITLE_NEW_ALERT) -> List[Dict[str, Any]]:
    now = now or datetime.now(timezone.utc)
    message = build_alert_message(alert)
    out: List[Dict[str, Any]] = []
    for uid in recipient_ids:
        out.append({
            "recipient_id": uid,
            # sort key: unique per recipient, newest last
            "created_at": f"{now.isoformat()}#{uuid.uuid4().hex[:8]}",
            "notification_id": str(uuid.uuid4()),
            "type": "new_alert",
            "title": title,
            "message": message,
            "related_alert": alert.get("alert_id"),
            "is_read": False,
        })
    return out


def _recipient_ids(users: List[Dict[str, Any]], exclude: Optional[str]) -> List[str]:
    seen: List[str] = []
    for u in users:
        uid = u.get("user_id")
        if uid and uid != exclude and uid not in seen:
            seen.append(uid)
    return seen


async def notify_new_alert(store, registry: ConnectionRegistry, alert: Dict[str, Any]) -> int:
    """
    Persist a `new_alert` notification for every citizen and for the police
    of the alert's district (creator excluded), whether or not they are
    connected. Recipients with a live socket also get it pushed.

    Returns how many sockets got the event. Failures are logged; alert
    creation never depends on this.
    """
    alert_id = alert.get("alert_id")
    creator = (alert.get("created_by") or {}).get("user_id")
    try:
        citizens = _recipient_ids(store.list_users(limit=RECIPIENT_LIMIT), creator)
        police = _recipient_ids(
            store.list_police(alert.get("district", ""), limit=RECIPIENT_LIMIT), creator
        )
    except Exception:
        log.exception("Error loading notification recipients for alert %s", alert_id)
        return 0

    now = datetime.now(timezone.utc)
    notifications = build_alert_notifications(alert, citizens, now) + build_alert_notifications(
        alert, police, now, title=TITLE_DISTRICT_ALERT
    )
    if not notifications:
        return 0

    try:
        store.put_notifications(notifications)
    except Exception:
        log.exception("Error storing notifications for alert %s", alert_id)
        return 0
    log.info("Created %d notifications for new alert %s", len(notifications), alert_id)

    delivered = 0
    for n in notifications:
        if registry.is_online(n["recipient_id"]) and await registry.send(n["recipient_id"], "notification", n):
            delivered += 1
    return delivered
