# khoj/routes/alerts.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query

from khoj.db.dynamo import area_key
from khoj.deps import CurrentUser, registry_dep, require_user, store_dep
from khoj.models.alert import ALERT_STATUSES, AlertDetailsUpdate, AlertIn, AlertStatusUpdate
from khoj.services.notifications import notify_new_alert
from khoj.services.statistics import RecomputePolicy, refresh_area_statistics, refresh_moved_area

router = APIRouter(prefix="/alerts", tags=["alerts"])

_NOT_OWNED = "Alert not found or you do not have permission to {}"


def _owned_alert(store, alert_id: str, user: CurrentUser, action: str) -> dict:
    alert = store.get_alert(alert_id)
    if not alert or (alert.get("created_by") or {}).get("user_id") != user.user_id:
        raise HTTPException(status_code=404, detail=_NOT_OWNED.format(action))
    return alert


@router.get("")
def list_alerts(status: Optional[str] = Query(None, description="active|resolved|archived|all"),
                store=Depends(store_dep)):
    if status == "all":
        status = None
    return {"success": True, "data": store.list_alerts(status=status)}


@router.get("/{alert_id}")
def get_alert(alert_id: str, store=Depends(store_dep)):
    alert = store.get_alert(alert_id)
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    return {"success": True, "data": alert}


@router.post("", status_code=201)
def create_alert(
    data: AlertIn,
    background: BackgroundTasks,
    user: CurrentUser = Depends(require_user),
    store=Depends(store_dep),
    registry=Depends(registry_dep),
):
    now_iso = datetime.now(timezone.utc).isoformat()
    alert = {
        "alert_id": str(uuid.uuid4()),
        "title": data.title,
        "description": data.description,
        "district": data.district,
        "upazila": data.upazila,
        "area_key": area_key(data.district, data.upazila),
        "location": data.location,
        "contact_info": data.contact_info,
        "status": "active",
        "created_by": {"user_id": user.user_id, "user_type": user.user_type},
        "media": [m.model_dump() for m in data.media],
        "created_at": now_iso,
        "updated_at": now_iso,
    }
    if data.geo:
        alert["geo"] = data.geo.model_dump()

    store.put_alert(alert)

    # both run after the response is sent
    refresh_area_statistics(store, data.district, data.upazila, RecomputePolicy.DETACH, background)
    background.add_task(notify_new_alert, store, registry, alert)

    return {
        "success": True,
        "message": "Alert created successfully",
        "alert_id": alert["alert_id"],
        "data": alert,
    }


@router.put("/{alert_id}")
def update_alert_status(
    alert_id: str,
    body: AlertStatusUpdate,
    user: CurrentUser = Depends(require_user),
    store=Depends(store_dep),
):
    """Owner only. The area is rescored before responding."""
    if body.status not in ALERT_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status. Must be: active, resolved, or archived")

    alert = _owned_alert(store, alert_id, user, "update it")
    alert["status"] = body.status
    alert["updated_at"] = datetime.now(timezone.utc).isoformat()
    store.put_alert(alert)

    refresh_area_statistics(store, alert["district"], alert["upazila"], RecomputePolicy.WAIT)

    return {"success": True, "message": "Alert status updated successfully", "data": alert}


@router.put("/{alert_id}/details")
def update_alert_details(
    alert_id: str,
    body: AlertDetailsUpdate,
    background: BackgroundTasks,
    user: CurrentUser = Depends(require_user),
    store=Depends(store_dep),
):
    """Owner only. Moving the alert rescores both areas after the response."""
    alert = _owned_alert(store, alert_id, user, "update it")
    old_area = (alert["district"], alert["upazila"])

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    alert.update(changes)
    alert["area_key"] = area_key(alert["district"], alert["upazila"])
    alert["updated_at"] = datetime.now(timezone.utc).isoformat()
    store.put_alert(alert)

    refresh_moved_area(store, old_area, (alert["district"], alert["upazila"]),
                       RecomputePolicy.DETACH, background)

    return {"success": True, "message": "Alert details updated successfully", "data": alert}


@router.delete("/{alert_id}")
def delete_alert(
    alert_id: str,
    background: BackgroundTasks,
    user: CurrentUser = Depends(require_user),
    store=Depends(store_dep),
):
    alert = _owned_alert(store, alert_id, user, "delete it")
    store.delete_alert(alert_id)
    refresh_area_statistics(store, alert["district"], alert["upazila"], RecomputePolicy.DETACH, background)
    return {"success": True, "message": "Alert deleted successfully"}
