# khoj/routes/reports.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from khoj.db.dynamo import area_key
from khoj.deps import CurrentUser, optional_user, require_user, store_dep
from khoj.models.report import ReportIn, ReportUpdate
from khoj.services.statistics import RecomputePolicy, refresh_area_statistics, refresh_moved_area

router = APIRouter(prefix="/reports", tags=["reports"])


def _owned_report(store, report_id: str, user: CurrentUser, action: str) -> dict:
    report = store.get_report(report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    owner = (report.get("created_by") or {}).get("user_id")
    if not owner:
        raise HTTPException(status_code=403, detail=f"Anonymous reports cannot be {action}d")
    if owner != user.user_id:
        raise HTTPException(status_code=403, detail=f"You do not have permission to {action} this report")
    return report


@router.get("")
def list_reports(store=Depends(store_dep)):
    return {"success": True, "data": store.list_reports()}


@router.get("/{report_id}")
def get_report(report_id: str, store=Depends(store_dep)):
    report = store.get_report(report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return {"success": True, "data": report}


@router.post("", status_code=201)
def create_report(
    data: ReportIn,
    background: BackgroundTasks,
    user: Optional[CurrentUser] = Depends(optional_user),
    store=Depends(store_dep),
):
    """Anonymous reports are allowed; they can never be edited or deleted."""
    now_iso = datetime.now(timezone.utc).isoformat()
    report = {
        "report_id": str(uuid.uuid4()),
        "title": data.title,
        "description": data.description,
        "location": data.location,
        "district": data.district,
        "upazila": data.upazila,
        "area_key": area_key(data.district, data.upazila),
        "media": [m.model_dump(exclude_none=True) for m in data.media],
        "geo": [g.model_dump() for g in data.geo],
        "created_at": now_iso,
        "updated_at": now_iso,
    }
    if user:
        report["created_by"] = {"user_id": user.user_id, "user_type": user.user_type}

    store.put_report(report)
    refresh_area_statistics(store, data.district, data.upazila, RecomputePolicy.DETACH, background)

    return {"success": True, "message": "Report created successfully", "data": report}


@router.put("/{report_id}")
def update_report(
    report_id: str,
    body: ReportUpdate,
    background: BackgroundTasks,
    user: CurrentUser = Depends(require_user),
    store=Depends(store_dep),
):
    report = _owned_report(store, report_id, user, "update")
    old_area = (report["district"], report["upazila"])

    report.update(body.model_dump(exclude_unset=True, exclude_none=True))
    report["area_key"] = area_key(report["district"], report["upazila"])
    report["updated_at"] = datetime.now(timezone.utc).isoformat()
    store.put_report(report)

    refresh_moved_area(store, old_area, (report["district"], report["upazila"]),
                       RecomputePolicy.DETACH, background)

    return {"success": True, "message": "Report updated successfully", "data": report}


@router.delete("/{report_id}")
def delete_report(
    report_id: str,
    background: BackgroundTasks,
    user: CurrentUser = Depends(require_user),
    store=Depends(store_dep),
):
    report = _owned_report(store, report_id, user, "delete")
    store.delete_report(report_id)
    refresh_area_statistics(store, report["district"], report["upazila"], RecomputePolicy.DETACH, background)
    return {"success": True, "message": "Report deleted successfully"}
