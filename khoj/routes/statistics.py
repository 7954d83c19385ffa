# khoj/routes/statistics.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from khoj.deps import store_dep
from khoj.models.area_statistics import AreaRef
from khoj.services import statistics as stats_service

router = APIRouter(prefix="/statistics", tags=["statistics"])

_AREA_REQUIRED = "District and upazila are required"


@router.get("/area")
def area_statistics(
    district: Optional[str] = Query(None),
    upazila: Optional[str] = Query(None),
    store=Depends(store_dep),
):
    """Statistics for one area; created on first access."""
    if not district or not upazila:
        raise HTTPException(status_code=400, detail=_AREA_REQUIRED)
    return {"success": True, "data": stats_service.get_area(store, district, upazila)}


@router.get("/district/{district}")
def district_statistics(district: str, store=Depends(store_dep)):
    return {"success": True, "data": stats_service.get_district(store, district)}


@router.get("/dangerous-areas")
def dangerous_areas(
    limit: int = Query(10, ge=1, le=500, description="Maximum number of areas"),
    store=Depends(store_dep),
):
    """Areas at `high` or `critical`, most dangerous first."""
    return {"success": True, "data": stats_service.get_dangerous_areas(store, limit=limit)}


@router.get("/overall")
def overall_statistics(store=Depends(store_dep)):
    return {"success": True, "data": stats_service.get_overall(store)}


@router.get("/trends")
def trends(
    district: Optional[str] = Query(None),
    upazila: Optional[str] = Query(None),
    months: int = Query(6, ge=1, description="Trend entries per area to merge (at most the stored history)"),
    store=Depends(store_dep),
):
    return {
        "success": True,
        "data": stats_service.get_trends(store, district=district, upazila=upazila, months=months),
    }


@router.post("/update")
def update_area_statistics(body: AreaRef = Body(...), store=Depends(store_dep)):
    """System use: recompute one area now. Store errors surface as 500."""
    if not body.district or not body.upazila:
        raise HTTPException(status_code=400, detail=_AREA_REQUIRED)
    stats = stats_service.recompute_area_statistics(store, body.district, body.upazila)
    return {"success": True, "data": stats.to_item()}
