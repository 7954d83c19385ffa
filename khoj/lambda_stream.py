# khoj/lambda_stream.py
"""
DynamoDB Streams handler for the Alerts and Reports tables.

Any write lands here, so areas stay scored even when the row was changed
outside the API (admin console, scripts).
"""
import logging

from khoj.db.dynamo import get_store
from khoj.services.statistics import RecomputePolicy, refresh_area_statistics

log = logging.getLogger(__name__)


def _area_from_image(image: dict):
    district = (image.get("district") or {}).get("S")
    upazila = (image.get("upazila") or {}).get("S")
    if district and upazila:
        return district, upazila
    return None


def touched_areas(event: dict) -> set:
    touched = set()
    for rec in event.get("Records", []):
        if rec.get("eventSource") != "aws:dynamodb":
            continue
        # INSERT/MODIFY => NewImage; REMOVE => OldImage
        ddb = rec.get("dynamodb", {}) or {}
        for image in (ddb.get("NewImage"), ddb.get("OldImage")):
            area = _area_from_image(image or {})
            if area:
                touched.add(area)
    return touched


def handler(event, context, store=None):
    store = store or get_store()
    updated = 0
    # Recompute each area from current data (idempotent)
    for district, upazila in sorted(touched_areas(event)):
        if refresh_area_statistics(store, district, upazila, RecomputePolicy.WAIT) is not None:
            updated += 1
    log.info("Stream batch: %d areas recalculated", updated)
    return {"areas_recalculated": updated}
