# khoj/routes/notifications.py
from fastapi import APIRouter, Depends, HTTPException, Query

from khoj.deps import CurrentUser, require_user, store_dep

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
def my_notifications(
    limit: int = Query(20, ge=1, le=100),
    user: CurrentUser = Depends(require_user),
    store=Depends(store_dep),
):
    return {"success": True, "data": store.list_notifications(user.user_id, limit=limit)}


@router.put("/{notification_id}/read")
def mark_read(notification_id: str, user: CurrentUser = Depends(require_user), store=Depends(store_dep)):
    if not store.mark_notification_read(user.user_id, notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"success": True, "message": "Notification marked as read"}
