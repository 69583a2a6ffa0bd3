from fastapi import APIRouter, Depends

from database import get_store
from utils.notifications import get_notification, list_notifications, mark_notification_read
from utils.security import assert_self_or_admin, get_current_user
from utils.serializers import serialize_docs

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/{user_id}")
async def get_user_notifications(
    user_id: str,
    user=Depends(get_current_user),
    store=Depends(get_store),
):
    assert_self_or_admin(user, user_id)
    rows = await list_notifications(store, user_id)
    return {"success": True, "count": len(rows), "notifications": serialize_docs(rows)}


@router.patch("/{notification_id}/read")
async def read_notification(
    notification_id: str,
    user=Depends(get_current_user),
    store=Depends(get_store),
):
    notification = await get_notification(store, notification_id)
    assert_self_or_admin(user, notification["user_id"])
    await mark_notification_read(store, notification_id)
    return {"success": True}
