from datetime import datetime

from config.constants import NOTIFICATION_LIST_LIMIT
from utils.errors import NotFoundError
from utils.guards import parse_object_id


async def emit_notification(
    session,
    user_id,
    title: str,
    message: str,
):
    """Durable append, written inside the caller's transaction."""
    return await session.insert_notification({
        "user_id": user_id,
        "title": title,
        "message": message,
        "is_read": False,
        "created_at": datetime.utcnow(),
    })


async def list_notifications(store, user_id, limit: int = NOTIFICATION_LIST_LIMIT):
    user_oid = parse_object_id(user_id, "user id")
    async with store.session() as session:
        return await session.list_notifications(user_oid, limit)


async def get_notification(store, notification_id) -> dict:
    notification_oid = parse_object_id(notification_id, "notification id")
    async with store.session() as session:
        notification = await session.get_notification(notification_oid)
    if not notification:
        raise NotFoundError("Notification", notification_oid)
    return notification


async def mark_notification_read(store, notification_id):
    notification_oid = parse_object_id(notification_id, "notification id")
    async with store.transaction() as session:
        if not await session.mark_notification_read(notification_oid):
            raise NotFoundError("Notification", notification_oid)
