"""
Notification inbox - read side of the records written by the dispatcher.
"""

from typing import List
import logging

from fillahole.core.context import AppContext
from fillahole.models.notification import NotificationRecord
from fillahole.services.notification_dispatcher import NOTIFICATIONS_COLLECTION
from fillahole.utils.firestore_helpers import parse_timestamp, snapshot_to_dict, where_filter

logger = logging.getLogger(__name__)


class NotificationNotFoundError(LookupError):
    pass


def list_notifications(ctx: AppContext, user_id: str, limit: int = 50) -> List[NotificationRecord]:
    query = where_filter(ctx.db.collection(NOTIFICATIONS_COLLECTION), "user_id", "==", user_id)
    records = []
    for doc in query.stream():
        data = snapshot_to_dict(doc)
        data["created_at"] = parse_timestamp(data.get("created_at"))
        records.append(NotificationRecord(**data))

    # Sorted in memory to avoid a composite (user_id, created_at) index
    records.sort(key=lambda r: r.created_at.timestamp() if r.created_at else 0, reverse=True)
    return records[:limit]


def mark_read(ctx: AppContext, notification_id: str, user_id: str) -> NotificationRecord:
    """Flip is_read; only the recipient may do so. Other users get not-found."""
    ref = ctx.db.collection(NOTIFICATIONS_COLLECTION).document(notification_id)
    doc = ref.get()
    if not doc.exists or (doc.to_dict() or {}).get("user_id") != user_id:
        raise NotificationNotFoundError(notification_id)

    ref.update({"is_read": True})
    data = snapshot_to_dict(ref.get())
    data["created_at"] = parse_timestamp(data.get("created_at"))
    logger.info(f"Notification {notification_id} marked read by {user_id}")
    return NotificationRecord(**data)
