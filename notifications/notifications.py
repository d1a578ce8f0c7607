# notifications/notifications.py

from fastapi import APIRouter, Depends
from typing import List

from auth.dependencies import Actor, get_current_actor
from database.connection import get_database
from database.documents import serialize, to_object_id
from errors import NotFoundError
from models.enums import NotificationChannel
from models.notification import NotificationResponse

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("/", response_model=List[NotificationResponse])
async def get_my_notifications(
    limit: int = 20, actor: Actor = Depends(get_current_actor), db=Depends(get_database)
):
    """Fetches the in-app notifications of the authenticated actor, newest first."""
    limit = max(1, min(limit, 100))
    cursor = db["notifications"].find(
        {"recipient_id": actor.id, "channel": NotificationChannel.IN_APP.value}
    ).sort("created_at", -1).limit(limit)
    notifications = await cursor.to_list(length=limit)
    return [serialize(n) for n in notifications]


@router.post("/{notification_id}/mark-as-read")
async def mark_notification_as_read(
    notification_id: str, actor: Actor = Depends(get_current_actor), db=Depends(get_database)
):
    result = await db["notifications"].update_one(
        {
            "_id": to_object_id(notification_id, "notification ID"),
            "recipient_id": actor.id,  # Users can only update their own notifications
        },
        {"$set": {"read": True}},
    )
    if result.matched_count == 0:
        raise NotFoundError("Notification not found or you don't have permission to update it.")
    return {"message": "Notification marked as read."}
