"""Outgoing notifications.

Every notification is stored for the in-app feed. Email and WhatsApp copies
are recorded as queued for the delivery integrations, which live outside
this service. Nothing here raises: a failed notification must never undo the
state change that triggered it.
"""

import logging
from datetime import datetime
from typing import Iterable

from bson import ObjectId

from models.enums import NotificationChannel

logger = logging.getLogger(__name__)


class NotificationService:
    @staticmethod
    async def notify(
        db,
        recipient_id: str,
        title: str,
        message: str,
        notification_type: str = "pickup",
        channels: Iterable[NotificationChannel] = (NotificationChannel.IN_APP,),
    ) -> None:
        now = datetime.utcnow()
        channels = [NotificationChannel(channel) for channel in channels]
        docs = [
            {
                "recipient_id": recipient_id,
                "title": title,
                "message": message,
                "notification_type": notification_type,
                "channel": channel.value,
                "delivery_status": "delivered" if channel is NotificationChannel.IN_APP else "queued",
                "read": False,
                "created_at": now,
            }
            for channel in channels
        ]
        try:
            await db["notifications"].insert_many(docs)
        except Exception as e:
            logger.error(f"Failed to store {notification_type} notification for {recipient_id}: {e}", exc_info=True)
            return
        for doc in docs:
            if doc["channel"] != NotificationChannel.IN_APP.value:
                logger.info(f"Queued {doc['channel']} {notification_type} notification for {recipient_id}")

    @staticmethod
    async def notify_user(db, user_id: str, title: str, message: str, notification_type: str = "pickup") -> None:
        """Notify a user on the channels their preferences allow."""
        channels = [NotificationChannel.IN_APP]
        try:
            user = await db["users"].find_one({"_id": ObjectId(user_id)}) if ObjectId.is_valid(user_id) else None
        except Exception as e:
            logger.error(f"Could not load notification preferences for {user_id}: {e}", exc_info=True)
            user = None
        if user:
            if user.get("whatsapp_notifications") and (user.get("whatsapp_number") or user.get("phone_number")):
                channels.append(NotificationChannel.WHATSAPP)
            if user.get("email_notifications", True) and user.get("email"):
                channels.append(NotificationChannel.EMAIL)
        await NotificationService.notify(db, user_id, title, message, notification_type, channels)
