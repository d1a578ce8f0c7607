from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from models.enums import NotificationChannel


class NotificationBase(BaseModel):
    title: str
    message: str
    notification_type: str = "pickup"  # "pickup", "account", "system"


class NotificationResponse(NotificationBase):
    id: str
    recipient_id: str
    channel: NotificationChannel = NotificationChannel.IN_APP
    delivery_status: str = "delivered"
    read: bool = False
    created_at: Optional[datetime] = None
