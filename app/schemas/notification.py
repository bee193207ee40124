"""Notification schemas"""
from datetime import datetime
from typing import List, Optional

from .base import BaseSchema


class NotificationResponse(BaseSchema):
    """Schema for notification response"""
    id: str
    user_id: str
    listing_id: Optional[str] = None
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime


class NotificationListResponse(BaseSchema):
    notifications: List[NotificationResponse]
