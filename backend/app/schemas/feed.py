# backend/app/schemas/feed.py
"""
In-app notification views over breach records.

There is no separate notifications table: every active breach record is a
notification, and it counts as read once the record is acknowledged.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from backend.app.schemas.breach import Pagination, RecommendedActionResponse
from backend.app.services.severity import Severity

BREACH_ALERT_TYPE = "breach_alert"


class NotificationData(BaseModel):
    breach_id: int
    risk_level: Severity
    sources: List[str]
    times_found: int
    recommended_actions: List[RecommendedActionResponse]


class NotificationItem(BaseModel):
    id: int
    type: str = BREACH_ALERT_TYPE
    title: str
    message: str
    severity: Severity
    is_read: bool
    created_at: Optional[datetime]
    data: NotificationData


class NotificationFeedResponse(BaseModel):
    notifications: List[NotificationItem]
    pagination: Pagination


class NotificationHistoryEntry(BaseModel):
    id: int
    sources: List[str]
    notifications_sent: int
    risk_level: Severity
    created_at: Optional[datetime]


class NotificationHistoryResponse(BaseModel):
    history: List[NotificationHistoryEntry]
    pagination: Pagination
