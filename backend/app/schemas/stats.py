# backend/app/schemas/stats.py
from pydantic import BaseModel


class UserBreachStats(BaseModel):
    total_breaches: int = 0
    active_breaches: int = 0
    acknowledged_breaches: int = 0
    unacknowledged_breaches: int = 0
    critical_breaches: int = 0
    high_breaches: int = 0
    medium_breaches: int = 0
    low_breaches: int = 0
    total_notifications_sent: int = 0


class GlobalBreachStats(BaseModel):
    total_breaches: int = 0
    active_breaches: int = 0
    unique_users: int = 0
    average_times_found: float = 0.0
    total_notifications_sent: int = 0


class NotificationStats(BaseModel):
    """Read state mirrors acknowledgment."""
    total_notifications: int = 0
    unread_notifications: int = 0
    critical_notifications: int = 0
    high_notifications: int = 0
    total_notifications_sent: int = 0
