# backend/app/schemas/user.py
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class DeliveryFrequency(str, Enum):
    IMMEDIATE = "immediate"
    DAILY = "daily"
    WEEKLY = "weekly"


# Schema trả về / đọc cấu hình thông báo của user
class NotificationPreferences(BaseModel):
    email: bool
    sms: bool
    push: bool
    frequency: DeliveryFrequency


# Partial update: only fields that are set get written
class NotificationPreferencesUpdate(BaseModel):
    email: Optional[bool] = None
    sms: Optional[bool] = None
    push: Optional[bool] = None
    frequency: Optional[DeliveryFrequency] = None
