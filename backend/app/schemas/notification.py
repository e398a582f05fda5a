# backend/app/schemas/notification.py
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class ChannelOutcome(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class FindingAction(BaseModel):
    action: str
    priority: str


class BreachFinding(BaseModel):
    """What a user is told about one detection. Never carries the password or hash."""
    breach_id: int
    count: int
    severity: str
    source: str
    risk_level: str
    recommended_actions: List[FindingAction] = []


class DigestEntry(BaseModel):
    breach_id: int
    risk_level: str
    sources: List[str]
    times_found: int
    first_detected: Optional[str] = None
