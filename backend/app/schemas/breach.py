# backend/app/schemas/breach.py
"""
Pydantic schemas for breach lookups, records and history.

password_hash only appears in BreachRecordResponse (owner views);
admin listings use BreachRecordSummary, which omits it.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from backend.app.schemas.notification import ChannelOutcome
from backend.app.services.severity import Severity


class LookupResult(BaseModel):
    """Outcome of one k-anonymity corpus query."""
    breached: bool
    count: int = 0
    severity: Optional[Severity] = None
    source_name: str


class BreachSourceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    date_found: datetime
    severity: Severity = Severity.MEDIUM
    description: Optional[str] = None
    affected_accounts: int = Field(0, ge=0)


class BreachSourceResponse(BaseModel):
    name: str
    date_found: datetime
    severity: Severity
    description: Optional[str]
    affected_accounts: int

    class Config:
        from_attributes = True


class RecommendedActionResponse(BaseModel):
    action: str
    priority: str
    completed: bool

    class Config:
        from_attributes = True


class BreachRecordSummary(BaseModel):
    id: int
    user_id: int
    breach_sources: List[BreachSourceResponse]
    is_active: bool
    first_detected: datetime
    last_checked: datetime
    times_found: int
    notifications_sent: int
    user_acknowledged: bool
    acknowledged_at: Optional[datetime]
    risk_level: Severity
    recommended_actions: List[RecommendedActionResponse]

    class Config:
        from_attributes = True


class BreachRecordResponse(BreachRecordSummary):
    password_hash: str


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class BreachHistoryResponse(BaseModel):
    records: List[BreachRecordResponse]
    pagination: Pagination


class UserBreachListResponse(BaseModel):
    """Admin view of one user's records, without password hashes."""
    user_id: int
    records: List[BreachRecordSummary]
    pagination: Pagination


class BreachSearchFilters(BaseModel):
    """All filters are optional and AND-ed together."""
    severity: Optional[Severity] = None
    risk_level: Optional[Severity] = None
    acknowledged: Optional[bool] = None
    active: Optional[bool] = None
    source: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


class CheckResult(BaseModel):
    """
    Result of check_password.

    breached=False is only ever returned after a successful lookup;
    a failed lookup raises LookupUnavailable instead.
    """
    breached: bool
    count: int = 0
    severity: Optional[Severity] = None
    source: str
    risk_level: Optional[Severity] = None
    recommended_actions: List[RecommendedActionResponse] = []
    suggest_mfa: bool = False
    breach_id: Optional[int] = None
    notifications: dict[str, ChannelOutcome] = {}
