# backend/app/services/breach_checker.py
"""
Breach check pipeline plus the record, notification feed, statistics and
preference operations exposed to the HTTP layer and batch jobs.

check_password flow:
1. validate input (no side effects before this)
2. split the SHA-1 digest, query the corpus by prefix only
3. on a match, merge the finding into the user's breach record
4. notify enabled channels (immediate frequency only; daily/weekly users
   get the digest job instead)

Steps are not transactional across each other: a failed lookup raises
LookupUnavailable and nothing is written; a failed notification never
rolls back the record update.
"""
import logging
import math
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.errors import ValidationFailure
from backend.app.schemas.breach import (
    BreachHistoryResponse,
    BreachRecordResponse,
    BreachRecordSummary,
    BreachSearchFilters,
    BreachSourceCreate,
    CheckResult,
    Pagination,
    RecommendedActionResponse,
    UserBreachListResponse,
)
from backend.app.schemas.feed import (
    NotificationData,
    NotificationFeedResponse,
    NotificationHistoryEntry,
    NotificationHistoryResponse,
    NotificationItem,
)
from backend.app.schemas.notification import BreachFinding, ChannelOutcome, FindingAction
from backend.app.schemas.stats import GlobalBreachStats, NotificationStats, UserBreachStats
from backend.app.schemas.user import (
    DeliveryFrequency,
    NotificationPreferences,
    NotificationPreferencesUpdate,
)
from backend.app.security.password_hash import split_password_hash
from backend.app.services import breach_records, preferences, statistics
from backend.app.services.breach_lookup import PwnedPasswordsClient
from backend.app.services.notifier import NotificationDispatcher
from backend.app.services.risk import should_suggest_mfa
from backend.app.services.severity import Severity

logger = logging.getLogger(__name__)


def _check_page(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationFailure("Page must be >= 1")
    if limit < 1 or limit > settings.HISTORY_MAX_PAGE_SIZE:
        raise ValidationFailure(
            f"Limit must be between 1 and {settings.HISTORY_MAX_PAGE_SIZE}"
        )


def _pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit))


def _to_notification(record) -> NotificationItem:
    sources = [s.name for s in record.breach_sources]
    return NotificationItem(
        id=record.id,
        title="Password Breach Detected",
        message=f"Your password was found in {len(sources)} breach source(s)",
        severity=record.risk_level,
        is_read=record.user_acknowledged,
        created_at=record.created_at,
        data=NotificationData(
            breach_id=record.id,
            risk_level=record.risk_level,
            sources=sources,
            times_found=record.times_found,
            recommended_actions=[
                RecommendedActionResponse.model_validate(a) for a in record.recommended_actions
            ],
        ),
    )


class BreachCheckService:

    def __init__(
        self,
        lookup_client: Optional[PwnedPasswordsClient] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.lookup_client = lookup_client or PwnedPasswordsClient()
        self.dispatcher = dispatcher or NotificationDispatcher()

    # ==================================================
    # PASSWORD CHECK
    # ==================================================
    async def check_password(
        self, db: AsyncSession, user_id: int, password: str
    ) -> CheckResult:
        """Password must NEVER be stored or logged."""
        if not isinstance(password, str) or not password:
            raise ValidationFailure("Password must be a non-empty string")

        user = await preferences.get_user(db, user_id)
        frequency = user.notify_frequency

        split = split_password_hash(password)
        lookup = await self.lookup_client.lookup(split.prefix, split.suffix)

        if not lookup.breached:
            logger.info("Password check for user %s: not found in corpus", user_id)
            return CheckResult(breached=False, count=0, source=lookup.source_name)

        source = BreachSourceCreate(
            name=lookup.source_name,
            date_found=datetime.now(timezone.utc),
            severity=lookup.severity,
            description=f"Password found {lookup.count} times",
            affected_accounts=lookup.count,
        )
        record = await breach_records.record_finding(db, user_id, split.digest, source)
        risk_level = Severity(record.risk_level)
        actions = [RecommendedActionResponse.model_validate(a) for a in record.recommended_actions]

        notifications = {}
        if frequency == DeliveryFrequency.IMMEDIATE.value:
            finding = BreachFinding(
                breach_id=record.id,
                count=lookup.count,
                severity=lookup.severity.value,
                source=lookup.source_name,
                risk_level=risk_level.value,
                recommended_actions=[
                    FindingAction(action=a.action, priority=a.priority) for a in actions
                ],
            )
            notifications = await self.dispatcher.notify(db, user_id, finding)
        else:
            logger.info(
                "Breach record %s: user %s receives %s digests, no immediate alert",
                record.id,
                user_id,
                frequency,
            )

        return CheckResult(
            breached=True,
            count=lookup.count,
            severity=lookup.severity,
            source=lookup.source_name,
            risk_level=risk_level,
            recommended_actions=actions,
            suggest_mfa=should_suggest_mfa(risk_level),
            breach_id=record.id,
            notifications=notifications,
        )

    # ==================================================
    # HISTORY / RECORDS
    # ==================================================
    async def get_history(
        self, db: AsyncSession, user_id: int, page: int = 1, limit: int = 10
    ) -> BreachHistoryResponse:
        _check_page(page, limit)

        records = await breach_records.list_records(
            db, user_id, offset=(page - 1) * limit, limit=limit
        )
        total = await breach_records.count_records(db, user_id)

        return BreachHistoryResponse(
            records=[BreachRecordResponse.model_validate(r) for r in records],
            pagination=_pagination(page, limit, total),
        )

    async def get_record(
        self, db: AsyncSession, user_id: int, record_id: int
    ) -> BreachRecordResponse:
        record = await breach_records.get_record(db, user_id, record_id)
        return BreachRecordResponse.model_validate(record)

    async def search_records(
        self, db: AsyncSession, user_id: int, filters: BreachSearchFilters
    ) -> List[BreachRecordResponse]:
        records = await breach_records.search_records(db, user_id, filters)
        return [BreachRecordResponse.model_validate(r) for r in records]

    async def acknowledge(
        self, db: AsyncSession, user_id: int, record_id: int
    ) -> BreachRecordResponse:
        record = await breach_records.acknowledge(db, user_id, record_id)
        return BreachRecordResponse.model_validate(record)

    async def acknowledge_all(self, db: AsyncSession, user_id: int) -> int:
        return await breach_records.acknowledge_all(db, user_id)

    async def complete_action(
        self, db: AsyncSession, user_id: int, record_id: int, action_index: int
    ) -> BreachRecordResponse:
        record = await breach_records.complete_action(db, user_id, record_id, action_index)
        return BreachRecordResponse.model_validate(record)

    # ==================================================
    # STATISTICS
    # ==================================================
    async def user_stats(self, db: AsyncSession, user_id: int) -> UserBreachStats:
        return await statistics.user_breach_stats(db, user_id)

    async def admin_stats(self, db: AsyncSession) -> GlobalBreachStats:
        return await statistics.global_breach_stats(db)

    async def recent_records(
        self, db: AsyncSession, limit: int = 20
    ) -> List[BreachRecordSummary]:
        """Admin listing. Password hashes are never included."""
        records = await breach_records.list_recent(db, limit=limit)
        return [BreachRecordSummary.model_validate(r) for r in records]

    async def user_records(
        self, db: AsyncSession, user_id: int, page: int = 1, limit: int = 10
    ) -> UserBreachListResponse:
        """Admin listing of one user's records. Password hashes are never included."""
        _check_page(page, limit)
        await preferences.get_user(db, user_id)

        records = await breach_records.list_records(
            db, user_id, offset=(page - 1) * limit, limit=limit
        )
        total = await breach_records.count_records(db, user_id)

        return UserBreachListResponse(
            user_id=user_id,
            records=[BreachRecordSummary.model_validate(r) for r in records],
            pagination=_pagination(page, limit, total),
        )

    # ==================================================
    # NOTIFICATIONS
    # Read state is the record's acknowledgment: mark one read with
    # acknowledge(), all with acknowledge_all().
    # ==================================================
    async def get_notifications(
        self, db: AsyncSession, user_id: int, page: int = 1, limit: int = 10
    ) -> NotificationFeedResponse:
        _check_page(page, limit)

        records = await breach_records.list_active_records(
            db, user_id, offset=(page - 1) * limit, limit=limit
        )
        total = await breach_records.count_active_records(db, user_id)

        return NotificationFeedResponse(
            notifications=[_to_notification(r) for r in records],
            pagination=_pagination(page, limit, total),
        )

    async def get_notification_history(
        self, db: AsyncSession, user_id: int, page: int = 1, limit: int = 20
    ) -> NotificationHistoryResponse:
        _check_page(page, limit)

        records = await breach_records.list_notified_records(
            db, user_id, offset=(page - 1) * limit, limit=limit
        )
        total = await breach_records.count_notified_records(db, user_id)

        return NotificationHistoryResponse(
            history=[
                NotificationHistoryEntry(
                    id=r.id,
                    sources=[s.name for s in r.breach_sources],
                    notifications_sent=r.notifications_sent,
                    risk_level=r.risk_level,
                    created_at=r.created_at,
                )
                for r in records
            ],
            pagination=_pagination(page, limit, total),
        )

    async def notification_stats(self, db: AsyncSession, user_id: int) -> NotificationStats:
        return await statistics.notification_stats(db, user_id)

    async def test_notification(
        self, db: AsyncSession, user_id: int, channel: str
    ) -> ChannelOutcome:
        return await self.dispatcher.send_test(db, user_id, channel)

    # ==================================================
    # PREFERENCES
    # ==================================================
    async def get_preferences(self, db: AsyncSession, user_id: int) -> NotificationPreferences:
        return await preferences.get_preferences(db, user_id)

    async def update_preferences(
        self, db: AsyncSession, user_id: int, update: NotificationPreferencesUpdate
    ) -> NotificationPreferences:
        return await preferences.update_preferences(db, user_id, update)
